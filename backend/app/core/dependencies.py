"""
Authentication dependencies for FastAPI.

This module provides dependencies for protecting routes with JWT authentication.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from backend.app.core.exceptions import AuthenticationError
from backend.app.core.jwt import decode_access_token
from backend.app.core.token_revocation import is_token_revoked, are_user_tokens_revoked
from backend.app.db.session import get_db
from backend.app.models.user import User

# HTTP Bearer security scheme
security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> dict:
    """
    FastAPI dependency for JWT authentication.

    Checks, in order:
    1. Token signature and expiry
    2. Explicit revocation of this token (logout)
    3. Revocation of every token of the user (deactivated/deleted account)
    4. The user still exists and is "Actif" in the database

    Role and warehouse scope are refreshed from the database, so an admin
    reassigning a user takes effect without a new login.

    Returns:
        Token payload with "role" and "entrepot_id" overwritten by current values

    Raises:
        AuthenticationError: 401 if authentication fails
        HTTPException: 403 if the account is not active
    """
    token = credentials.credentials

    payload = decode_access_token(token)
    if payload is None:
        raise AuthenticationError("Could not validate credentials")

    user_id = payload.get("user_id")
    if not user_id:
        raise AuthenticationError("Invalid token payload")

    if await is_token_revoked(token):
        raise AuthenticationError("Token has been revoked")

    if await are_user_tokens_revoked(user_id):
        raise AuthenticationError("User access has been revoked")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user:
        raise AuthenticationError("User not found")

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"User account is '{user.status.value}'",
        )

    payload["role"] = user.role.value
    payload["entrepot_id"] = user.entrepot_id
    payload["token"] = token
    return payload
