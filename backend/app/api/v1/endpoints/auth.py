"""
Authentication API endpoints.

Provides login, logout and current user info.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from backend.app.db.session import get_db
from backend.app.schemas.auth import UserLogin, TokenResponse, CurrentUserResponse, LogoutResponse
from backend.app.core.security import verify_password
from backend.app.core.jwt import create_user_token
from backend.app.core.dependencies import get_current_user
from backend.app.core.exceptions import AuthenticationError
from backend.app.core.token_revocation import revoke_token
from backend.app.services.audit import log_auth_event, AuditAction
from backend.app.services.user_service import find_by_login, get_user

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _client_ip(request: Request):
    return request.client.host if request.client else None


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: UserLogin,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """
    Login user and return JWT token.

    Accepts username (case-insensitive) or email.
    Only "Actif" accounts may log in.
    Logs successful and failed login attempts for security monitoring.
    """
    ip_address = _client_ip(request)
    user = await find_by_login(db, credentials.username)

    if not user or not verify_password(credentials.password, user.hashed_password):
        await log_auth_event(
            db=db,
            action=AuditAction.LOGIN_FAILED,
            user_id=user.id if user else None,
            username=credentials.username,
            ip_address=ip_address,
            metadata={"reason": "Invalid password" if user else "User not found"}
        )
        raise AuthenticationError("Invalid credentials")

    if not user.is_active:
        await log_auth_event(
            db=db,
            action=AuditAction.LOGIN_FAILED,
            user_id=user.id,
            username=user.username,
            ip_address=ip_address,
            metadata={"reason": f"Account is '{user.status.value}'"}
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Account is '{user.status.value}', contact an administrator"
        )

    access_token = create_user_token(user)

    await log_auth_event(
        db=db,
        action=AuditAction.LOGIN_SUCCESS,
        user_id=user.id,
        username=user.username,
        ip_address=ip_address
    )

    return TokenResponse(
        access_token=access_token,
        token_type="bearer",
        user_id=user.id,
        username=user.username,
        nom=user.nom,
        role=user.role,
        entrepot_id=user.entrepot_id
    )


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    request: Request,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Revoke the token used for this request."""
    await revoke_token(current_user["token"], current_user["user_id"])
    await log_auth_event(
        db=db,
        action=AuditAction.LOGOUT,
        user_id=current_user["user_id"],
        username=current_user.get("sub"),
        ip_address=_client_ip(request)
    )
    return LogoutResponse(success=True, message="Logged out")


@router.get("/me", response_model=CurrentUserResponse)
async def get_current_user_info(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Get current authenticated user information.

    Requires valid JWT token in Authorization header.
    """
    user = await get_user(db, current_user["user_id"])
    return CurrentUserResponse.model_validate(user)
