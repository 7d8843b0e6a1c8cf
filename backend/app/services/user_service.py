"""
User management service.

Rules:
- usernames are unique case-insensitively, and so are emails when given
- the last active admin can be neither deleted, demoted nor deactivated
- a non-admin created without a warehouse is assigned to the first one
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.exceptions import ConflictError, ResourceNotFoundError
from backend.app.core.security import get_password_hash
from backend.app.core.token_revocation import clear_user_token_revocation, revoke_all_user_tokens
from backend.app.db.session import commit_or_rollback
from backend.app.models.enums import UserRole, UserStatus
from backend.app.models.user import User
from backend.app.services.warehouse_service import WarehouseRepository

logger = logging.getLogger("reception.users")


async def get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise ResourceNotFoundError("User", user_id)
    return user


async def find_by_login(db: AsyncSession, login: str) -> Optional[User]:
    """Find a user by username or email, ignoring case."""
    login = login.strip().lower()
    result = await db.execute(
        select(User).where(or_(func.lower(User.username) == login, func.lower(User.email) == login))
    )
    return result.scalars().first()


async def list_users(
    db: AsyncSession,
    search: Optional[str] = None,
    role: Optional[UserRole] = None,
    entrepot_id: Optional[int] = None,
) -> List[User]:
    """Users matching the filters, newest first."""
    query = select(User).order_by(User.created_at.desc(), User.id.desc())
    if search and search.strip():
        pattern = f"%{search.strip().lower()}%"
        query = query.where(or_(
            func.lower(User.nom).like(pattern),
            func.lower(User.email).like(pattern),
            func.lower(User.username).like(pattern),
        ))
    if role is not None:
        query = query.where(User.role == role)
    if entrepot_id is not None:
        query = query.where(User.entrepot_id == entrepot_id)
    result = await db.execute(query)
    return list(result.scalars().all())


async def _ensure_unique(db: AsyncSession, username: Optional[str], email: Optional[str],
                         exclude_id: Optional[int] = None) -> None:
    if username:
        query = select(User.id).where(func.lower(User.username) == username.lower())
        if exclude_id is not None:
            query = query.where(User.id != exclude_id)
        if (await db.execute(query)).first():
            raise ConflictError("Username already taken", details={"field": "username"})

    if email:
        query = select(User.id).where(func.lower(User.email) == email.lower())
        if exclude_id is not None:
            query = query.where(User.id != exclude_id)
        if (await db.execute(query)).first():
            raise ConflictError("Email already registered", details={"field": "email"})


async def _count_active_admins(db: AsyncSession) -> int:
    result = await db.execute(
        select(func.count(User.id)).where(User.role == UserRole.ADMIN, User.status == UserStatus.ACTIF)
    )
    return result.scalar() or 0


async def _ensure_not_last_admin(db: AsyncSession, user: User) -> None:
    if user.role == UserRole.ADMIN and user.status == UserStatus.ACTIF:
        if await _count_active_admins(db) <= 1:
            raise ConflictError("Cannot remove the last administrator", details={"user_id": user.id})


async def create_user(db: AsyncSession, data: Dict[str, Any]) -> User:
    """
    Create a user from validated fields.

    Raises:
        ConflictError: username or email already in use
        ResourceNotFoundError: the requested warehouse does not exist
    """
    username = data["username"].strip()
    email = (data.get("email") or "").strip().lower() or None
    await _ensure_unique(db, username, email)

    role = data.get("role") or UserRole.OPERATOR
    warehouses = WarehouseRepository(db)
    entrepot_id = data.get("entrepot_id")
    if entrepot_id is not None:
        await warehouses.get(entrepot_id)
    elif role != UserRole.ADMIN:
        first = await warehouses.first()
        entrepot_id = first.id if first else None

    user = User(
        nom=data["nom"].strip(),
        email=email,
        username=username,
        hashed_password=get_password_hash(data["password"]),
        role=role,
        status=data.get("status") or UserStatus.ACTIF,
        entrepot_id=entrepot_id,
    )
    db.add(user)
    await commit_or_rollback(db, "User")
    await db.refresh(user)
    return user


async def update_user(db: AsyncSession, user_id: int, changes: Dict[str, Any]) -> User:
    """
    Apply a partial update.

    Deactivating a user revokes their tokens; reactivating clears the
    revocation.

    Raises:
        ConflictError: duplicate username/email or last-admin protection
    """
    user = await get_user(db, user_id)

    username = changes.get("username")
    email = changes.get("email")
    if email:
        email = email.strip().lower()
    await _ensure_unique(db, username.strip() if username else None, email, exclude_id=user_id)

    losing_admin = (
        ("role" in changes and changes["role"] != UserRole.ADMIN)
        or ("status" in changes and changes["status"] != UserStatus.ACTIF)
    )
    if losing_admin:
        await _ensure_not_last_admin(db, user)

    was_active = user.is_active

    if "nom" in changes and changes["nom"]:
        user.nom = changes["nom"].strip()
    if username:
        user.username = username.strip()
    if "email" in changes:
        user.email = email or None
    if changes.get("password"):
        user.hashed_password = get_password_hash(changes["password"])
    if changes.get("role"):
        user.role = changes["role"]
    if changes.get("status"):
        user.status = changes["status"]

    await commit_or_rollback(db, "User", user_id)
    await db.refresh(user)

    if was_active and not user.is_active:
        await revoke_all_user_tokens(user.id)
        logger.info("User %s deactivated, tokens revoked", user.id)
    elif not was_active and user.is_active:
        await clear_user_token_revocation(user.id)

    return user


async def assign_warehouse(db: AsyncSession, user_id: int, entrepot_id: Optional[int]) -> User:
    """Assign a user to a warehouse, or detach them with None. Only admins are unrestricted without one."""
    user = await get_user(db, user_id)
    if entrepot_id is not None:
        await WarehouseRepository(db).get(entrepot_id)
    user.entrepot_id = entrepot_id
    await commit_or_rollback(db, "User", user_id)
    await db.refresh(user)
    return user


async def delete_user(db: AsyncSession, user_id: int) -> User:
    """
    Delete a user and revoke their tokens.

    Raises:
        ConflictError: the user is the last active admin
    """
    user = await get_user(db, user_id)
    await _ensure_not_last_admin(db, user)

    await db.delete(user)
    await commit_or_rollback(db, "User", user_id)
    await revoke_all_user_tokens(user_id)
    return user


async def seed_default_admin(db: AsyncSession) -> Optional[User]:
    """
    Create the default admin when the users table is empty.

    Returns:
        The created admin, or None when users already exist
    """
    count = (await db.execute(select(func.count(User.id)))).scalar() or 0
    if count:
        return None

    admin = await create_user(db, {
        "nom": "Administrateur",
        "email": settings.default_admin_email,
        "username": settings.default_admin_username,
        "password": settings.default_admin_password,
        "role": UserRole.ADMIN,
        "status": UserStatus.ACTIF,
    })
    logger.info("Default admin '%s' created", admin.username)
    return admin
