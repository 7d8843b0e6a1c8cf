"""
Token Revocation System using Redis.

Invalidates JWT tokens immediately when users log out, are deactivated
or are deleted by an administrator.
"""

import logging
from backend.app.core.redis_client import get_redis
from backend.app.core.config import settings

logger = logging.getLogger("reception.auth")

# Redis key prefix for blacklisted tokens
TOKEN_BLACKLIST_PREFIX = "blacklist:token:"
USER_TOKENS_PREFIX = "user:tokens:"


def _ttl_seconds() -> int:
    # Tokens expire on their own after this delay
    return settings.access_token_expire_minutes * 60


async def revoke_token(token: str, user_id: int) -> bool:
    """
    Revoke a single JWT token (logout).

    Returns:
        True if successfully revoked, False otherwise
    """
    try:
        client = await get_redis()
        await client.setex(f"{TOKEN_BLACKLIST_PREFIX}{token}", _ttl_seconds(), str(user_id))
        return True
    except Exception as exc:
        logger.error("Error revoking token for user %s: %s", user_id, exc)
        return False


async def is_token_revoked(token: str) -> bool:
    """
    Check if a token has been revoked.

    Fails open when Redis is unreachable: the database status check in
    ``get_current_user`` still blocks deactivated accounts.
    """
    try:
        client = await get_redis()
        return await client.exists(f"{TOKEN_BLACKLIST_PREFIX}{token}") > 0
    except Exception as exc:
        logger.warning("Error checking token revocation: %s", exc)
        return False


async def revoke_all_user_tokens(user_id: int) -> bool:
    """
    Revoke all active tokens for a user (deactivation or deletion).

    Returns:
        True if successful
    """
    try:
        client = await get_redis()
        await client.setex(f"{USER_TOKENS_PREFIX}{user_id}:revoked", _ttl_seconds(), "1")
        return True
    except Exception as exc:
        logger.error("Error revoking all tokens for user %s: %s", user_id, exc)
        return False


async def are_user_tokens_revoked(user_id: int) -> bool:
    """
    Check if all tokens for a user have been revoked.
    """
    try:
        client = await get_redis()
        return await client.exists(f"{USER_TOKENS_PREFIX}{user_id}:revoked") > 0
    except Exception as exc:
        logger.warning("Error checking user token revocation: %s", exc)
        return False


async def clear_user_token_revocation(user_id: int) -> bool:
    """
    Clear the global revocation flag when an account is reactivated.
    """
    try:
        client = await get_redis()
        await client.delete(f"{USER_TOKENS_PREFIX}{user_id}:revoked")
        return True
    except Exception as exc:
        logger.error("Error clearing token revocation for user %s: %s", user_id, exc)
        return False
