"""JWT token revocation using a Redis blacklist.

Allows revoking tokens on logout, password change, or deactivation.
Single tokens are blacklisted until their natural expiry; a per-user
marker invalidates every token issued before it was set.
"""

import logging
import time

from app.config import settings
from app.utils.cache import get_redis

logger = logging.getLogger(__name__)


class TokenRevocation:
    """Manage JWT token revocation with Redis."""

    @staticmethod
    async def revoke_token(token: str, expires_at: float) -> bool:
        """Add token to revocation list.

        Args:
            token: JWT token to revoke
            expires_at: Unix timestamp when token naturally expires

        Returns:
            True if successfully revoked
        """
        ttl = int(expires_at - time.time())
        if ttl <= 0:
            # Already expired, nothing to blacklist
            return True

        redis_client = await get_redis()
        try:
            await redis_client.setex(f"revoked:{token}", ttl, str(int(time.time())))
            return True
        except Exception as e:
            logger.error(f"Failed to revoke token: {e}")
            return False

    @staticmethod
    async def is_revoked(token: str) -> bool:
        redis_client = await get_redis()
        try:
            exists = await redis_client.exists(f"revoked:{token}")
            return exists > 0
        except Exception as e:
            logger.error(f"Failed to check token revocation: {e}")
            # Fail closed
            return True

    @staticmethod
    async def revoke_all_user_tokens(user_id: str) -> bool:
        """Invalidate every token issued to `user_id` up to now.

        The marker outlives the longest-lived token (refresh), after which
        every earlier token has expired anyway.
        """
        redis_client = await get_redis()
        duration = settings.refresh_token_expire_days * 86400
        try:
            await redis_client.setex(
                f"revoked:user:{user_id}", duration, repr(time.time())
            )
            return True
        except Exception as e:
            logger.error(f"Failed to revoke user tokens: {e}")
            return False

    @staticmethod
    async def is_user_revoked(user_id: str, issued_at: float | None) -> bool:
        """True if the token (issued at `issued_at`) predates a user-wide revocation."""
        redis_client = await get_redis()
        try:
            revoked_at = await redis_client.get(f"revoked:user:{user_id}")
        except Exception as e:
            logger.error(f"Failed to check user revocation: {e}")
            return True
        if revoked_at is None:
            return False
        return issued_at is None or float(issued_at) <= float(revoked_at)
