from datetime import datetime, timezone
from typing import Optional
from pydantic import ValidationError
from framework.config import Settings, settings as default_settings
from framework.logging.logger import get_logger
from .schemas import TokenOut

logger = get_logger("token_cache")


class TokenCache:
    """Redis cache of the current token per mobile number; entries expire with the token."""

    def __init__(self, redis_client, settings: Optional[Settings] = None):
        self.redis = redis_client
        self.settings = settings or default_settings

    def _key(self, mobile_number: str) -> str:
        return f"{self.settings.TOKEN_CACHE_PREFIX}:{mobile_number}"

    async def get(self, mobile_number: str) -> Optional[TokenOut]:
        raw = await self.redis.get(self._key(mobile_number))
        if raw is None:
            return None
        try:
            return TokenOut.model_validate_json(raw)
        except ValidationError:
            logger.warning(f"Dropping unreadable cache entry for {mobile_number}")
            await self.invalidate(mobile_number)
            return None

    async def set(self, token: TokenOut) -> None:
        expires_at = token.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        ttl = int((expires_at - datetime.now(timezone.utc)).total_seconds())
        if ttl <= 0:
            return
        await self.redis.set(self._key(token.mobile_number), token.model_dump_json(), ex=ttl)

    async def invalidate(self, mobile_number: str) -> None:
        await self.redis.delete(self._key(mobile_number))
