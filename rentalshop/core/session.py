from typing import Optional, Dict
from datetime import datetime, timezone
from ..services.redis import RedisClient, redis_client
from ..config import settings
from .cache import CacheKeys


class SessionManager:
    """Manage user sessions in Redis"""

    def __init__(self, cache: RedisClient):
        self.cache = cache

    @property
    def ttl(self) -> int:
        return settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60

    def create_session(self, user_id: int, user_data: dict, token: str) -> str:
        session_key = CacheKeys.USER_SESSION.format(user_id=user_id, token_prefix=token[:8])

        session_data = {
            "user_id": user_id,
            "email": user_data.get("email"),
            "role": user_data.get("role"),
            "created_at": datetime.now(timezone.utc).isoformat()
        }

        self.cache.hset(session_key, session_data)
        self.cache.expire(session_key, self.ttl)
        self.cache.set(CacheKeys.ACTIVE_SESSION.format(token=token), user_id, self.ttl)

        return session_key

    def validate_token(self, token: str) -> Optional[int]:
        """Quick token validation without DB call"""
        key = CacheKeys.ACTIVE_SESSION.format(token=token)
        user_id = self.cache.get(key)
        if user_id:
            # Refresh expiry
            self.cache.expire(key, self.ttl)
        return user_id

    def destroy_session(self, user_id: int, token: Optional[str] = None):
        """Destroy user session"""
        self.cache.delete_pattern(f"session:{user_id}:*")
        self.cache.delete(CacheKeys.USER_PROFILE.format(user_id=user_id))
        if token:
            self.cache.delete(CacheKeys.ACTIVE_SESSION.format(token=token))


session_manager = SessionManager(redis_client)
