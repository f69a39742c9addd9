import redis
import json
import logging
from typing import Optional, Any
from ..config import settings

logger = logging.getLogger(__name__)


class RedisClient:
    def __init__(self, url: str = settings.REDIS_URL):
        self.client = redis.from_url(url, decode_responses=True)

    # Basic operations
    def get(self, key: str) -> Optional[Any]:
        try:
            value = self.client.get(key)
        except redis.ConnectionError:
            logger.warning("Redis unavailable, cache miss for %s", key)
            return None
        if value:
            try:
                return json.loads(value)
            except ValueError:
                return value
        return None

    def set(self, key: str, value: Any, expire: Optional[int] = None):
        if isinstance(value, (dict, list)):
            value = json.dumps(value, default=str)
        try:
            if expire:
                self.client.setex(key, expire, value)
            else:
                self.client.set(key, value)
        except redis.ConnectionError:
            logger.warning("Redis unavailable, skipped caching %s", key)

    def delete(self, *keys: str):
        if not keys:
            return
        try:
            self.client.delete(*keys)
        except redis.ConnectionError:
            logger.warning("Redis unavailable, could not delete %s", ", ".join(keys))

    # Pattern operations
    def delete_pattern(self, pattern: str):
        try:
            keys = list(self.client.scan_iter(match=pattern))
            if keys:
                self.client.delete(*keys)
        except redis.ConnectionError:
            logger.warning("Redis unavailable, could not delete keys matching %s", pattern)

    # Hash operations for session
    def hset(self, name: str, mapping: dict):
        try:
            self.client.hset(name, mapping=mapping)
        except redis.ConnectionError:
            logger.warning("Redis unavailable, skipped writing hash %s", name)

    def expire(self, key: str, seconds: int):
        try:
            self.client.expire(key, seconds)
        except redis.ConnectionError:
            logger.warning("Redis unavailable, skipped expiry for %s", key)

    def ping(self) -> bool:
        return self.client.ping()

    def close(self):
        self.client.close()


redis_client = RedisClient()


def get_cache() -> RedisClient:
    return redis_client
