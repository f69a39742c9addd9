from typing import Optional
from ..services.redis import RedisClient


class CacheKeys:
    """Centralized cache key management"""

    # User/Auth
    USER_SESSION = "session:{user_id}:{token_prefix}"
    ACTIVE_SESSION = "active_session:{token}"
    USER_PROFILE = "profile:{user_id}"

    # Orders
    ORDER_DETAIL = "order:{order_id}"

    # Dashboard
    DASHBOARD_STATS = "dashboard:stats:{scope}"


def invalidate_order_cache(cache: RedisClient, order_id: Optional[int] = None):
    """Invalidate order-related caches"""
    if order_id is not None:
        cache.delete(CacheKeys.ORDER_DETAIL.format(order_id=order_id))
    cache.delete_pattern("dashboard:stats:*")
