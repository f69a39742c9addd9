import logging
from fastapi import HTTPException, Depends, status
from fastapi.concurrency import run_in_threadpool
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from ..models.user import User, UserRole, ALL_ROLES
from ..database import get_supabase, get_supabase_admin
from ..services.redis import redis_client
from ..core.session import session_manager
from ..core.cache import CacheKeys

logger = logging.getLogger(__name__)

security = HTTPBearer()


def _fetch_profile(column: str, value) -> dict:
    result = (
        get_supabase_admin()
        .table("users")
        .select("id, email, role, merchant_id, outlet_id, is_active")
        .eq(column, value)
        .limit(1)
        .execute()
    )
    return result.data[0] if result.data else None


async def get_current_user(token: HTTPAuthorizationCredentials = Depends(security)) -> User:
    user_id = session_manager.validate_token(token.credentials)

    if user_id:
        cache_key = CacheKeys.USER_PROFILE.format(user_id=user_id)
        cached = redis_client.get(cache_key)
        if isinstance(cached, dict) and "id" in cached:
            return User.model_validate(cached)

        profile = await run_in_threadpool(_fetch_profile, "id", user_id)
        if profile:
            redis_client.set(cache_key, profile, 300)
            return User.model_validate(profile)

        session_manager.destroy_session(user_id, token.credentials)

    try:
        auth_response = await run_in_threadpool(get_supabase().auth.get_user, token.credentials)
    except Exception as e:
        logger.info("Token rejected by auth provider: %s", e)
        auth_response = None

    if not auth_response or not auth_response.user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials"
        )

    profile = await run_in_threadpool(_fetch_profile, "auth_id", auth_response.user.id)
    if not profile:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User profile not found"
        )

    user = User.model_validate(profile)
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account is deactivated"
        )

    session_manager.create_session(user.id, profile, token.credentials)
    return user


def require_roles(*allowed_roles: UserRole):
    """Dependency factory admitting only the given roles"""

    async def checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions"
            )
        return current_user

    return checker


require_any_role = require_roles(*ALL_ROLES)
