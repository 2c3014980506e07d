"""Redis-backed auth state: revoked refresh tokens and login lockout counters."""
import redis.asyncio as aioredis

from apartment_manager.core.config import settings

_redis: aioredis.Redis | None = None


def get_redis() -> aioredis.Redis:
    global _redis
    if _redis is None:
        _redis = aioredis.from_url(settings.redis_url, decode_responses=True)
    return _redis


def _revoked_key(jti: str) -> str:
    return f"apartments:revoked_refresh:{jti}"


def _failures_key(email: str) -> str:
    return f"apartments:login_failures:{email.strip().lower()}"


# ─── Refresh token revocation ────────────────────────────────────────────────

async def revoke_token(jti: str, ttl_seconds: int) -> None:
    """Remember a refresh token JTI until the token would have expired anyway."""
    if ttl_seconds > 0:
        await get_redis().setex(_revoked_key(jti), ttl_seconds, "1")


async def is_revoked(jti: str) -> bool:
    return await get_redis().exists(_revoked_key(jti)) == 1


# ─── Login lockout ───────────────────────────────────────────────────────────

async def record_login_failure(email: str) -> int:
    """Bump the failure counter; the lockout window starts at the first failure."""
    r = get_redis()
    key = _failures_key(email)
    count = await r.incr(key)
    if count == 1:
        await r.expire(key, settings.login_lockout_minutes * 60)
    return count


async def lockout_remaining(email: str) -> int:
    """Seconds left on an active lockout, 0 when the account may log in."""
    r = get_redis()
    key = _failures_key(email)
    count = await r.get(key)
    if not count or int(count) < settings.login_max_attempts:
        return 0
    return max(await r.ttl(key), 1)


async def clear_login_failures(email: str) -> None:
    await get_redis().delete(_failures_key(email))
