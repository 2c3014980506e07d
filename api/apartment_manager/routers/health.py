import logging

from fastapi import APIRouter, Depends, HTTPException
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from apartment_manager.core.database import get_db
from apartment_manager.core.redis import get_redis

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health():
    return {"status": "ok", "service": "apartment-manager"}


@router.get("/db")
async def health_db(db: AsyncSession = Depends(get_db)):
    await db.execute(text("SELECT 1"))
    return {"status": "ok", "database": "connected"}


@router.get("/redis")
async def health_redis():
    # Lockout and token revocation both live in Redis
    try:
        await get_redis().ping()
    except RedisError as exc:
        logger.warning("Redis health check failed: %s", exc)
        raise HTTPException(status_code=503, detail="Redis unavailable")
    return {"status": "ok", "redis": "connected"}
