from fastapi import APIRouter, Depends
from loguru import logger
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.redis import RedisClient, get_redis
from app.db.session import get_session

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
async def health(
    db: AsyncSession = Depends(get_session),
    redis: RedisClient = Depends(get_redis),
):
    try:
        await db.execute(text("SELECT 1"))
        database = "up"
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        database = "down"

    return {
        "status": "ok",
        "database": database,
        "redis": "up" if await redis.ping() else "down",
    }
