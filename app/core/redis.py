"""
Redis client for refresh sessions and password-reset tokens.

Keys:
    rt:{user_id}:{jti}   refresh session, value "1"
    reset:{token}        password reset, value user id
"""

from typing import Optional

import redis.asyncio as redis
from fastapi import HTTPException, status
from loguru import logger
from redis.asyncio import Redis
from redis.exceptions import RedisError

from app.core.settings import settings


class RedisClient:
    def __init__(self, redis_url: str):
        self._redis_url = redis_url
        self._client: Optional[Redis] = None

    async def connect(self):
        if not self._redis_url:
            logger.warning("Redis URL not configured, token sessions disabled")
            return

        try:
            self._client = redis.from_url(
                self._redis_url, encoding="utf-8", decode_responses=True
            )
            await self._client.ping()
            logger.info("Redis connection established")
        except RedisError as e:
            logger.error(f"Failed to connect to Redis: {e}")
            self._client = None

    async def disconnect(self):
        if self._client:
            await self._client.aclose()
            logger.info("Redis connection closed")
            self._client = None

    def is_available(self) -> bool:
        return self._client is not None

    async def ping(self) -> bool:
        if not self._client:
            return False
        try:
            return bool(await self._client.ping())
        except RedisError:
            return False

    def _require(self) -> Redis:
        if not self._client:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Session store unavailable",
            )
        return self._client

    async def setex(self, key: str, ttl_seconds: int, value: str) -> None:
        client = self._require()
        try:
            await client.setex(key, ttl_seconds, value)
        except RedisError as e:
            logger.error(f"Redis SETEX {key} failed: {e}")
            raise HTTPException(503, "Session store unavailable")

    async def get(self, key: str) -> Optional[str]:
        client = self._require()
        try:
            return await client.get(key)
        except RedisError as e:
            logger.error(f"Redis GET {key} failed: {e}")
            raise HTTPException(503, "Session store unavailable")

    async def delete(self, key: str) -> None:
        client = self._require()
        try:
            await client.delete(key)
        except RedisError as e:
            logger.error(f"Redis DEL {key} failed: {e}")
            raise HTTPException(503, "Session store unavailable")


redis_client = RedisClient(settings.REDIS_URL)


def get_redis() -> RedisClient:
    return redis_client
