import redis.asyncio as redis
import structlog


logger = structlog.get_logger()


class RedisClient:
    """Async Redis connection used by the distributed account lock."""

    def __init__(self, url: str) -> None:
        self._url = url
        self._client: redis.Redis[bytes] | None = None

    @property
    def client(self) -> "redis.Redis[bytes]":
        if self._client is None:
            raise RuntimeError("Redis client not connected. Call connect() first.")
        return self._client

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def connect(self) -> None:
        self._client = redis.from_url(self._url, decode_responses=False)
        await self._client.ping()
        logger.info("redis_connected", url=self._url)

    async def close(self) -> None:
        if self._client is None:
            return
        await self._client.aclose()
        self._client = None
        logger.info("redis_disconnected")

    async def health_check(self) -> bool:
        if self._client is None:
            return False
        try:
            await self._client.ping()
        except redis.RedisError as exc:
            logger.warning("redis_health_check_failed", error=str(exc))
            return False
        return True
