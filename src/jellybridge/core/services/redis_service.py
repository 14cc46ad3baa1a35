"""Redis connection service for managing Redis client lifecycle and health checks."""

from loguru import logger
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff

from src.jellybridge.runtime.config.config_data import ConfigData
from src.jellybridge.runtime.context import get_config


class RedisService:
    """Owns the shared async Redis client.

    Redis is optional; when disabled :meth:`get_client` returns ``None`` and
    callers fall back to in-process behaviour.
    """

    def __init__(self, config: ConfigData | None = None):
        logger.info("Setting up Redis service")
        config = config or get_config()
        redis_config = config.redis

        self._enabled = redis_config.enabled
        self._client = None
        self._url = redis_config.url

        if not self._enabled:
            logger.info("Redis is disabled, service will not connect")
            return

        if not self._url:
            logger.warning("Redis URL not configured, service will not connect")
            self._enabled = False
            return

        import redis.asyncio as redis_async

        retry = Retry(ExponentialBackoff(base=1, cap=10), retries=6)
        self._client = redis_async.from_url(
            redis_config.connection_string,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=redis_config.socket_timeout,
            socket_keepalive=True,
            health_check_interval=30,
            retry=retry,
            client_name="jellybridge",
        )
        logger.info("Redis client initialized")

    def get_client(self):
        """Return the async client, or ``None`` when Redis is disabled."""
        if not self._enabled:
            return None
        return self._client

    async def health_check(self) -> bool:
        if not self._enabled or not self._client:
            return False

        try:
            await self._client.ping()
            return True
        except Exception as e:
            logger.error(
                "Redis health check failed",
                extra={
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                },
            )
            return False

    async def close(self) -> None:
        """Close the Redis connection and clean up resources."""
        if self._client:
            try:
                logger.info("Closing Redis connection")
                await self._client.aclose()
            except Exception as e:
                logger.error(
                    "Error closing Redis connection",
                    extra={
                        "error_type": type(e).__name__,
                        "error_message": str(e),
                    },
                )
            finally:
                self._client = None

    @property
    def is_enabled(self) -> bool:
        return self._enabled
