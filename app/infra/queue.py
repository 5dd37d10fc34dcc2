"""
Transcription task queue

Publishes transcription requests onto a Redis list consumed by the external
ML worker. Message format: {"record_id": <int>}.
"""

import json
from typing import Awaitable, Callable

from redis.asyncio import Redis
from redis.exceptions import RedisError

from app.core.config import settings
from app.core.logging import get_logger
from app.infra.redis import get_redis_client

logger = get_logger(__name__)


class QueueError(Exception):
    """Publishing to the broker failed"""


class TranscriptionDispatcher:
    def __init__(
        self,
        queue_name: str | None = None,
        client_factory: Callable[[], Awaitable[Redis]] = get_redis_client,
    ):
        self.queue_name = queue_name or settings.transcription_queue
        self._client_factory = client_factory

    async def publish(self, record_id: int) -> None:
        """Enqueue a transcription task; raises QueueError when the broker is unavailable"""
        message = json.dumps({"record_id": record_id})
        try:
            client = await self._client_factory()
            await client.rpush(self.queue_name, message)
        except (RedisError, OSError) as e:
            raise QueueError(f"Failed to publish transcription task for record {record_id}") from e

        logger.info(
            "Sent transcription task for record %s to %s",
            record_id,
            self.queue_name,
            extra={"record_id": record_id},
        )
