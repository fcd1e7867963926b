from typing import Optional
from redis.asyncio import Redis
from repository.namespaces import QUEUE


class DispatchQueue:
    """
    Flow:
    - Producers RPUSH job ids onto a Redis list, after the job hash exists.
    - Workers BLPOP from the head, so each id reaches exactly one worker in push order.
    - No ack, no requeue: a popped id that is never finished stays lost in 'processing'.
    """

    def __init__(self, redis: Redis, key: str = QUEUE) -> None:
        self._redis = redis
        self._key = key

    async def enqueue(self, job_id: str) -> int:
        return int(await self._redis.rpush(self._key, job_id))

    async def dequeue(self, timeout: int = 0) -> Optional[str]:
        """
        Block until an id is available. timeout=0 waits forever; otherwise None is
        returned once `timeout` seconds pass with an empty queue.
        """
        popped = await self._redis.blpop([self._key], timeout=timeout)
        if popped is None:
            return None
        _, raw = popped
        return raw.decode("utf-8") if isinstance(raw, bytes) else str(raw)

    async def depth(self) -> int:
        return int(await self._redis.llen(self._key))
