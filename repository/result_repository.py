from typing import Final, Optional
from redis.asyncio import Redis
from model.result import Result
from repository.namespaces import RESULTS

KEY_PREFIX: Final[str] = RESULTS


class ResultRepository:
    """
    Artifact metadata per completed job (result:<id>).

    Lives on its own, shorter clock than the job; absence after expiry is normal.
    The physical file is reclaimed separately by the janitor.
    """

    def __init__(self, redis: Redis, ttl_seconds: int) -> None:
        self._redis = redis
        self._ttl = int(ttl_seconds)

    @staticmethod
    def _key(job_id: str) -> str:
        return f"{KEY_PREFIX}:{job_id}"

    async def put(self, job_id: str, result: Result) -> None:
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.hset(self._key(job_id), mapping=result.model_dump())
            pipe.expire(self._key(job_id), self._ttl)
            await pipe.execute()

    async def get(self, job_id: str) -> Optional[Result]:
        h = await self._redis.hgetall(self._key(job_id))
        if not h:
            return None
        return Result.model_validate(
            {
                (k.decode("utf-8") if isinstance(k, bytes) else k): (
                    v.decode("utf-8") if isinstance(v, bytes) else v
                )
                for k, v in h.items()
            }
        )

    async def delete(self, job_id: str) -> int:
        return int(await self._redis.delete(self._key(job_id)))
