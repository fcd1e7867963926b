import logging
from datetime import datetime, timezone
from typing import Final, Optional
from uuid import uuid4
from redis.asyncio import Redis
from redis.exceptions import WatchError
from model.job import Job, JobStatus, can_transition
from repository.namespaces import JOBS
from util.constants import JobMessages
from util.errors import IllegalTransitionError

KEY_PREFIX: Final[str] = JOBS

logger = logging.getLogger(__name__)


def _s(v) -> str:
    return v.decode("utf-8") if isinstance(v, (bytes, bytearray)) else str(v)


class JobRepository:
    """
    Redis hash per job (job:<id>) with a rolling TTL.

    Every write refreshes the TTL so abandoned or stuck jobs vanish on their own.
    Expired and never-created jobs look the same to readers.
    """

    def __init__(self, redis: Redis, ttl_seconds: int) -> None:
        self._redis = redis
        self._ttl = int(ttl_seconds)

    @staticmethod
    def _key(job_id: str) -> str:
        return f"{KEY_PREFIX}:{job_id}"

    # ---------------- Core CRUD ----------------

    async def create(self, url: str) -> Job:
        job = Job(
            id=str(uuid4()),
            url=url,
            status=JobStatus.PENDING,
            message=JobMessages.PENDING,
            created_at=datetime.now(timezone.utc).isoformat(timespec="seconds"),
        )
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.hset(self._key(job.id), mapping=self._mapping(job))
            pipe.expire(self._key(job.id), self._ttl)
            await pipe.execute()
        return job

    async def get(self, job_id: str) -> Optional[Job]:
        if not job_id:
            return None
        h = await self._redis.hgetall(self._key(job_id))
        if not h:
            return None
        data = {_s(k): _s(v) for k, v in h.items()}
        try:
            return Job.model_validate(data)
        except Exception:
            logger.warning("jobs.get.malformed job=%s", job_id)
            return None

    async def delete(self, job_id: str) -> int:
        if not job_id:
            return 0
        return int(await self._redis.delete(self._key(job_id)))

    # ---------------- Status helpers ----------------

    async def update_status(
        self,
        job_id: str,
        status: JobStatus,
        message: str,
        *,
        ttl_seconds: Optional[int] = None,
        **fields: str,
    ) -> bool:
        """
        Move a job to `status`, touching only the given fields, and re-arm its TTL
        (`ttl_seconds` overrides the rolling default).

        Returns False when the record is gone; the update is dropped rather than
        resurrecting a partial hash. Raises IllegalTransitionError for a change
        that would skip or reverse the lifecycle.
        """
        key = self._key(job_id)
        mapping = {"status": status.value, "message": message}
        mapping.update({k: v for k, v in fields.items() if v is not None})
        ttl = int(ttl_seconds) if ttl_seconds is not None else self._ttl

        async with self._redis.pipeline(transaction=True) as pipe:
            try:
                await pipe.watch(key)
                raw = await pipe.hget(key, "status")
                if raw is None:
                    logger.debug("jobs.update.lost job=%s status=%s", job_id, status.value)
                    return False
                current = JobStatus(_s(raw))
                if not can_transition(current, status):
                    raise IllegalTransitionError(
                        f"job {job_id}: {current.value} -> {status.value}"
                    )
                pipe.multi()
                pipe.hset(key, mapping=mapping)
                pipe.expire(key, ttl)
                await pipe.execute()
            except WatchError:
                # Only the owning worker writes a job, so this means it expired mid-update
                logger.warning("jobs.update.raced job=%s status=%s", job_id, status.value)
                return False
        return True

    async def get_status(self, job_id: str) -> Optional[JobStatus]:
        v = await self._redis.hget(self._key(job_id), "status")
        if v is None:
            return None
        return JobStatus(_s(v))

    @staticmethod
    def _mapping(job: Job) -> dict[str, str]:
        return {
            k: (v.value if isinstance(v, JobStatus) else str(v))
            for k, v in job.model_dump().items()
            if v is not None
        }
