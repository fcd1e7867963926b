import logging
from pathlib import Path
from redis.exceptions import RedisError
from model.api import JobStatusResponse, QueueStatsResponse, SubmitJobResponse
from model.job import JobStatus
from repository.job_repository import JobRepository
from repository.queue_repository import DispatchQueue
from repository.result_repository import ResultRepository
from util.enums import ErrorMessage
from util.errors import InvalidInputError, NotFoundError, StoreUnavailableError

logger = logging.getLogger(__name__)


class JobService:
    def __init__(
        self,
        jobs: JobRepository,
        results: ResultRepository,
        queue: DispatchQueue,
        download_dir: Path,
        workers: int,
    ) -> None:
        self._jobs = jobs
        self._results = results
        self._queue = queue
        self._download_dir = Path(download_dir)
        self._workers = workers

    async def submit(self, resource_locator: str) -> SubmitJobResponse:
        """
        Create the job record, then push its id. The record must exist before a
        worker can pop the id.
        """
        url = (resource_locator or "").strip()
        if not url:
            raise InvalidInputError.of(ErrorMessage.EMPTY_LOCATOR)
        try:
            job = await self._jobs.create(url)
            depth = await self._queue.enqueue(job.id)
        except RedisError:
            logger.error("submit.store.error")
            raise StoreUnavailableError.of(ErrorMessage.STORE_UNAVAILABLE)
        logger.info("submit.ok job=%s depth=%d", job.id, depth)
        return SubmitJobResponse(jobId=job.id, status=job.status, message=job.message)

    async def get_status(self, job_id: str) -> JobStatusResponse:
        try:
            job = await self._jobs.get(job_id)
            result = None
            if job is not None and job.status == JobStatus.COMPLETED:
                result = await self._results.get(job_id)
        except RedisError:
            logger.error("status.store.error job=%s", job_id)
            raise StoreUnavailableError.of(ErrorMessage.STORE_UNAVAILABLE)
        if job is None:
            raise NotFoundError.of(ErrorMessage.JOB_NOT_FOUND)
        return JobStatusResponse(job=job, result=result)

    async def queue_stats(self) -> QueueStatsResponse:
        try:
            depth = await self._queue.depth()
        except RedisError:
            raise StoreUnavailableError.of(ErrorMessage.STORE_UNAVAILABLE)
        return QueueStatsResponse(depth=depth, workers=self._workers)

    def resolve_artifact(self, filename: str) -> Path:
        """Map a download name to a file in the artifact directory, or 404."""
        name = Path(filename).name
        if not name or name != filename or name.startswith("."):
            raise NotFoundError.of(ErrorMessage.FILE_NOT_FOUND)
        path = self._download_dir / name
        if not path.is_file():
            raise NotFoundError.of(ErrorMessage.FILE_NOT_FOUND)
        return path
