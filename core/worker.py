"""Queue worker that downloads one job at a time through the external fetch tool."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional
from redis.exceptions import RedisError
from core.artifacts import find_artifact, guess_content_type
from core.fetcher import MediaFetcher
from model.job import JobStatus
from model.result import Result
from repository.job_repository import JobRepository
from repository.queue_repository import DispatchQueue
from repository.result_repository import ResultRepository
from util.constants import JobMessages
from util.errors import ArtifactMissingError, FetchError, IllegalTransitionError

logger = logging.getLogger(__name__)


@dataclass
class WorkerStats:
    """Per-worker counters, mostly for tests and the shutdown log line."""

    processed: int = 0
    completed: int = 0
    failed: int = 0
    skipped: int = 0
    store_errors: int = 0


class DownloadWorker:
    """
    Flow per iteration:
    - BLPOP a job id (bounded slice, so the stop event is noticed between waits).
    - Load the job; a missing record is logged and skipped, never requeued.
    - processing -> run the tool -> locate "<id>.*" -> result + completed,
      or failed with a message. Nothing a single job does ends the loop.
    """

    def __init__(
        self,
        worker_id: int,
        *,
        jobs: JobRepository,
        results: ResultRepository,
        queue: DispatchQueue,
        fetcher: MediaFetcher,
        stop_event: asyncio.Event,
        artifact_ttl_seconds: int,
        dequeue_timeout: int = 1,
        store_retry_seconds: float = 1.0,
    ) -> None:
        self.worker_id = worker_id
        self.jobs = jobs
        self.results = results
        self.queue = queue
        self.fetcher = fetcher
        self.stop_event = stop_event
        self.artifact_ttl_seconds = artifact_ttl_seconds
        self.dequeue_timeout = dequeue_timeout
        self.store_retry_seconds = store_retry_seconds
        self.stats = WorkerStats()
        self.current_job_id: Optional[str] = None
        # True once this worker moved current_job_id to processing
        self._owns_job = False

    async def run(self) -> WorkerStats:
        logger.info("worker.ready worker=%d", self.worker_id)
        while not self.stop_event.is_set():
            try:
                job_id = await self.queue.dequeue(timeout=self.dequeue_timeout)
            except RedisError as e:
                self.stats.store_errors += 1
                logger.error("worker.queue.error worker=%d err=%s", self.worker_id, e)
                await self._pause()
                continue
            if job_id is None:
                continue
            await self.process(job_id)
        logger.info("worker.stopped worker=%d stats=%s", self.worker_id, self.stats)
        return self.stats

    async def process(self, job_id: str) -> Optional[JobStatus]:
        """
        Take one dequeued job to a terminal status. Returns that status, or None
        when the job was skipped or the store failed mid-way.
        """
        self.current_job_id = job_id
        self._owns_job = False
        try:
            return await self._process(job_id)
        except RedisError as e:
            self.stats.store_errors += 1
            logger.error(
                "worker.job.store_error worker=%d job=%s err=%s", self.worker_id, job_id, e
            )
            await self._pause()
            return None
        except Exception:
            logger.exception("worker.job.crashed worker=%d job=%s", self.worker_id, job_id)
            if await self._try_fail(job_id, JobMessages.INTERNAL_ERROR):
                return JobStatus.FAILED
            return None
        finally:
            self.current_job_id = None
            self._owns_job = False

    async def _process(self, job_id: str) -> Optional[JobStatus]:
        job = await self.jobs.get(job_id)
        if job is None:
            # Record expired (or never written) before we got to it
            self.stats.skipped += 1
            logger.warning("worker.job.missing worker=%d job=%s", self.worker_id, job_id)
            return None

        try:
            moved = await self.jobs.update_status(
                job_id, JobStatus.PROCESSING, JobMessages.PROCESSING
            )
        except IllegalTransitionError:
            # Duplicate or re-pushed id; the job belongs to whoever moved it first
            self.stats.skipped += 1
            logger.warning(
                "worker.job.not_pending worker=%d job=%s status=%s",
                self.worker_id,
                job_id,
                job.status.value,
            )
            return None
        if not moved:
            self.stats.skipped += 1
            logger.warning("worker.job.vanished worker=%d job=%s", self.worker_id, job_id)
            return None
        self._owns_job = True
        self.stats.processed += 1
        logger.info("worker.job.start worker=%d job=%s url=%s", self.worker_id, job_id, job.url)

        try:
            outcome = await self.fetcher.fetch(job_id, job.url)
            artifact = await asyncio.to_thread(
                find_artifact, self.fetcher.download_dir, job_id
            )
            if artifact is None:
                raise ArtifactMissingError(JobMessages.ARTIFACT_MISSING)
        except FetchError as e:
            self.stats.failed += 1
            logger.warning(
                "worker.job.failed worker=%d job=%s reason=%s", self.worker_id, job_id, e
            )
            await self.jobs.update_status(job_id, JobStatus.FAILED, str(e))
            return JobStatus.FAILED

        # Result first, so a completed job always has its metadata unless it expired
        result = Result(
            filename=artifact.name,
            filepath=str(artifact),
            content_type=guess_content_type(artifact.name),
        )
        await self.results.put(job_id, result)
        await self.jobs.update_status(
            job_id,
            JobStatus.COMPLETED,
            JobMessages.COMPLETED,
            ttl_seconds=self.artifact_ttl_seconds,
            filename=artifact.name,
            title=outcome.title,
        )
        self.stats.completed += 1
        logger.info(
            "worker.job.completed worker=%d job=%s file=%s",
            self.worker_id,
            job_id,
            artifact.name,
        )
        return JobStatus.COMPLETED

    async def _try_fail(self, job_id: str, message: str) -> bool:
        if not self._owns_job:
            return False
        try:
            status = await self.jobs.get_status(job_id)
            if status == JobStatus.PROCESSING and await self.jobs.update_status(
                job_id, JobStatus.FAILED, message
            ):
                self.stats.failed += 1
                return True
        except RedisError as e:
            self.stats.store_errors += 1
            logger.error("worker.job.fail_write worker=%d job=%s err=%s", self.worker_id, job_id, e)
        return False

    async def _pause(self) -> None:
        try:
            await asyncio.wait_for(self.stop_event.wait(), timeout=self.store_retry_seconds)
        except asyncio.TimeoutError:
            pass
