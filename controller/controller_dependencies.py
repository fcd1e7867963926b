from fastapi import Request
from fastapi_limiter.depends import RateLimiter
from config.settings import settings
from repository.job_repository import JobRepository
from repository.queue_repository import DispatchQueue
from repository.result_repository import ResultRepository
from service.job_service import JobService

submit_rate_limiter = RateLimiter(
    times=settings.RATE_LIMIT_TIMES, seconds=settings.RATE_LIMIT_SECONDS
)


def get_job_service(request: Request) -> JobService:
    # The lifespan owns the client; handlers only borrow it
    redis = request.app.state.redis
    _jobs = JobRepository(redis, ttl_seconds=settings.JOB_TTL_SECONDS)
    _results = ResultRepository(redis, ttl_seconds=settings.ARTIFACT_TTL_SECONDS)
    _queue = DispatchQueue(redis)
    return JobService(
        _jobs,
        _results,
        _queue,
        download_dir=settings.DOWNLOAD_DIR,
        workers=settings.MAX_WORKERS,
    )
