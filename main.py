import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from fastapi_limiter import FastAPILimiter
import routes
from util.enums import Environment, Color
from fastapi import FastAPI, Request
from starlette.middleware.cors import CORSMiddleware
from config.settings import settings
from config.cache import close_redis, create_redis
from core.fetcher import MediaFetcher
from core.janitor import Janitor
from core.pool import WorkerPool
from core.worker import DownloadWorker
from repository.job_repository import JobRepository
from repository.queue_repository import DispatchQueue
from repository.result_repository import ResultRepository
from fastapi.responses import JSONResponse
from util.logger import init_logger

logger = logging.getLogger(__name__)


async def _real_ip(request: Request) -> str:
    if settings.TRUST_PROXY:
        fwd = request.headers.get("x-forwarded-for")
        if fwd:
            return fwd.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def build_pool(redis, download_dir: Path) -> WorkerPool:
    jobs = JobRepository(redis, ttl_seconds=settings.JOB_TTL_SECONDS)
    results = ResultRepository(redis, ttl_seconds=settings.ARTIFACT_TTL_SECONDS)
    queue = DispatchQueue(redis)
    fetcher = MediaFetcher(
        settings.FETCH_COMMAND, download_dir, timeout=settings.FETCH_TIMEOUT_SECONDS
    )

    def _worker(worker_id: int, stop_event: asyncio.Event) -> DownloadWorker:
        return DownloadWorker(
            worker_id,
            jobs=jobs,
            results=results,
            queue=queue,
            fetcher=fetcher,
            stop_event=stop_event,
            artifact_ttl_seconds=settings.ARTIFACT_TTL_SECONDS,
            dequeue_timeout=settings.DEQUEUE_TIMEOUT_SECONDS,
            store_retry_seconds=settings.STORE_RETRY_SECONDS,
        )

    return WorkerPool(settings.MAX_WORKERS, _worker)


@asynccontextmanager
async def lifespan(fastApi: FastAPI):
    init_logger()
    print(f"{Color.GREEN}Initializing...{Color.RESET}")
    try:
        redis = await create_redis(settings.REDIS_URL)
    except Exception as e:
        # No store, no service
        print("Failed to connect to Redis:", e)
        raise
    await FastAPILimiter.init(redis, identifier=_real_ip)

    download_dir = Path(settings.DOWNLOAD_DIR)
    download_dir.mkdir(parents=True, exist_ok=True)

    pool = build_pool(redis, download_dir)
    janitor = Janitor(
        download_dir,
        ttl_seconds=settings.ARTIFACT_TTL_SECONDS,
        interval_seconds=settings.JANITOR_INTERVAL_SECONDS,
    )
    fastApi.state.redis = redis
    fastApi.state.pool = pool
    pool.start()
    janitor_task = asyncio.create_task(janitor.run(), name="janitor")
    print(f"{Color.BLUE}Server Started{Color.RESET}")

    try:
        yield
    finally:
        janitor.stop()
        stats = await pool.stop(grace_seconds=settings.WORKER_SHUTDOWN_GRACE_SECONDS)
        await janitor_task
        logger.info(
            "shutdown.workers completed=%d failed=%d",
            sum(s.completed for s in stats),
            sum(s.failed for s in stats),
        )
        try:
            await close_redis(redis)
        except Exception as e:
            print("Error closing Redis:", e)

        print(f"{Color.RED}Server Shutdown{Color.RESET}")


app: FastAPI = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.ALLOWED_ORIGIN],
    allow_credentials=True,  # Allow cookies and other credentials
    allow_methods=["GET", "POST"],  # Allowed HTTP Methods
    allow_headers=["Content-Type", "Accept", "Origin"],  # Allowed HTTP Headers
)


@app.get("/healthz")
async def healthz():
    return {"ok": True}


@app.exception_handler(429)
async def ratelimit_handler(request: Request, exc):
    return JSONResponse(
        status_code=429,
        content={
            "ok": False,
            "error": "rate_limited",
            "message": f"Too many requests. Try again in {settings.RATE_LIMIT_SECONDS}s.",
        },
        headers={"Retry-After": str(settings.RATE_LIMIT_SECONDS)},
    )


routes.register_routes(app)

if __name__ == "__main__":
    import uvicorn

    reload = settings.APP_ENV == Environment.DEV
    uvicorn.run("main:app", host="127.0.0.1", port=3000, reload=reload)
