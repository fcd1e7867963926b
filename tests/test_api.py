"""HTTP layer over a fake Redis; workers are driven by hand where needed."""
import asyncio

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError

from config.settings import settings
from controller.controller_dependencies import submit_rate_limiter
from core.worker import DownloadWorker
from main import app
from model.job import JobStatus

from conftest import ARTIFACT_TTL


@pytest_asyncio.fixture
async def client(redis, download_dir, monkeypatch):
    monkeypatch.setattr(settings, "DOWNLOAD_DIR", str(download_dir))
    app.state.redis = redis
    app.dependency_overrides[submit_rate_limiter] = lambda: None
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def worker(jobs, results, queue, fetcher):
    return DownloadWorker(
        1,
        jobs=jobs,
        results=results,
        queue=queue,
        fetcher=fetcher,
        stop_event=asyncio.Event(),
        artifact_ttl_seconds=ARTIFACT_TTL,
    )


async def _run_next(worker, queue):
    job_id = await queue.dequeue(timeout=1)
    return await worker.process(job_id)


@pytest.mark.asyncio
async def test_submit_returns_pending_job(client, queue):
    resp = await client.post("/api/v1/jobs", json={"resourceLocator": "https://example.test/video1"})

    assert resp.status_code == 201
    body = resp.json()
    assert body["jobId"]
    assert body["status"] == "pending"
    assert await queue.depth() == 1

    status = await client.get(f"/api/v1/jobs/{body['jobId']}")
    assert status.status_code == 200
    assert status.json()["job"]["status"] in ("pending", "processing")
    assert status.json()["result"] is None


@pytest.mark.asyncio
async def test_submit_accepts_legacy_url_field(client):
    resp = await client.post("/api/v1/jobs", json={"url": "https://example.test/video1"})

    assert resp.status_code == 201


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [{"resourceLocator": ""}, {"resourceLocator": "   "}, {"resourceLocator": None}, {}],
)
async def test_empty_locator_is_rejected_without_side_effects(client, queue, redis, payload):
    resp = await client.post("/api/v1/jobs", json=payload)

    assert resp.status_code == 400
    assert await queue.depth() == 0
    assert await redis.keys("job:*") == []


@pytest.mark.asyncio
async def test_unknown_job_is_not_found(client):
    resp = await client.get("/api/v1/jobs/does-not-exist")

    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_completed_job_round_trip_to_download(client, worker, queue):
    job_id = (
        await client.post("/api/v1/jobs", json={"resourceLocator": "https://example.test/video1"})
    ).json()["jobId"]

    assert await _run_next(worker, queue) == JobStatus.COMPLETED

    body = (await client.get(f"/api/v1/jobs/{job_id}")).json()
    assert body["job"]["status"] == "completed"
    assert body["job"]["filename"] == body["result"]["filename"]
    assert body["result"]["filename"].startswith(job_id)

    download = await client.get(f"/api/v1/download/{body['result']['filename']}")
    assert download.status_code == 200
    assert download.content == b"fake media"
    assert download.headers["content-disposition"].startswith("attachment")


@pytest.mark.asyncio
async def test_failed_job_reports_message_and_no_result(client, worker, queue):
    job_id = (
        await client.post("/api/v1/jobs", json={"resourceLocator": "https://example.test/fail"})
    ).json()["jobId"]

    assert await _run_next(worker, queue) == JobStatus.FAILED

    body = (await client.get(f"/api/v1/jobs/{job_id}")).json()
    assert body["job"]["status"] == "failed"
    assert body["job"]["message"]
    assert body["result"] is None


@pytest.mark.asyncio
async def test_repeated_polls_never_go_backwards(client, worker, queue):
    order = ["pending", "processing", "completed", "failed"]
    job_id = (
        await client.post("/api/v1/jobs", json={"resourceLocator": "https://example.test/video1"})
    ).json()["jobId"]

    seen = [(await client.get(f"/api/v1/jobs/{job_id}")).json()["job"]["status"]]
    await _run_next(worker, queue)
    for _ in range(3):
        seen.append((await client.get(f"/api/v1/jobs/{job_id}")).json()["job"]["status"])

    ranks = [order.index(s) for s in seen]
    assert ranks == sorted(ranks)
    assert seen[-1] == "completed"


@pytest.mark.asyncio
async def test_swept_artifact_is_no_longer_downloadable(client, download_dir):
    from core.janitor import Janitor

    (download_dir / "old-job.mp4").write_bytes(b"x")
    assert (await client.get("/api/v1/download/old-job.mp4")).status_code == 200

    Janitor(download_dir, ttl_seconds=0).sweep(now=10**12)

    assert (await client.get("/api/v1/download/old-job.mp4")).status_code == 404


@pytest.mark.asyncio
@pytest.mark.parametrize("name", ["..%2Fsecret.txt", ".hidden", "missing.mp4"])
async def test_download_rejects_bad_or_missing_names(client, download_dir, name):
    (download_dir.parent / "secret.txt").write_text("nope")
    (download_dir / ".hidden").write_text("nope")

    resp = await client.get(f"/api/v1/download/{name}")

    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_queue_stats(client, queue):
    for i in range(3):
        await client.post("/api/v1/jobs", json={"resourceLocator": f"https://example.test/{i}"})

    body = (await client.get("/api/v1/queue")).json()

    assert body == {"depth": 3, "workers": settings.MAX_WORKERS}


@pytest.mark.asyncio
async def test_store_outage_surfaces_as_503(client, redis, monkeypatch):
    async def down(*args, **kwargs):
        raise RedisConnectionError("connection refused")

    monkeypatch.setattr(redis, "hgetall", down)

    resp = await client.get("/api/v1/jobs/any")

    assert resp.status_code == 503


@pytest.mark.asyncio
async def test_healthz(client):
    assert (await client.get("/healthz")).json() == {"ok": True}
