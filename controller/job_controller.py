from fastapi import APIRouter, Depends, status
from fastapi.responses import FileResponse
from controller.controller_dependencies import get_job_service, submit_rate_limiter
from model.api import (
    JobStatusResponse,
    QueueStatsResponse,
    SubmitJobRequest,
    SubmitJobResponse,
)
from service.job_service import JobService
from util.constants import InternalURIs

job_router = APIRouter()


@job_router.post(
    InternalURIs.JOBS,
    response_model=SubmitJobResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(submit_rate_limiter)],
)
async def submit_job(
    payload: SubmitJobRequest,
    service: JobService = Depends(get_job_service),
) -> SubmitJobResponse:
    return await service.submit(payload.resourceLocator)


@job_router.get(InternalURIs.JOB_STATUS, response_model=JobStatusResponse)
async def job_status(
    job_id: str,
    service: JobService = Depends(get_job_service),
) -> JobStatusResponse:
    return await service.get_status(job_id)


@job_router.get(InternalURIs.QUEUE, response_model=QueueStatsResponse)
async def queue_stats(
    service: JobService = Depends(get_job_service),
) -> QueueStatsResponse:
    return await service.queue_stats()


@job_router.get(InternalURIs.DOWNLOAD)
async def download(
    filename: str,
    service: JobService = Depends(get_job_service),
) -> FileResponse:
    path = service.resolve_artifact(filename)
    # filename= makes Starlette send Content-Disposition: attachment
    return FileResponse(path, filename=path.name)
