from typing import Optional
from pydantic import AliasChoices, BaseModel, Field
from model.job import Job, JobStatus
from model.result import Result


class SubmitJobRequest(BaseModel):
    # Older clients post {"url": ...}
    resourceLocator: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("resourceLocator", "url")
    )


class SubmitJobResponse(BaseModel):
    jobId: str
    status: JobStatus
    message: str


class JobStatusResponse(BaseModel):
    job: Job
    result: Optional[Result] = None


class QueueStatsResponse(BaseModel):
    depth: int
    workers: int
