# util/errors.py
from fastapi import HTTPException, status
from util.enums import ErrorMessage


class AppError(HTTPException):
    # Flow: raise AppError to short-circuit with a typed status & message.
    def __init__(
        self, message: str, http_status: int = status.HTTP_400_BAD_REQUEST
    ) -> None:
        super().__init__(status_code=http_status, detail=message)

    @classmethod
    def of(cls, error: ErrorMessage) -> "AppError":
        return cls(error.value.message, error.value.http_status)


class InvalidInputError(AppError):
    pass


class NotFoundError(AppError):
    pass


class StoreUnavailableError(AppError):
    pass


class IllegalTransitionError(RuntimeError):
    """A status change that would skip or reverse the job lifecycle."""


class FetchError(Exception):
    """Per-job failure inside a worker; recorded on the job, never re-raised."""


class FetchFailedError(FetchError):
    pass


class ArtifactMissingError(FetchError):
    pass
