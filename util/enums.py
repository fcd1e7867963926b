# util/enums.py
from enum import Enum
from typing import NamedTuple
from fastapi import status


class Color(str, Enum):
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    BLUE = "\033[34m"

    def __str__(self):
        return self.value


class Environment(str, Enum):
    DEV = "dev"
    PROD = "prod"


class ErrorInfo(NamedTuple):
    message: str
    http_status: int


class ErrorMessage(Enum):
    EMPTY_LOCATOR = ErrorInfo(
        "resourceLocator must not be empty", status.HTTP_400_BAD_REQUEST
    )
    JOB_NOT_FOUND = ErrorInfo(
        "Job not found or already expired", status.HTTP_404_NOT_FOUND
    )
    FILE_NOT_FOUND = ErrorInfo(
        "File not found or already expired", status.HTTP_404_NOT_FOUND
    )
    STORE_UNAVAILABLE = ErrorInfo(
        "Backing store unavailable", status.HTTP_503_SERVICE_UNAVAILABLE
    )
