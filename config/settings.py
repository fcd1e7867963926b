import os
import sys
from dotenv import load_dotenv
from pydantic import ValidationError, Field
from pydantic_settings import BaseSettings
from util.enums import Environment
import logging


if os.getenv("APP_ENV", Environment.DEV) == Environment.DEV:
    load_dotenv()

_log = logging.getLogger("config.settings")


class Settings(BaseSettings):
    # App
    APP_ENV: str = Field(..., validation_alias="APP_ENV")
    REDIS_URL: str = Field(..., validation_alias="REDIS_URL")

    # CORS & Limits
    ALLOWED_ORIGIN: str = Field(default="*", validation_alias="ALLOWED_ORIGIN")
    RATE_LIMIT_TIMES: int = Field(default=30, validation_alias="RATE_LIMIT_TIMES")
    RATE_LIMIT_SECONDS: int = Field(default=60, validation_alias="RATE_LIMIT_SECONDS")
    TRUST_PROXY: bool = Field(default=False, validation_alias="TRUST_PROXY")

    # Persistence (seconds)
    JOB_TTL_SECONDS: int = Field(default=2 * 60 * 60, validation_alias="JOB_TTL_SECONDS")
    ARTIFACT_TTL_SECONDS: int = Field(
        default=15 * 60, validation_alias="ARTIFACT_TTL_SECONDS"
    )

    # Worker pool
    MAX_WORKERS: int = Field(default=5, validation_alias="MAX_WORKERS")
    DEQUEUE_TIMEOUT_SECONDS: int = Field(
        default=1, validation_alias="DEQUEUE_TIMEOUT_SECONDS"
    )
    STORE_RETRY_SECONDS: float = Field(
        default=1.0, validation_alias="STORE_RETRY_SECONDS"
    )
    WORKER_SHUTDOWN_GRACE_SECONDS: float = Field(
        default=30.0, validation_alias="WORKER_SHUTDOWN_GRACE_SECONDS"
    )

    # External fetch tool. {url} and {output} are substituted per argument.
    DOWNLOAD_DIR: str = Field(default="./downloads", validation_alias="DOWNLOAD_DIR")
    FETCH_COMMAND: str = Field(
        default=(
            "yt-dlp --no-warnings --no-progress --no-mtime --print-json "
            "--format 'bestvideo[ext=mp4]+bestaudio[ext=m4a]/best[ext=mp4]/best' "
            "-o {output} {url}"
        ),
        validation_alias="FETCH_COMMAND",
    )
    FETCH_TIMEOUT_SECONDS: float = Field(
        default=30 * 60, validation_alias="FETCH_TIMEOUT_SECONDS"
    )

    # Janitor
    JANITOR_INTERVAL_SECONDS: float = Field(
        default=60.0, validation_alias="JANITOR_INTERVAL_SECONDS"
    )

    # Logging knobs
    LOGGER_NAME: str = "media-fetch-queue"
    LOG_LEVEL: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    LOG_TO_FILE: bool = Field(default=False, validation_alias="LOG_TO_FILE")
    LOG_DIR: str = Field(default="logs", validation_alias="LOG_DIR")
    LOG_FILE_NAME: str = Field(default="app.log", validation_alias="LOG_FILE_NAME")
    LOG_MAX_BYTES: int = Field(
        default=50 * 1024 * 1024, validation_alias="LOG_MAX_BYTES"
    )
    LOG_BACKUP_COUNT: int = Field(default=5, validation_alias="LOG_BACKUP_COUNT")


try:
    settings = Settings()
except ValidationError as e:
    print("❌ Missing/invalid environment variables:", file=sys.stderr)
    for err in e.errors():
        loc = ".".join(str(x) for x in err.get("loc", []))
        msg = err.get("msg", "")
        print(f" - {loc}: {msg}", file=sys.stderr)
    sys.exit(1)
except Exception as e:
    print(f"❌ Settings initialization failed: {e}", file=sys.stderr)
    sys.exit(1)
