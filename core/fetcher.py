# core/fetcher.py
import asyncio
import json
import logging
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from util.constants import JobMessages
from util.errors import FetchFailedError
from util.functions import clip_text, last_line
from util.timing import timed

logger = logging.getLogger(__name__)


@dataclass
class FetchOutcome:
    returncode: int
    stdout: str
    stderr: str
    title: Optional[str] = None


def output_template(download_dir: Path, job_id: str) -> str:
    """
    Deterministic output path for a job. The tool picks the extension, so the
    final file is found later by its "<job_id>." prefix.
    """
    return str(download_dir / f"{job_id}.%(ext)s")


def build_argv(command: str, url: str, output: str) -> list[str]:
    # Substitute per token so a URL or path with spaces stays a single argument
    return [
        token.replace("{url}", url).replace("{output}", output)
        for token in shlex.split(command)
    ]


def parse_title(stdout: str) -> Optional[str]:
    """Title from the last JSON object the tool printed (yt-dlp --print-json)."""
    for line in reversed(stdout.splitlines()):
        line = line.strip()
        if not line.startswith("{"):
            continue
        try:
            obj = json.loads(line)
        except ValueError:
            continue
        title = str(obj.get("title") or "").strip()
        return title or None
    return None


class MediaFetcher:
    """Runs the external fetch tool for one job at a time."""

    def __init__(self, command: str, download_dir: Path, timeout: float) -> None:
        self._command = command
        self._download_dir = Path(download_dir)
        self._timeout = timeout

    @property
    def download_dir(self) -> Path:
        return self._download_dir

    async def fetch(self, job_id: str, url: str) -> FetchOutcome:
        """
        Raises FetchFailedError when the tool cannot start, exits non-zero,
        or outlives the timeout (the process is killed first).
        """
        argv = build_argv(
            self._command, url, output_template(self._download_dir, job_id)
        )
        logger.info("fetch.start job=%s cmd=%s", job_id, argv[0])

        with timed(logger, "fetch.run", job=job_id):
            try:
                process = await asyncio.create_subprocess_exec(
                    *argv,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
            except OSError as e:
                raise FetchFailedError(f"{JobMessages.FETCH_FAILED} ({e})") from e

            try:
                stdout, stderr = await asyncio.wait_for(
                    process.communicate(), timeout=self._timeout
                )
            except asyncio.TimeoutError:
                await self._kill(process)
                raise FetchFailedError(
                    f"{JobMessages.FETCH_TIMEOUT} (limit {self._timeout:g}s)"
                )
            except asyncio.CancelledError:
                # Pool shutdown past the grace period; do not leave orphans behind
                await self._kill(process)
                raise

        out = stdout.decode("utf-8", errors="replace") if stdout else ""
        err = stderr.decode("utf-8", errors="replace") if stderr else ""
        code = process.returncode or 0
        if code != 0:
            logger.warning(
                "fetch.failed job=%s exit=%d stderr=%s", job_id, code, clip_text(err)
            )
            detail = clip_text(last_line(err) or last_line(out), 200)
            message = f"{JobMessages.FETCH_FAILED} (exit {code})"
            raise FetchFailedError(f"{message}: {detail}" if detail else message)

        return FetchOutcome(returncode=code, stdout=out, stderr=err, title=parse_title(out))

    @staticmethod
    async def _kill(process: asyncio.subprocess.Process) -> None:
        if process.returncode is not None:
            return
        try:
            process.kill()
        except ProcessLookupError:
            return
        await process.wait()
