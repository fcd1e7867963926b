"""
Pytest configuration: environment for Settings, a fake Redis per test,
and a stand-in for the external fetch tool.
"""
import os
import shlex
import sys
import textwrap
from pathlib import Path

import fakeredis
import pytest

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

# Settings is built at import time, so these must be set before any project import
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from core.fetcher import MediaFetcher  # noqa: E402
from repository.job_repository import JobRepository  # noqa: E402
from repository.queue_repository import DispatchQueue  # noqa: E402
from repository.result_repository import ResultRepository  # noqa: E402

JOB_TTL = 7200
ARTIFACT_TTL = 900

# Behaviour is picked from the URL so one script covers every scenario:
#   ...fail...    exit 1 with an error on stderr
#   ...nofile...  exit 0 without writing anything
#   ...slow-<s>...sleep <s> seconds before writing
#   anything else writes <id>.mp4 and prints a yt-dlp style JSON line
FAKE_TOOL = textwrap.dedent(
    """
    import json, os, re, sys, time
    url, output = sys.argv[1], sys.argv[2]
    log = os.environ.get("FAKE_TOOL_LOG")
    if log:
        with open(log, "a") as fh:
            fh.write(url + "\\n")
    if "fail" in url:
        print("ERROR: Unsupported URL: " + url, file=sys.stderr)
        sys.exit(1)
    if "nofile" in url:
        sys.exit(0)
    m = re.search(r"slow-([0-9.]+)", url)
    if m:
        time.sleep(float(m.group(1)))
    path = output.replace("%(ext)s", "mp4")
    with open(path, "wb") as fh:
        fh.write(b"fake media")
    print("[download] Destination: " + path)
    print(json.dumps({"title": "Demo clip", "_filename": path}))
    """
)


@pytest.fixture
def redis():
    return fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer())


@pytest.fixture
def jobs(redis):
    return JobRepository(redis, ttl_seconds=JOB_TTL)


@pytest.fixture
def results(redis):
    return ResultRepository(redis, ttl_seconds=ARTIFACT_TTL)


@pytest.fixture
def queue(redis):
    return DispatchQueue(redis)


@pytest.fixture
def download_dir(tmp_path):
    d = tmp_path / "downloads"
    d.mkdir()
    return d


@pytest.fixture
def fake_tool_command(tmp_path):
    script = tmp_path / "fake_fetch_tool.py"
    script.write_text(FAKE_TOOL)
    return f"{shlex.quote(sys.executable)} {shlex.quote(str(script))} {{url}} {{output}}"


@pytest.fixture
def fetcher(fake_tool_command, download_dir):
    return MediaFetcher(fake_tool_command, download_dir, timeout=10)
