# core/artifacts.py
import mimetypes
from pathlib import Path
from typing import Optional
from util.constants import DEFAULT_CONTENT_TYPE, PARTIAL_SUFFIXES


def find_artifact(download_dir: Path, job_id: str) -> Optional[Path]:
    """
    The file the tool produced for `job_id`: the lexicographically smallest
    regular file named "<job_id>.<ext>", ignoring partial-download leftovers.
    Returns None when nothing matches or the directory is unreadable.
    """
    prefix = f"{job_id}."
    try:
        entries = list(Path(download_dir).iterdir())
    except OSError:
        return None
    matches = sorted(
        p.name
        for p in entries
        if p.name.startswith(prefix)
        and not p.name.endswith(PARTIAL_SUFFIXES)
        and p.is_file()
    )
    if not matches:
        return None
    return Path(download_dir) / matches[0]


def guess_content_type(filename: str) -> str:
    ctype, _ = mimetypes.guess_type(filename)
    return ctype or DEFAULT_CONTENT_TYPE
