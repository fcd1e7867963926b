# core/janitor.py
import asyncio
import logging
import os
import time
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)


class Janitor:
    """
    Periodic sweep of the download directory by file age (mtime).

    Independent of Redis TTLs: the store forgets the metadata, the janitor
    removes the bytes; whichever runs first is fine.
    """

    def __init__(
        self,
        download_dir: Path,
        ttl_seconds: float,
        interval_seconds: float = 60.0,
    ) -> None:
        self.download_dir = Path(download_dir)
        self.ttl_seconds = ttl_seconds
        self.interval_seconds = interval_seconds
        self._stop = asyncio.Event()

    def sweep(self, now: Optional[float] = None) -> List[str]:
        """Delete files older than the TTL; returns the names removed."""
        now = time.time() if now is None else now
        removed: List[str] = []
        try:
            entries = sorted(os.scandir(self.download_dir), key=lambda e: e.name)
        except OSError as e:
            logger.warning("janitor.scan.error dir=%s err=%s", self.download_dir, e)
            return removed

        for entry in entries:
            try:
                if not entry.is_file(follow_symlinks=False):
                    continue
                age = now - entry.stat(follow_symlinks=False).st_mtime
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning("janitor.stat.error file=%s err=%s", entry.name, e)
                continue
            if age <= self.ttl_seconds:
                continue
            try:
                os.remove(entry.path)
            except FileNotFoundError:
                # Someone else got there first
                continue
            except OSError as e:
                logger.error("janitor.delete.error file=%s err=%s", entry.name, e)
                continue
            removed.append(entry.name)
            logger.info("janitor.deleted file=%s age_min=%.0f", entry.name, age / 60)
        return removed

    async def run(self) -> None:
        logger.info(
            "janitor.ready dir=%s every=%gs ttl=%gs",
            self.download_dir,
            self.interval_seconds,
            self.ttl_seconds,
        )
        while not self._stop.is_set():
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval_seconds)
                break
            except asyncio.TimeoutError:
                pass
            await asyncio.to_thread(self.sweep)
        logger.info("janitor.stopped")

    def stop(self) -> None:
        self._stop.set()
