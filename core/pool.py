# core/pool.py
import asyncio
import logging
from typing import Callable, List
from core.worker import DownloadWorker, WorkerStats

logger = logging.getLogger(__name__)

WorkerFactory = Callable[[int, asyncio.Event], DownloadWorker]


class WorkerPool:
    """
    Fixed set of DownloadWorker tasks sharing one stop event.

    Concurrency is bounded by size: each worker runs at most one fetch process.
    """

    def __init__(self, size: int, factory: WorkerFactory) -> None:
        if size < 1:
            raise ValueError("worker pool size must be >= 1")
        self.size = size
        self._factory = factory
        self._stop = asyncio.Event()
        self.workers: List[DownloadWorker] = []
        self._tasks: List[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks)

    def start(self) -> None:
        if self._tasks:
            raise RuntimeError("worker pool already started")
        self._stop.clear()
        for i in range(1, self.size + 1):
            worker = self._factory(i, self._stop)
            self.workers.append(worker)
            self._tasks.append(asyncio.create_task(worker.run(), name=f"worker-{i}"))
        logger.info("pool.started workers=%d", self.size)

    async def stop(self, grace_seconds: float = 30.0) -> List[WorkerStats]:
        """
        Stop taking new jobs, give in-flight fetches `grace_seconds` to finish,
        then cancel whatever is still running.
        """
        self._stop.set()
        if not self._tasks:
            return []
        _, pending = await asyncio.wait(self._tasks, timeout=grace_seconds)
        for task in pending:
            logger.warning("pool.cancel task=%s", task.get_name())
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        logger.info("pool.stopped workers=%d cancelled=%d", self.size, len(pending))
        return [w.stats for w in self.workers]
