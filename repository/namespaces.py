from typing import Final

JOBS: Final[str] = "job"
RESULTS: Final[str] = "result"
QUEUE: Final[str] = "queue:downloads"
