import time
from contextlib import contextmanager
from typing import Iterator, Any
import logging


@contextmanager
def timed(logger: logging.Logger, name: str, **kv: Any) -> Iterator[None]:
    """
    Usage:
      with timed(logger, "fetch.run", job=job_id):
          ...
    Emits one line on exit: "<name>.done ms=<int> key=val ..." at INFO, or
    "<name>.aborted ms=<int> error=<type> ..." at WARNING when the block raised.
    The exception is never swallowed.
    """
    t0 = time.perf_counter()
    suffix = "".join(f" {k}={v}" for k, v in kv.items())
    try:
        yield
    except BaseException as e:
        dt_ms = int((time.perf_counter() - t0) * 1000)
        logger.warning("%s.aborted ms=%d error=%s%s", name, dt_ms, type(e).__name__, suffix)
        raise
    dt_ms = int((time.perf_counter() - t0) * 1000)
    logger.info("%s.done ms=%d%s", name, dt_ms, suffix)
