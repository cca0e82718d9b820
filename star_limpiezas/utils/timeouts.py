"""
Bounded Waits for Blocking Backend Calls.

The Supabase SDK calls used here are synchronous.  To put an upper bound
on how long startup waits for them, the call is submitted to a shared
pool of worker threads and the caller waits on the future.

A timed-out call is **not** cancelled: it keeps running on its worker
thread and its late result is simply never read.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional, TypeVar

__all__ = ["run_with_timeout", "shutdown_executor"]

T = TypeVar("T")


_MAX_WORKERS: int = 4

_executor: Optional[ThreadPoolExecutor] = None
_executor_lock: threading.Lock = threading.Lock()


def _get_executor() -> ThreadPoolExecutor:
    global _executor
    if _executor is None:
        with _executor_lock:
            if _executor is None:
                _executor = ThreadPoolExecutor(
                    max_workers=_MAX_WORKERS,
                    thread_name_prefix="BackendCall",
                )
    return _executor


def run_with_timeout(fn: Callable[[], T], timeout_s: float) -> T:
    """Run *fn* on a worker thread and wait at most *timeout_s* seconds.

    Returns:
        Whatever *fn* returned.

    Raises:
        TimeoutError: If *fn* did not finish in time.
        Exception: Whatever *fn* raised, re-raised in the caller's thread.
    """
    future: Future[T] = _get_executor().submit(fn)
    return future.result(timeout=timeout_s)


def shutdown_executor() -> None:
    """Release the worker pool without waiting for abandoned calls."""
    global _executor
    with _executor_lock:
        if _executor is not None:
            _executor.shutdown(wait=False, cancel_futures=True)
            _executor = None
