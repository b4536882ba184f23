from __future__ import annotations

import time
from typing import Awaitable, Callable, Tuple, TypeVar

import anyio

from engineer_assistant.analyzers.errors import BackendError

T = TypeVar("T")


async def run_with_timeout(fn: Callable[[], Awaitable[T]], timeout_s: float) -> Tuple[T, float]:
    """Await `fn()` once under a deadline. Returns (result, duration_seconds)."""
    start = time.perf_counter()
    try:
        with anyio.fail_after(timeout_s):
            result = await fn()
    except TimeoutError as e:
        raise BackendError(f"Model call timed out after {timeout_s}s") from e
    return result, time.perf_counter() - start
