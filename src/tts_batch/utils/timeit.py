"""
Timing Utilities.

A small context manager around ``time.perf_counter()`` used to time
chunking, individual provider calls, batches and whole runs. The result
ends up in log lines (``seconds=...``) and in the generation histogram.

Example Usage:
    with timeit("batch", meta={"batch": 3}) as t:
        await asyncio.gather(*calls)
    info(_LOG, "batch_done", seconds=round(t.timing.seconds, 3))

Precision:
    perf_counter() is monotonic and sub-millisecond on all platforms.
"""
from __future__ import annotations

from dataclasses import dataclass
from time import perf_counter
from typing import Any, Dict, Optional


@dataclass
class Timing:
    """
    Timing measurement result.

    Attributes:
        name: What was timed ("chunk", "generate", "batch", "run").
        seconds: Duration in seconds.
        meta: Optional metadata attached by the caller.
    """
    name: str
    seconds: float
    meta: Optional[Dict[str, Any]] = None


class timeit:
    """
    Context manager for timing code blocks.

    Works unchanged around ``await`` expressions: it measures wall-clock
    time between enter and exit, including time spent suspended.

    Example:
        with timeit("generate", meta={"chunk": 4}) as t:
            audio = await client.post(...)
        # t.timing.seconds, t.timing.meta == {"chunk": 4}
    """

    def __init__(self, name: str, meta: Optional[Dict[str, Any]] = None):
        self.name = name
        self.meta = meta
        self._t0: float | None = None
        self.timing: Timing | None = None

    def __enter__(self) -> "timeit":
        self._t0 = perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        t1 = perf_counter()
        assert self._t0 is not None
        self.timing = Timing(name=self.name, seconds=(t1 - self._t0), meta=self.meta)

    @property
    def seconds(self) -> float:
        """Elapsed seconds; live while inside the block, final after exit."""
        if self.timing is not None:
            return self.timing.seconds
        if self._t0 is None:
            return 0.0
        return perf_counter() - self._t0
