"""
Rate-Limited Batch Scheduler.

Drives the chunks of one run through a provider in fixed-size batches:
batches run strictly one after another, separated by the provider's
inter-batch delay, and the chunks inside a batch are generated
concurrently with an all-settle join.

Run States:
    idle ──run()──> running ──> completed
                      │  ^
         pause/abort  │  │ resume()
                      v  │
                    paused ──abort()──> aborted

How It Works:
    For every batch, in order:
        1. Pause checkpoint: if a pause was requested, stop here.
        2. If this is not the first batch, wait the inter-batch delay.
           A pause request wakes the wait immediately and stops the run
           before the batch is sent.
        3. Mark the batch's jobs ``generating`` and call the client for
           each chunk concurrently (``asyncio.gather`` with
           ``return_exceptions=True``): one failure never cancels siblings.
        4. Fold every result into the state store and the counters.
    A pause never interrupts a batch in flight; resuming continues with
    the first batch that was not attempted yet.

Timeline (batch_size=5, delay=65s, 12 chunks):
    0s    - batch 1: chunks 0-4 sent together
    ~6s   - batch 1 settled (4 completed, 1 failed)
    71s   - batch 2: chunks 5-9
    ~77s  - batch 2 settled
    142s  - batch 3: chunks 10-11
    ~146s - run completed, success_rate=0.917

Failure Handling:
    - Chunk failure (error result, unexpected exception from the client):
      that job becomes ``failed``; the run continues.
    - Batch failure (the fan-out itself raising): every unsettled job of
      the batch becomes ``failed`` with the batch error; the run continues.
    - Task cancellation: the in-flight batch is failed, the run becomes
      ``aborted`` and CancelledError propagates.

Usage:
    scheduler = BatchScheduler(
        client=get_client("minimax", settings),
        chunks=chunk_text(text, 3000).chunks,
        voice="English_radiant_girl",
        batch_size=5,
        inter_batch_delay_s=65.0,
        on_progress=lambda snap: print(snap.progress.to_dict()),
    )
    summary = await scheduler.run()
    if summary.state is RunState.PAUSED:
        summary = await scheduler.resume()

See Also:
    - tts/state.py: ChunkStateStore written by this module
    - services/narration_service.py: runs schedulers as asyncio tasks
"""
from __future__ import annotations

import asyncio
import math
from dataclasses import asdict, dataclass, replace
from enum import Enum
from time import perf_counter
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from tts_batch.core.errors import RunStateError
from tts_batch.core.logging import error, get_logger, info, verbose, warn
from tts_batch.core.metrics import metrics
from tts_batch.tts.chunker import TextChunk
from tts_batch.tts.client import BaseGenerationClient, GenerationResult, VoiceParams
from tts_batch.tts.state import ChunkJob, ChunkStateStore, ChunkStatus
from tts_batch.utils.timeit import timeit

_LOG = get_logger("tts-batch.scheduler")


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    ABORTED = "aborted"

    @property
    def settled(self) -> bool:
        """True when no batch is executing and none will start on its own."""
        return self in (RunState.IDLE, RunState.PAUSED, RunState.COMPLETED, RunState.ABORTED)


@dataclass
class BatchProgress:
    """
    Aggregate progress of a run.

    ``current_batch`` is 1-based: the batch being sent or waited for
    (0 before the first batch). ``completed_batches``,
    ``completed_chunks`` and ``failed_chunks`` only ever grow.
    """
    total_chunks: int
    total_batches: int
    current_batch: int = 0
    completed_batches: int = 0
    completed_chunks: int = 0
    failed_chunks: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class RunSummary:
    """Final (or paused) tally of a run."""
    total_chunks: int
    completed_chunks: int
    failed_chunks: int
    state: RunState
    seconds: float

    @property
    def success_rate(self) -> float:
        """completed / total, or 1.0 for a run with no chunks."""
        if self.total_chunks == 0:
            return 1.0
        return self.completed_chunks / self.total_chunks

    @property
    def success_percent(self) -> float:
        return round(self.success_rate * 100, 1)

    def message(self) -> str:
        return (
            f"{self.completed_chunks}/{self.total_chunks} chunks completed "
            f"({self.success_percent:.1f}% success rate)"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "total_chunks": self.total_chunks,
            "completed_chunks": self.completed_chunks,
            "failed_chunks": self.failed_chunks,
            "success_rate": round(self.success_rate, 4),
            "success_percent": self.success_percent,
            "seconds": round(self.seconds, 3),
        }


@dataclass(frozen=True)
class RunSnapshot:
    """Point-in-time copy of a run: state, counters and every job."""
    state: RunState
    progress: BatchProgress
    jobs: Tuple[ChunkJob, ...]

    def to_dict(self, include_text: bool = False) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "progress": self.progress.to_dict(),
            "jobs": [j.to_dict(include_text=include_text) for j in self.jobs],
        }


ProgressCallback = Callable[[RunSnapshot], None]


class BatchScheduler:
    """
    Executes one run's chunks in rate-limited batches.

    The scheduler owns the run's ChunkStateStore and is its only writer.
    All public methods must be called from the event loop running the
    scheduler; none of them block.

    Args:
        client: Generation client for the run's provider.
        chunks: Ordered chunks; batches are contiguous slices of this order.
        voice: Voice id passed to every generation call.
        model: Optional model id.
        batch_size: Chunks per batch (> 0).
        inter_batch_delay_s: Wait before every batch but the first (>= 0).
        on_progress: Called with a fresh snapshot after every change.
    """

    def __init__(
        self,
        client: BaseGenerationClient,
        chunks: Sequence[TextChunk],
        voice: str,
        model: Optional[str] = None,
        batch_size: int = 5,
        inter_batch_delay_s: float = 0.0,
        on_progress: Optional[ProgressCallback] = None,
    ):
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        if inter_batch_delay_s < 0:
            raise ValueError(f"inter_batch_delay_s must be non-negative, got {inter_batch_delay_s}")

        self._client = client
        self._provider = client.name
        self._chunks: List[TextChunk] = list(chunks)
        self._voice = voice
        self._model = model
        self._batch_size = batch_size
        self._delay_s = inter_batch_delay_s
        self._on_progress = on_progress

        self._store = ChunkStateStore.from_chunks(self._chunks)
        self._progress = BatchProgress(
            total_chunks=len(self._chunks),
            total_batches=math.ceil(len(self._chunks) / batch_size),
        )
        self._state = RunState.IDLE
        self._next_batch = 0
        self._pause_event = asyncio.Event()
        self._abort_requested = False
        self._elapsed_s = 0.0

    # ── read side ────────────────────────────────────────────────────────

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def progress(self) -> BatchProgress:
        return replace(self._progress)

    @property
    def store(self) -> ChunkStateStore:
        """The run's store. Read-only use outside this class."""
        return self._store

    @property
    def batch_size(self) -> int:
        return self._batch_size

    @property
    def inter_batch_delay_s(self) -> float:
        return self._delay_s

    @property
    def pause_requested(self) -> bool:
        return self._pause_event.is_set()

    def snapshot(self) -> RunSnapshot:
        return RunSnapshot(
            state=self._state,
            progress=replace(self._progress),
            jobs=tuple(self._store.jobs()),
        )

    def summary(self) -> RunSummary:
        return RunSummary(
            total_chunks=self._progress.total_chunks,
            completed_chunks=self._progress.completed_chunks,
            failed_chunks=self._progress.failed_chunks,
            state=self._state,
            seconds=self._elapsed_s,
        )

    # ── control ──────────────────────────────────────────────────────────

    async def run(self) -> RunSummary:
        """
        Start the run and drive it until it completes, pauses or aborts.

        Raises:
            RunStateError: If the run was already started.
        """
        if self._state is RunState.ABORTED and self._abort_requested:
            # aborted before the task got to start
            return self.summary()
        if self._state is not RunState.IDLE:
            raise RunStateError(
                f"run already started (state={self._state.value})",
                {"state": self._state.value},
            )
        info(
            _LOG, "run_start",
            provider=self._provider,
            chunks=self._progress.total_chunks,
            batches=self._progress.total_batches,
            batch_size=self._batch_size,
            delay_s=self._delay_s,
        )
        return await self._drive()

    async def resume(self) -> RunSummary:
        """
        Continue a paused run from the first batch not attempted yet.

        Raises:
            RunStateError: If the run is not paused.
        """
        self.begin_resume()
        return await self.continue_run()

    def begin_resume(self) -> None:
        """
        Switch a paused run back to RUNNING without driving it.

        Pause and abort requests made after this call are honoured by the
        following continue_run(), even before its task got to start.

        Raises:
            RunStateError: If the run is not paused.
        """
        if self._state is not RunState.PAUSED:
            raise RunStateError(
                f"only a paused run can be resumed (state={self._state.value})",
                {"state": self._state.value},
            )
        self._pause_event.clear()
        self._set_state(RunState.RUNNING)
        info(
            _LOG, "run_resumed",
            next_batch=self._next_batch + 1,
            batches=self._progress.total_batches,
        )

    async def continue_run(self) -> RunSummary:
        """
        Drive a run that begin_resume() switched back to RUNNING.

        Raises:
            RunStateError: If begin_resume() was not called first.
        """
        if self._state is not RunState.RUNNING:
            raise RunStateError(
                f"run is not resuming (state={self._state.value})",
                {"state": self._state.value},
            )
        return await self._drive()

    def request_pause(self) -> None:
        """
        Ask the run to stop at its next checkpoint.

        Takes effect before the next batch or during the inter-batch
        delay, never in the middle of a batch. A no-op on a paused run.

        Raises:
            RunStateError: If the run already completed or aborted.
        """
        if self._state in (RunState.COMPLETED, RunState.ABORTED):
            raise RunStateError(
                f"cannot pause a {self._state.value} run",
                {"state": self._state.value},
            )
        if self._state is RunState.PAUSED:
            return
        self._pause_event.set()
        verbose(_LOG, "pause_requested", next_batch=self._next_batch + 1)

    def abort(self) -> None:
        """
        Abort the run; terminal, resume is no longer possible.

        An idle or paused run aborts immediately. A running run finishes
        its in-flight batch and ends aborted at the next checkpoint.

        Raises:
            RunStateError: If the run already completed or aborted.
        """
        if self._state in (RunState.COMPLETED, RunState.ABORTED):
            raise RunStateError(
                f"cannot abort a {self._state.value} run",
                {"state": self._state.value},
            )
        self._abort_requested = True
        if self._state is RunState.RUNNING:
            self._pause_event.set()
            verbose(_LOG, "abort_requested", next_batch=self._next_batch + 1)
            return
        self._set_state(RunState.ABORTED)
        metrics.record_run(self._provider, RunState.ABORTED.value)
        info(_LOG, "run_aborted", **self._tally())

    # ── execution ────────────────────────────────────────────────────────

    async def _drive(self) -> RunSummary:
        self._set_state(RunState.RUNNING)
        metrics.run_started()
        t0 = perf_counter()
        try:
            while self._next_batch < self._progress.total_batches:
                batch_index = self._next_batch

                if self._pause_event.is_set():
                    break

                if batch_index > 0 and self._delay_s > 0:
                    self._progress.current_batch = batch_index + 1
                    self._notify()
                    if await self._wait_delay(batch_index):
                        break

                await self._run_batch(batch_index)
                self._next_batch += 1
        except asyncio.CancelledError:
            self._elapsed_s += perf_counter() - t0
            self._set_state(RunState.ABORTED)
            metrics.record_run(self._provider, RunState.ABORTED.value)
            metrics.run_stopped()
            warn(_LOG, "run_cancelled", **self._tally())
            raise

        self._elapsed_s += perf_counter() - t0
        metrics.run_stopped()

        if self._next_batch >= self._progress.total_batches:
            final = RunState.COMPLETED
        elif self._abort_requested:
            final = RunState.ABORTED
        else:
            final = RunState.PAUSED
        self._set_state(final)
        metrics.record_run(self._provider, final.value)

        summary = self.summary()
        if final is RunState.PAUSED:
            info(
                _LOG, "run_paused",
                completed_batches=self._progress.completed_batches,
                batches=self._progress.total_batches,
                **self._tally(),
            )
        elif final is RunState.ABORTED:
            info(_LOG, "run_aborted", **self._tally())
        else:
            info(
                _LOG, "run_done",
                success_rate=round(summary.success_rate, 3),
                seconds=round(summary.seconds, 3),
                **self._tally(),
            )
        return summary

    async def _wait_delay(self, batch_index: int) -> bool:
        """Sleep the inter-batch delay; True if a pause request cut it short."""
        verbose(
            _LOG, "batch_delay",
            next_batch=batch_index + 1,
            seconds=self._delay_s,
        )
        try:
            await asyncio.wait_for(self._pause_event.wait(), timeout=self._delay_s)
        except asyncio.TimeoutError:
            return False
        return True

    def _batch_chunks(self, batch_index: int) -> List[TextChunk]:
        start = batch_index * self._batch_size
        return self._chunks[start:start + self._batch_size]

    async def _fan_out(self, batch: List[TextChunk]) -> List[Any]:
        """Generate every chunk of the batch concurrently; settle all."""
        return await asyncio.gather(
            *(
                self._client.generate(
                    chunk.text,
                    VoiceParams(voice=self._voice, model=self._model, chunk_index=chunk.index),
                )
                for chunk in batch
            ),
            return_exceptions=True,
        )

    async def _run_batch(self, batch_index: int) -> None:
        batch = self._batch_chunks(batch_index)
        indices = [c.index for c in batch]

        self._progress.current_batch = batch_index + 1
        self._store.mark_generating(indices)
        self._notify()
        metrics.inc_batches(self._provider)
        verbose(
            _LOG, "batch_start",
            batch=batch_index + 1,
            batches=self._progress.total_batches,
            chunks=f"{indices[0]}-{indices[-1]}",
        )

        with timeit("batch", meta={"batch": batch_index + 1}) as t:
            try:
                results = await self._fan_out(batch)
            except asyncio.CancelledError:
                self._fold_batch_failure(indices, "run cancelled while batch was in flight")
                raise
            except Exception as e:
                error(_LOG, "batch_error", batch=batch_index + 1, error=f"{type(e).__name__}: {e}")
                completed, failed = self._fold_batch_failure(indices, f"batch failed: {e}")
            else:
                completed, failed = self._fold_results(batch, results)

        info(
            _LOG, "batch_done",
            batch=batch_index + 1,
            batches=self._progress.total_batches,
            completed=completed,
            failed=failed,
            seconds=round(t.timing.seconds if t.timing else 0.0, 3),
        )

    def _fold_results(self, batch: List[TextChunk], results: List[Any]) -> Tuple[int, int]:
        completed = failed = 0
        for chunk, result in zip(batch, results):
            if isinstance(result, GenerationResult) and result.ok and result.artifact is not None:
                self._store.mark_completed(chunk.index, result.artifact)
                metrics.record_chunk(self._provider, ChunkStatus.COMPLETED.value, result.seconds)
                completed += 1
                continue

            if isinstance(result, GenerationResult):
                message = result.error or "generation failed"
                seconds = result.seconds
            elif isinstance(result, BaseException):
                message = f"{type(result).__name__}: {result}"
                seconds = None
            else:
                message = f"unexpected generation result: {type(result).__name__}"
                seconds = None

            self._store.mark_failed(chunk.index, message)
            metrics.record_chunk(self._provider, ChunkStatus.FAILED.value, seconds)
            warn(_LOG, "chunk_failed", chunk=chunk.index, error=message)
            failed += 1

        self._count_batch(completed, failed)
        return completed, failed

    def _fold_batch_failure(self, indices: List[int], message: str) -> Tuple[int, int]:
        failed_indices = self._store.fail_unsettled(indices, message)
        for i in failed_indices:
            metrics.record_chunk(self._provider, ChunkStatus.FAILED.value)
            warn(_LOG, "chunk_failed", chunk=i, error=message)
        self._count_batch(0, len(failed_indices))
        return 0, len(failed_indices)

    def _count_batch(self, completed: int, failed: int) -> None:
        self._progress.completed_batches += 1
        self._progress.completed_chunks += completed
        self._progress.failed_chunks += failed
        self._notify()

    # ── helpers ──────────────────────────────────────────────────────────

    def _tally(self) -> Dict[str, int]:
        return {
            "chunks": self._progress.total_chunks,
            "completed": self._progress.completed_chunks,
            "failed": self._progress.failed_chunks,
        }

    def _set_state(self, state: RunState) -> None:
        self._state = state
        self._notify()

    def _notify(self) -> None:
        if self._on_progress is None:
            return
        try:
            self._on_progress(self.snapshot())
        except Exception as e:
            warn(_LOG, "progress_observer_error", error=f"{type(e).__name__}: {e}")
