"""
NarrationService - Run Orchestration.

This module provides the NarrationService class, the single entry point
used by both the HTTP API and the CLI to turn a manuscript into audio.

Architecture:
    Request → Validate → RunConfig → Chunk → BatchScheduler (task) → Export

Each run is isolated: it owns its RunConfig, its generation client, its
BatchScheduler and through it its ChunkStateStore. Runs never share
mutable state, so several can be in flight at once (up to
``scheduler.max_runs``).

Run Lifecycle:
    start_run()  - validate, chunk, launch the scheduler as an asyncio task
    pause()      - cooperative; takes effect at the next batch checkpoint
    resume()     - relaunch a paused run from its next unattempted batch
    abort()      - terminal stop
    retry_failed() - new run over the failed chunks of a settled run
    export()     - zip of the completed chunks, in chunk order

Error Handling:
    Configuration problems raise ConfigurationError before anything is
    created. Chunk and batch failures never raise: they are recorded on
    the chunk and visible in snapshots and the final summary.

Example:
    >>> service = NarrationService(Settings(raw={}))
    >>> run = await service.execute(RunRequest(text=manuscript, provider="fake"))
    >>> run.summary().message()
    '12/12 chunks completed (100.0% success rate)'
    >>> archive = service.export(run.run_id)
"""
from __future__ import annotations

import asyncio
import threading
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from tts_batch import __version__
from tts_batch.core.config import (
    ConfigValidationError,
    ProviderProfile,
    PROVIDER_PROFILES,
    RunConfig,
    ServiceConfig,
    Settings,
    get_provider_profile,
)
from tts_batch.core.errors import (
    ConfigurationError,
    ErrorCode,
    ExportError,
    RunNotFoundError,
    RunStateError,
    TooManyRunsError,
    TTSBatchError,
)
from tts_batch.core.logging import fail, get_logger, info, set_run_id, success, verbose
from tts_batch.services.validators import (
    ValidationError,
    validate_batch_settings,
    validate_model,
    validate_provider,
    validate_text,
    validate_voice,
)
from tts_batch.tts.chunker import TextChunk, chunk_text
from tts_batch.tts.client import ArtifactRef, BaseGenerationClient, get_client
from tts_batch.tts.export import ExportResult, assemble_archive
from tts_batch.tts.scheduler import BatchScheduler, RunSnapshot, RunState, RunSummary
from tts_batch.tts.state import ChunkStatus
from tts_batch.utils.text import estimate_duration_seconds, preview, word_count

_LOG = get_logger("tts-batch.service")

ClientFactory = Callable[[str, Settings], BaseGenerationClient]

__all__ = [
    "NarrationService",
    "RunRequest",
    "Run",
    "ChunkPreview",
    "ErrorCode",
    "TTSBatchError",
    "ConfigurationError",
    "RunNotFoundError",
    "RunStateError",
    "ExportError",
    "TooManyRunsError",
    "get_service",
    "reset_service",
]


# =============================================================================
# Request/Response Dataclasses
# =============================================================================

@dataclass
class RunRequest:
    """
    Caller-supplied parameters of a run.

    Everything except ``text`` is optional and resolved from the
    provider profile (and settings overrides) when omitted.
    """
    text: str
    provider: Optional[str] = None
    voice: Optional[str] = None
    model: Optional[str] = None
    batch_size: Optional[int] = None
    inter_batch_delay_s: Optional[float] = None
    max_chunk_length: Optional[int] = None


@dataclass
class ChunkPreview:
    """Chunking result for a text, without generating anything."""
    config: RunConfig
    chunks: List[TextChunk]
    words: int
    estimated_duration_seconds: int

    @property
    def total_batches(self) -> int:
        return -(-len(self.chunks) // self.config.batch_size)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.config.provider,
            "voice": self.config.voice,
            "max_chunk_length": self.config.max_chunk_length,
            "batch_size": self.config.batch_size,
            "inter_batch_delay_s": self.config.inter_batch_delay_s,
            "chars": len(self.config.text),
            "words": self.words,
            "estimated_duration_seconds": self.estimated_duration_seconds,
            "total_chunks": len(self.chunks),
            "total_batches": self.total_batches,
            "chunks": [c.to_dict() for c in self.chunks],
        }


@dataclass
class Run:
    """
    One isolated run: configuration, chunks and the scheduler driving them.

    Attributes:
        run_id: Short unique id, also the logging correlation id.
        config: Resolved RunConfig.
        profile: Provider profile the run was built from.
        chunks: The run's chunks (original indices on retry runs).
        scheduler: BatchScheduler owning the run's state store.
        source_run_id: For retry runs, the run whose failures are retried.
        task: asyncio task currently driving the scheduler, if any.
    """
    run_id: str
    config: RunConfig
    profile: ProviderProfile
    chunks: List[TextChunk]
    scheduler: BatchScheduler
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    source_run_id: Optional[str] = None
    task: Optional["asyncio.Task[RunSummary]"] = None

    @property
    def state(self) -> RunState:
        return self.scheduler.state

    @property
    def active(self) -> bool:
        return self.task is not None and not self.task.done()

    def snapshot(self) -> RunSnapshot:
        return self.scheduler.snapshot()

    def summary(self) -> RunSummary:
        return self.scheduler.summary()

    def to_dict(self, include_jobs: bool = True, include_text: bool = False) -> Dict[str, Any]:
        snap = self.snapshot()
        d: Dict[str, Any] = {
            "run_id": self.run_id,
            "provider": self.config.provider,
            "voice": self.config.voice,
            "model": self.config.model,
            "state": snap.state.value,
            "created_at": self.created_at.isoformat(),
            "source_run_id": self.source_run_id,
            "batch_size": self.config.batch_size,
            "inter_batch_delay_s": self.config.inter_batch_delay_s,
            "max_chunk_length": self.config.max_chunk_length,
            "progress": snap.progress.to_dict(),
            "summary": self.summary().to_dict(),
        }
        if include_jobs:
            d["jobs"] = [j.to_dict(include_text=include_text) for j in snap.jobs]
        return d


# =============================================================================
# Main Service Class
# =============================================================================

class NarrationService:
    """
    Creates, drives and exposes narration runs.

    Methods that launch work (start_run, resume, retry_failed) must be
    called from within a running event loop; the scheduler runs as a task
    on that loop. ``execute()`` is the awaitable equivalent used by the CLI.

    Usage:
        service = NarrationService(settings)
        run = service.start_run(RunRequest(text=text, provider="minimax"))
        ...
        service.pause(run.run_id)
        service.resume(run.run_id)
        archive = service.export(run.run_id)
    """

    def __init__(self, settings: Settings, client_factory: Optional[ClientFactory] = None):
        """
        Args:
            settings: Application settings.
            client_factory: Builds a generation client for a provider name;
                defaults to ``get_client`` with the configured timeout.
        """
        self._settings = settings
        self._config = ServiceConfig.from_settings(settings)
        self._client_factory = client_factory or self._default_client_factory
        self._runs: "OrderedDict[str, Run]" = OrderedDict()
        self._text_preview_chars = self._config.logging.text_preview_chars

    def _default_client_factory(self, provider: str, settings: Settings) -> BaseGenerationClient:
        return get_client(provider, settings, timeout_s=self._config.client.timeout_s)

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def config(self) -> ServiceConfig:
        return self._config

    def providers(self) -> List[ProviderProfile]:
        return [get_provider_profile(name, self._settings) for name in PROVIDER_PROFILES]

    # =========================================================================
    # Validation and Chunking
    # =========================================================================

    def _resolve_profile(self, provider: Optional[str]) -> ProviderProfile:
        try:
            key = validate_provider(provider or self._config.scheduler.default_provider)
            return get_provider_profile(key, self._settings)
        except ValidationError as e:
            raise ConfigurationError(e.message, ErrorCode.UNKNOWN_PROVIDER, {"code": e.code})
        except ConfigValidationError as e:
            raise ConfigurationError(str(e), ErrorCode.INVALID_INPUT)

    def _build_config(self, request: RunRequest) -> tuple[RunConfig, ProviderProfile]:
        """Validate a request into a RunConfig; nothing is created on failure."""
        profile = self._resolve_profile(request.provider)
        try:
            text = validate_text(request.text, self._config.limits.max_text_chars)
            voice = validate_voice(request.voice, profile)
            model = validate_model(request.model)
            validate_batch_settings(request.batch_size, request.inter_batch_delay_s)
        except ValidationError as e:
            raise ConfigurationError(e.message, ErrorCode.INVALID_INPUT, {"code": e.code})

        try:
            config = RunConfig.build(
                text=text,
                provider=profile.name,
                voice=voice,
                model=model,
                batch_size=request.batch_size,
                inter_batch_delay_s=request.inter_batch_delay_s,
                max_chunk_length=request.max_chunk_length,
                settings=self._settings,
            )
        except ConfigValidationError as e:
            raise ConfigurationError(str(e), ErrorCode.INVALID_INPUT)
        return config, profile

    def preview(self, text: str, provider: Optional[str] = None) -> ChunkPreview:
        """
        Chunk ``text`` for a provider without generating anything.

        Raises:
            ConfigurationError: Unknown provider or invalid text.
        """
        config, _ = self._build_config(RunRequest(text=text, provider=provider))
        result = chunk_text(config.text, config.max_chunk_length)
        return ChunkPreview(
            config=config,
            chunks=result.chunks,
            words=word_count(config.text),
            estimated_duration_seconds=estimate_duration_seconds(config.text),
        )

    # =========================================================================
    # Run Registry
    # =========================================================================

    def _make_room(self) -> None:
        """Evict the oldest settled runs once the limit is reached."""
        max_runs = self._config.scheduler.max_runs
        while len(self._runs) >= max_runs:
            evictable = next(
                (rid for rid, r in self._runs.items()
                 if not r.active and r.state in (RunState.COMPLETED, RunState.ABORTED)),
                None,
            )
            if evictable is None:
                raise TooManyRunsError(max_runs)
            verbose(_LOG, "run_evicted", evicted=evictable)
            del self._runs[evictable]

    def _create_run(
        self,
        config: RunConfig,
        profile: ProviderProfile,
        chunks: List[TextChunk],
        source_run_id: Optional[str] = None,
    ) -> Run:
        self._make_room()
        client = self._client_factory(config.provider, self._settings)
        scheduler = BatchScheduler(
            client=client,
            chunks=chunks,
            voice=config.voice,
            model=config.model,
            batch_size=config.batch_size,
            inter_batch_delay_s=config.inter_batch_delay_s,
        )
        run = Run(
            run_id=uuid.uuid4().hex[:12],
            config=config,
            profile=profile,
            chunks=chunks,
            scheduler=scheduler,
            source_run_id=source_run_id,
        )
        self._runs[run.run_id] = run
        info(
            _LOG, "run_created",
            run=run.run_id,
            provider=config.provider,
            voice=config.voice,
            chunks=len(chunks),
            source=source_run_id or "-",
            text=preview(config.text, self._text_preview_chars),
        )
        return run

    def _new_run(self, request: RunRequest) -> Run:
        config, profile = self._build_config(request)
        chunks = chunk_text(config.text, config.max_chunk_length).chunks
        return self._create_run(config, profile, chunks)

    def get_run(self, run_id: str) -> Run:
        try:
            return self._runs[run_id]
        except KeyError:
            raise RunNotFoundError(run_id) from None

    def snapshot(self, run_id: str) -> RunSnapshot:
        return self.get_run(run_id).snapshot()

    def list_runs(self) -> List[Run]:
        return list(self._runs.values())

    # =========================================================================
    # Execution
    # =========================================================================

    async def _drive(self, run: Run, resume: bool = False) -> RunSummary:
        set_run_id(run.run_id)
        summary = await (run.scheduler.continue_run() if resume else run.scheduler.run())
        if summary.state is RunState.COMPLETED:
            log = success if summary.failed_chunks == 0 else fail
            log(
                _LOG, "run_summary",
                completed=summary.completed_chunks,
                failed=summary.failed_chunks,
                chunks=summary.total_chunks,
                success_rate=round(summary.success_rate, 3),
            )
        return summary

    def _launch(self, run: Run, resume: bool = False) -> Run:
        loop = asyncio.get_running_loop()
        run.task = loop.create_task(self._drive(run, resume=resume), name=f"run-{run.run_id}")
        run.task.add_done_callback(self._on_task_done)
        return run

    def _on_task_done(self, task: "asyncio.Task[RunSummary]") -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            fail(_LOG, "run_crashed", task=task.get_name(), error=f"{type(exc).__name__}: {exc}")

    def start_run(self, request: RunRequest) -> Run:
        """
        Validate, chunk and launch a run in the background.

        Raises:
            ConfigurationError: Invalid request; no run is created.
            TooManyRunsError: Run limit reached.
        """
        return self._launch(self._new_run(request))

    async def execute(self, request: RunRequest) -> Run:
        """Like start_run(), but wait until the run completes, pauses or aborts."""
        run = self.start_run(request)
        assert run.task is not None
        await run.task
        return run

    def pause(self, run_id: str) -> Run:
        run = self.get_run(run_id)
        run.scheduler.request_pause()
        info(_LOG, "pause_requested", run=run_id)
        return run

    def resume(self, run_id: str) -> Run:
        """
        Relaunch a paused run.

        Raises:
            RunStateError: If the run is not paused or is still winding down.
        """
        run = self.get_run(run_id)
        if run.state is not RunState.PAUSED or run.active:
            raise RunStateError(
                f"only a paused run can be resumed (state={run.state.value})",
                {"state": run.state.value},
            )
        run.scheduler.begin_resume()
        return self._launch(run, resume=True)

    def abort(self, run_id: str) -> Run:
        run = self.get_run(run_id)
        run.scheduler.abort()
        info(_LOG, "abort_requested", run=run_id)
        return run

    def retry_failed(self, run_id: str) -> Run:
        """
        Start a new run over the failed chunks of a settled run.

        The new run keeps the chunks' original indices and gets fresh jobs;
        the source run is left untouched.

        Raises:
            RunStateError: Source run still running, or nothing failed.
        """
        source = self.get_run(run_id)
        if source.active or source.state is RunState.RUNNING:
            raise RunStateError(
                "cannot retry a run that is still running",
                {"state": source.state.value},
            )
        failed = {j.chunk_index for j in source.scheduler.store.failed_jobs()}
        if not failed:
            raise RunStateError("run has no failed chunks to retry", {"state": source.state.value})

        chunks = [c for c in source.chunks if c.index in failed]
        run = self._create_run(source.config, source.profile, chunks, source_run_id=run_id)
        return self._launch(run)

    async def shutdown(self) -> None:
        """Cancel every run task still executing."""
        tasks = [r.task for r in self._runs.values() if r.task is not None and not r.task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            info(_LOG, "runs_cancelled", count=len(tasks))

    # =========================================================================
    # Results
    # =========================================================================

    def export(self, run_id: str) -> ExportResult:
        """
        Zip the completed chunks of a run.

        Raises:
            ExportError: No chunk completed.
        """
        run = self.get_run(run_id)
        return assemble_archive(
            run.scheduler.store.jobs(),
            display_name=run.profile.display_name,
            compression_level=self._config.export.compression_level,
        )

    def chunk_audio(self, run_id: str, chunk_index: int) -> ArtifactRef:
        run = self.get_run(run_id)
        try:
            job = run.scheduler.store.get(chunk_index)
        except KeyError:
            raise ConfigurationError(
                f"run {run_id} has no chunk {chunk_index}",
                ErrorCode.INVALID_INPUT,
                {"chunk_index": chunk_index},
            ) from None
        if job.status != ChunkStatus.COMPLETED or job.artifact is None:
            raise RunStateError(
                f"chunk {chunk_index} is {job.status.value}, no audio available",
                {"chunk_index": chunk_index, "status": job.status.value},
            )
        return job.artifact

    def get_health_info(self) -> Dict[str, Any]:
        states: Dict[str, int] = {s.value: 0 for s in RunState}
        for run in self._runs.values():
            states[run.state.value] += 1

        providers = {}
        for profile in self.providers():
            client = self._client_factory(profile.name, self._settings)
            providers[profile.name] = {"configured": client.is_configured()}

        return {
            "ok": True,
            "status": "ready",
            "version": __version__,
            "default_provider": self._config.scheduler.default_provider,
            "providers": providers,
            "runs": {
                "total": len(self._runs),
                "max": self._config.scheduler.max_runs,
                "active": sum(1 for r in self._runs.values() if r.active),
                "by_state": states,
            },
            "limits": {"max_text_chars": self._config.limits.max_text_chars},
        }


# =============================================================================
# Global Service Singleton
# =============================================================================

_service: Optional[NarrationService] = None
_service_lock = threading.Lock()


def get_service(settings: Settings) -> NarrationService:
    """
    Get or create the global NarrationService instance.

    Thread-safe lazy singleton.
    """
    global _service
    if _service is None:
        with _service_lock:
            if _service is None:
                _service = NarrationService(settings)
    return _service


def reset_service() -> None:
    """Drop the global service instance (used by tests)."""
    global _service
    with _service_lock:
        _service = None
