"""
tts-batch API Routes.

This module defines the REST API endpoints of the narration service.
All endpoints go through the NarrationService singleton.

Endpoints:
    GET  /health                              - Health check for probes
    GET  /metrics                             - Prometheus metrics
    GET  /v1/providers                        - Provider profiles, voices, models
    POST /v1/chunks                           - Chunk preview (no generation)
    POST /v1/runs                             - Start a run (202)
    GET  /v1/runs                             - List runs
    GET  /v1/runs/{run_id}                    - Progress snapshot and jobs
    POST /v1/runs/{run_id}/pause              - Request pause
    POST /v1/runs/{run_id}/resume             - Resume a paused run
    POST /v1/runs/{run_id}/abort              - Abort
    POST /v1/runs/{run_id}/retry              - New run over failed chunks
    GET  /v1/runs/{run_id}/export             - Zip archive of completed audio
    GET  /v1/runs/{run_id}/chunks/{i}/audio   - Single chunk MP3

Run endpoints are ``async def`` so they execute on the event loop that
drives the scheduler tasks; run state is only ever touched from that loop.

Error Handling:
    All errors are returned as JSON with standardized format:
    {
        "ok": false,
        "error": "<ERROR_CODE>",
        "message": "<human readable message>"
    }

    HTTP status codes are mapped from ErrorCode:
        - INVALID_INPUT, UNKNOWN_PROVIDER -> 400 Bad Request
        - RUN_NOT_FOUND -> 404 Not Found
        - INVALID_STATE, EXPORT_EMPTY -> 409 Conflict
        - TOO_MANY_RUNS -> 429 Too Many Requests
        - anything else -> 500 Internal Server Error

Example Usage:
    >>> import httpx
    >>> r = httpx.post("http://localhost:8000/v1/runs", json={"text": text, "provider": "minimax"})
    >>> run_id = r.json()["run_id"]
    >>> httpx.get(f"http://localhost:8000/v1/runs/{run_id}").json()["progress"]

See Also:
    - api/schemas.py: Request/response Pydantic models
    - services/narration_service.py: Run orchestration
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse

from tts_batch.api.dependencies import get_narration_service
from tts_batch.api.schemas import ChunkPreviewRequest, RunAck, RunCreateRequest
from tts_batch.core.logging import error, get_logger
from tts_batch.core.metrics import metrics
from tts_batch.services.narration_service import (
    ErrorCode,
    NarrationService,
    Run,
    RunRequest,
    TTSBatchError,
)
from tts_batch.tts.clients import elevenlabs_client, fake_client, minimax_client

router = APIRouter()

_LOG = get_logger("tts-batch.api")

_STATUS_MAP = {
    ErrorCode.INVALID_INPUT: 400,
    ErrorCode.UNKNOWN_PROVIDER: 400,
    ErrorCode.RUN_NOT_FOUND: 404,
    ErrorCode.INVALID_STATE: 409,
    ErrorCode.EXPORT_EMPTY: 409,
    ErrorCode.TOO_MANY_RUNS: 429,
}

_CATALOGS = {
    "minimax": minimax_client,
    "elevenlabs": elevenlabs_client,
    "fake": fake_client,
}


def _error_response(err: TTSBatchError) -> JSONResponse:
    """Standard JSON error body with the status mapped from the error code."""
    return JSONResponse(status_code=_STATUS_MAP.get(err.code, 500), content=err.to_dict())


def _internal_error(exc: Exception, op: str) -> JSONResponse:
    error(_LOG, "unhandled_error", op=op, error=f"{type(exc).__name__}: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "ok": False,
            "error": ErrorCode.INTERNAL_ERROR,
            "message": "Internal server error",
        },
    )


def _ack(run: Run) -> dict:
    return RunAck(
        run_id=run.run_id,
        state=run.state.value,
        pause_requested=run.scheduler.pause_requested,
    ).model_dump()


@router.get("/health")
def health(service: NarrationService = Depends(get_narration_service)):
    """
    Health check endpoint.

    Returns version, per-provider credential status and run counts.
    """
    return service.get_health_info()


@router.get("/metrics")
def prometheus_metrics():
    """Prometheus metrics in text exposition format."""
    content, content_type = metrics.get_metrics_response()
    return Response(content=content, media_type=content_type)


@router.get("/v1/providers")
def list_providers(service: NarrationService = Depends(get_narration_service)):
    """
    Provider profiles with their voice and model catalogs.

    Profiles reflect settings overrides, so the numbers shown are the ones
    a new run would use.
    """
    providers = []
    for profile in service.providers():
        entry = profile.to_dict()
        catalog = _CATALOGS.get(profile.name)
        entry["voices"] = dict(getattr(catalog, "VOICES", {}))
        entry["models"] = dict(getattr(catalog, "MODELS", {}))
        providers.append(entry)
    return {
        "default_provider": service.config.scheduler.default_provider,
        "providers": providers,
    }


@router.post("/v1/chunks")
def preview_chunks(
    req: ChunkPreviewRequest,
    service: NarrationService = Depends(get_narration_service),
):
    """Chunk a text for a provider and report the batch plan."""
    try:
        return service.preview(req.text, req.provider).to_dict()
    except TTSBatchError as e:
        return _error_response(e)


@router.post("/v1/runs", status_code=202)
async def create_run(
    req: RunCreateRequest,
    service: NarrationService = Depends(get_narration_service),
):
    """
    Start a run in the background.

    Returns 202 with the initial snapshot; poll GET /v1/runs/{run_id}
    for progress.
    """
    try:
        run = service.start_run(RunRequest(**req.model_dump()))
    except TTSBatchError as e:
        return _error_response(e)
    except Exception as e:
        return _internal_error(e, "create_run")
    return run.to_dict(include_jobs=True)


@router.get("/v1/runs")
async def list_runs(service: NarrationService = Depends(get_narration_service)):
    return {"runs": [r.to_dict(include_jobs=False) for r in service.list_runs()]}


@router.get("/v1/runs/{run_id}")
async def get_run(
    run_id: str,
    include_text: bool = False,
    service: NarrationService = Depends(get_narration_service),
):
    try:
        return service.get_run(run_id).to_dict(include_jobs=True, include_text=include_text)
    except TTSBatchError as e:
        return _error_response(e)


@router.post("/v1/runs/{run_id}/pause")
async def pause_run(run_id: str, service: NarrationService = Depends(get_narration_service)):
    """Request a pause; the run stops at its next batch checkpoint."""
    try:
        return _ack(service.pause(run_id))
    except TTSBatchError as e:
        return _error_response(e)


@router.post("/v1/runs/{run_id}/resume")
async def resume_run(run_id: str, service: NarrationService = Depends(get_narration_service)):
    try:
        return _ack(service.resume(run_id))
    except TTSBatchError as e:
        return _error_response(e)


@router.post("/v1/runs/{run_id}/abort")
async def abort_run(run_id: str, service: NarrationService = Depends(get_narration_service)):
    try:
        return _ack(service.abort(run_id))
    except TTSBatchError as e:
        return _error_response(e)


@router.post("/v1/runs/{run_id}/retry", status_code=202)
async def retry_run(run_id: str, service: NarrationService = Depends(get_narration_service)):
    """Start a new run over the failed chunks of ``run_id``."""
    try:
        return service.retry_failed(run_id).to_dict(include_jobs=True)
    except TTSBatchError as e:
        return _error_response(e)


@router.get("/v1/runs/{run_id}/export")
async def export_run(run_id: str, service: NarrationService = Depends(get_narration_service)):
    """
    Download the completed chunks as a zip archive.

    Returns 409 EXPORT_EMPTY when no chunk has completed.
    """
    try:
        result = service.export(run_id)
    except TTSBatchError as e:
        return _error_response(e)
    headers = {
        "Content-Disposition": f'attachment; filename="{result.filename}"',
        "X-Entries": str(len(result.entries)),
    }
    return Response(content=result.blob, media_type="application/zip", headers=headers)


@router.get("/v1/runs/{run_id}/chunks/{chunk_index}/audio")
async def chunk_audio(
    run_id: str,
    chunk_index: int,
    service: NarrationService = Depends(get_narration_service),
):
    try:
        artifact = service.chunk_audio(run_id, chunk_index)
    except TTSBatchError as e:
        return _error_response(e)
    headers = {"Content-Disposition": f'inline; filename="{artifact.filename}"'}
    return Response(content=artifact.audio_bytes, media_type=artifact.content_type, headers=headers)
