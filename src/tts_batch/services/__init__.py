"""
tts-batch Services Layer.

This package provides the business logic layer that orchestrates
narration runs. It sits between the API/CLI and the pipeline layer.

Components:
    - narration_service.py: NarrationService class (run orchestrator)
    - validators.py: Input validation functions

The NarrationService class handles:
    - Request validation and normalization
    - Run creation, background execution and the run registry
    - Pause, resume, abort and retry of failed chunks
    - Export of completed audio
"""
from .narration_service import (
    ChunkPreview,
    ConfigurationError,
    ErrorCode,
    ExportError,
    NarrationService,
    Run,
    RunNotFoundError,
    RunRequest,
    RunStateError,
    TooManyRunsError,
    TTSBatchError,
)

__all__ = [
    "NarrationService",
    "RunRequest",
    "Run",
    "ChunkPreview",
    "TTSBatchError",
    "ConfigurationError",
    "RunNotFoundError",
    "RunStateError",
    "ExportError",
    "TooManyRunsError",
    "ErrorCode",
]
