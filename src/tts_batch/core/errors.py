"""
Error Types for tts-batch.

Every error that reaches a caller (HTTP client, CLI user) is a
TTSBatchError carrying a stable ``code`` from ErrorCode. The API layer
maps codes to HTTP statuses; the CLI maps them to exit codes.

Taxonomy:
    ConfigurationError  - bad request or configuration, raised before a run
                          creates any state (INVALID_INPUT, UNKNOWN_PROVIDER)
    RunNotFoundError    - no run with that id (RUN_NOT_FOUND)
    RunStateError       - operation not allowed in the run's state (INVALID_STATE)
    ExportError         - nothing completed to export (EXPORT_EMPTY)
    TooManyRunsError    - service run limit reached (TOO_MANY_RUNS)

Chunk and batch failures are not exceptions at this level: they are
recorded on the chunk and the run carries on.

Example Response:
    {
        "ok": false,
        "error": "EXPORT_EMPTY",
        "message": "No completed audio chunks to download"
    }
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class ErrorCode:
    """Standard error codes for API responses."""
    INVALID_INPUT = "INVALID_INPUT"
    UNKNOWN_PROVIDER = "UNKNOWN_PROVIDER"
    RUN_NOT_FOUND = "RUN_NOT_FOUND"
    INVALID_STATE = "INVALID_STATE"
    EXPORT_EMPTY = "EXPORT_EMPTY"
    TOO_MANY_RUNS = "TOO_MANY_RUNS"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class TTSBatchError(Exception):
    """
    Base exception for service errors.

    Attributes:
        message: Human-readable error message.
        code: ErrorCode constant.
        details: Optional extra context for the response body.
    """

    def __init__(
        self,
        message: str,
        code: str = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "ok": False,
            "error": self.code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


class ConfigurationError(TTSBatchError):
    """Run rejected before chunking: invalid input or configuration."""

    def __init__(self, message: str, code: str = ErrorCode.INVALID_INPUT, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code, details)


class RunNotFoundError(TTSBatchError):
    def __init__(self, run_id: str):
        super().__init__(f"run not found: {run_id}", ErrorCode.RUN_NOT_FOUND, {"run_id": run_id})


class RunStateError(TTSBatchError):
    """Operation not allowed in the run's current state."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.INVALID_STATE, details)


class ExportError(TTSBatchError):
    def __init__(self, message: str = "No completed audio chunks to download", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.EXPORT_EMPTY, details)


class TooManyRunsError(TTSBatchError):
    def __init__(self, max_runs: int):
        super().__init__(
            f"run limit reached ({max_runs}); abort or finish an active run first",
            ErrorCode.TOO_MANY_RUNS,
            {"max_runs": max_runs},
        )
