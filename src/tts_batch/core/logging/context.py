"""
Run Correlation and Logging State.

Every log line emitted while a run is executing carries that run's id, so
that the interleaved output of concurrent chunk generations can be grouped
back together. The id lives in a ``ContextVar``: asyncio copies the context
into each task created by the scheduler, so chunk tasks inherit the id of
the run that spawned them without any explicit plumbing.

Module-level state additionally holds the resolved logging configuration
(level, log directory, JSONL file name) shared by the whole process.

Environment Variables:
    - TTS_BATCH_LOG_LEVEL: numeric level 1-4 or a level name
    - TTS_BATCH_LOG_DIR: directory for the JSONL log file
    - TTS_BATCH_JSONL_FILE: JSONL file name (default tts-batch.jsonl)
    - TTS_BATCH_LOG_ROTATE_BYTES: rotate after this many bytes
    - TTS_BATCH_LOG_ROTATE_BACKUP: rotated files to keep
"""
from __future__ import annotations

import os
from contextvars import ContextVar
from typing import Any, Dict

from .levels import LEVEL_NAMES, LogLevel

# "-" marks log lines emitted outside any run
_run_id: ContextVar[str] = ContextVar("run_id", default="-")

_configured: bool = False
_log_config: Dict[str, Any] = {}
_current_level: LogLevel = LogLevel.NORMAL


def get_run_id() -> str:
    """Run id of the current context, or ``"-"``."""
    return _run_id.get()


def set_run_id(run_id: str) -> None:
    """Bind a run id to the current context (and tasks spawned from it)."""
    _run_id.set(run_id)


def get_level() -> LogLevel:
    return _current_level


def set_level(level: LogLevel) -> None:
    global _current_level
    _current_level = level


def get_level_name() -> str:
    return LEVEL_NAMES.get(_current_level, "NORMAL")


def is_configured() -> bool:
    return _configured


def set_configured(value: bool) -> None:
    global _configured
    _configured = value


def get_log_config() -> Dict[str, Any]:
    return _log_config


def set_log_config(config: Dict[str, Any]) -> None:
    global _log_config
    _log_config = config


def read_logging_config() -> Dict[str, Any]:
    """
    Resolve logging configuration.

    Priority (highest first):
        1. TTS_BATCH_LOG_* environment variables
        2. ``logging`` section of the settings file (TTS_BATCH_SETTINGS)
        3. built-in defaults

    Returns:
        Dict with any of: level, log_dir, jsonl_file, rotate_max_bytes,
        rotate_backup_count.
    """
    cfg: Dict[str, Any] = {}

    settings_path = os.getenv("TTS_BATCH_SETTINGS", "config/settings.yaml")
    if os.path.exists(settings_path):
        from tts_batch.core.config import load_settings
        try:
            settings = load_settings(settings_path)
            cfg.update(settings.raw.get("logging", {}) or {})
        except Exception:
            # unreadable settings: keep logging defaults
            pass

    if os.getenv("TTS_BATCH_LOG_LEVEL"):
        cfg["level"] = os.environ["TTS_BATCH_LOG_LEVEL"]
    if os.getenv("TTS_BATCH_LOG_DIR"):
        cfg["log_dir"] = os.environ["TTS_BATCH_LOG_DIR"]
    if os.getenv("TTS_BATCH_JSONL_FILE"):
        cfg["jsonl_file"] = os.environ["TTS_BATCH_JSONL_FILE"]
    for env_name, key in (
        ("TTS_BATCH_LOG_ROTATE_BYTES", "rotate_max_bytes"),
        ("TTS_BATCH_LOG_ROTATE_BACKUP", "rotate_backup_count"),
    ):
        raw = os.getenv(env_name)
        if raw:
            try:
                cfg[key] = int(raw)
            except ValueError:
                pass  # ignore malformed numbers, keep defaults

    return cfg
