"""
Log Formatters.

    JsonlFormatter: one JSON object per line for the rotating log file.
    ColoredConsoleFormatter: ``HH:MM:SS [ TAG ] (run) message k=v`` for humans.

Output Examples:
    JSONL (file):
        {"ts":"2026-03-02T14:30:05+01:00","level":2,"tag":"INFO","message":"batch_done","run_id":"r-3f2a","extra":{"batch":2,"failed":1}}

    Console:
        14:30:05 [ INFO  ] (r-3f2a) batch_done batch=2 failed=1 1.842s

Console Color Schemes:
    Timing (seconds): green < 1s, yellow < 10s, red otherwise. Provider calls
    routinely take seconds, so the thresholds are wider than for local work.

    success_rate: green at 1.0, yellow >= 0.5, red below.

    failed / failed_chunks: green at 0, red otherwise.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Dict

from . import colors
from .colors import Colors, get_tag_color

_FAILURE_KEYS = frozenset({"failed", "failed_chunks"})


def _paint(text: str, color: str) -> str:
    # read the flag at call time; tests and configure_logging() flip it
    if not colors.USE_COLORS:
        return text
    return f"{color}{text}{Colors.RESET}"


class JsonlFormatter(logging.Formatter):
    """
    Format log records as JSON Lines.

    Keys: ``ts`` (local ISO timestamp), ``level`` (1-4), ``tag``, ``message``,
    ``run_id``, and when present ``event``, ``seconds`` and ``extra``.
    """

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created).astimezone().isoformat()

        payload: Dict[str, Any] = {
            "ts": ts,
            "level": getattr(record, "numeric_level", 2),
            "tag": getattr(record, "tag", record.levelname),
            "message": record.getMessage(),
            "run_id": getattr(record, "run_id", "-"),
        }

        event = getattr(record, "event", None)
        if event:
            payload["event"] = event

        seconds = getattr(record, "seconds", None)
        if seconds is not None:
            payload["seconds"] = seconds

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            payload["extra"] = extra_data

        return json.dumps(payload, ensure_ascii=False, default=str)


class ColoredConsoleFormatter(logging.Formatter):
    """Format log records as colored single lines for the terminal."""

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        tag = getattr(record, "tag", record.levelname)
        run_id = getattr(record, "run_id", "-")

        parts = [
            _paint(ts, Colors.DIM),
            _paint(f"[{tag:^7}]", get_tag_color(tag)),
        ]
        if run_id != "-":
            parts.append(_paint(f"({run_id})", Colors.DIM + Colors.CYAN))
        parts.append(record.getMessage())

        event = getattr(record, "event", None)
        if event:
            parts.append(_paint(f"event={event}", Colors.BLUE))

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            for k, v in extra_data.items():
                parts.append(_paint(f"{k}={v}", self._field_color(k, v)))

        seconds = getattr(record, "seconds", None)
        if seconds is not None:
            if seconds < 1.0:
                time_color = Colors.GREEN
            elif seconds < 10.0:
                time_color = Colors.YELLOW
            else:
                time_color = Colors.RED
            parts.append(_paint(f"{seconds:.3f}s", time_color))

        return " ".join(parts)

    def _field_color(self, key: str, value: Any) -> str:
        """Pick a color for an extra field from its name and value."""
        if key == "success_rate" and isinstance(value, (int, float)):
            if value >= 1.0:
                return Colors.GREEN
            elif value >= 0.5:
                return Colors.YELLOW
            else:
                return Colors.RED

        if key in _FAILURE_KEYS and isinstance(value, int):
            return Colors.GREEN if value == 0 else Colors.RED

        if key == "state":
            return Colors.MAGENTA

        return Colors.DIM
