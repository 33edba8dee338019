"""
Text Utilities.

Helpers applied to manuscript text before chunking and for display:

    prepare_text: strip and normalize line endings (CRLF/CR -> LF)
    word_count: whitespace-delimited word count
    estimate_duration_seconds: rough listening time at 15 characters/second
    preview: one-line, length-capped excerpt for logs

Unlike a TTS frontend, nothing here rewrites the words themselves; the
provider receives the text exactly as written, minus surrounding
whitespace.

Example:
    >>> prepare_text("  Chapter 1\\r\\nIt was a dark night.  ")
    'Chapter 1\\nIt was a dark night.'
    >>> word_count("It was a dark night.")
    5
    >>> estimate_duration_seconds("x" * 31)
    3
"""
from __future__ import annotations

import math
import re

CHARS_PER_SECOND = 15

_CRLF_RE = re.compile(r"\r\n?")
_WS_RE = re.compile(r"\s+")


def prepare_text(text: str) -> str:
    """Strip surrounding whitespace and normalize line endings to ``\\n``."""
    return _CRLF_RE.sub("\n", text).strip()


def word_count(text: str) -> int:
    return len(text.split())


def estimate_duration_seconds(text: str, chars_per_second: int = CHARS_PER_SECOND) -> int:
    """
    Estimate spoken duration from character count.

    The figure is a display hint only; it is never derived from the audio.
    Empty text estimates to 0.
    """
    if chars_per_second <= 0:
        raise ValueError("chars_per_second must be positive")
    return math.ceil(len(text) / chars_per_second)


def preview(text: str, max_chars: int = 80) -> str:
    """Collapse whitespace and cut to ``max_chars`` with an ellipsis."""
    flat = _WS_RE.sub(" ", text).strip()
    if max_chars <= 0:
        return ""
    if len(flat) <= max_chars:
        return flat
    return flat[: max(0, max_chars - 3)] + "..."
