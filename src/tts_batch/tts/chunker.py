"""
Text Chunking for Provider Requests.

Speech providers cap the number of characters accepted per request, so a
manuscript has to be cut into ordered pieces before generation. This
module does the cutting and nothing else: it is a pure function of the
text and a maximum length.

Split Preference (per window of ``max_length`` characters):
    1. After the last sentence end inside the window: ``.``, ``?`` or ``!``
       followed by whitespace, or a run of line breaks
    2. After the last space at or before the window end
    3. Hard cut at the window end (a single overlong token)

Each piece is trimmed; pieces that trim to nothing are dropped without
consuming an index, so indices are always ``0..N-1``. The character
offsets of a chunk describe the untrimmed span it was cut from.

Text that already fits (including empty text) comes back as a single
chunk, unmodified. Callers reject empty input before getting here.

Example:
    >>> from tts_batch.tts.chunker import chunk_text
    >>> result = chunk_text("Hello world. This is a test. Another sentence here.", 25)
    >>> [c.text for c in result.chunks]
    ['Hello world.', 'This is a test.', 'Another sentence here.']
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List

from tts_batch.core.logging import get_logger, verbose
from tts_batch.utils.timeit import timeit

if TYPE_CHECKING:
    from tts_batch.core.config import ProviderProfile

_LOG = get_logger("tts-batch.chunker")

# Sentence terminator plus its trailing whitespace, or a line-break run
_BOUNDARY_RE = re.compile(r"[.?!]\s+|[\n\r]+")


@dataclass(frozen=True)
class TextChunk:
    """
    One ordered piece of the input text.

    Attributes:
        index: Dense 0-based position in emission order.
        text: Trimmed chunk text (non-empty unless the input was empty).
        start_char: Start offset of the untrimmed span in the input.
        end_char: End offset (exclusive) of the untrimmed span.
    """
    index: int
    text: str
    start_char: int
    end_char: int

    def to_dict(self) -> Dict[str, object]:
        return {
            "index": self.index,
            "text": self.text,
            "start_char": self.start_char,
            "end_char": self.end_char,
            "chars": len(self.text),
        }


@dataclass
class ChunkResult:
    """
    Result of a chunking operation.

    Attributes:
        chunks: Ordered chunks.
        timings_s: Timing measurements in seconds.
    """
    chunks: List[TextChunk]
    timings_s: Dict[str, float]


def _find_split(text: str, pos: int, end: int) -> int:
    """Split offset for the window ``[pos, end)``; always greater than ``pos``."""
    last_boundary = -1
    for m in _BOUNDARY_RE.finditer(text, pos, end):
        last_boundary = m.end()
    if pos < last_boundary <= end:
        return last_boundary

    space = text.rfind(" ", 0, end + 1)
    if space > pos:
        return space + 1

    return end


def chunk_text(text: str, max_length: int) -> ChunkResult:
    """
    Split text into ordered, boundary-respecting chunks.

    Args:
        text: Input text.
        max_length: Maximum characters per chunk (>= 1).

    Returns:
        ChunkResult with dense, ordered TextChunk list.

    Raises:
        ValueError: If max_length is not positive.
    """
    if max_length <= 0:
        raise ValueError(f"max_length must be positive, got {max_length}")

    timings: Dict[str, float] = {}

    with timeit("chunk") as t:
        if len(text) <= max_length:
            chunks = [TextChunk(index=0, text=text, start_char=0, end_char=len(text))]
        else:
            chunks = []
            pos = 0
            n = len(text)
            while pos < n:
                end = pos + max_length
                split = n if end >= n else _find_split(text, pos, end)

                piece = text[pos:split].strip()
                if piece:
                    chunks.append(TextChunk(index=len(chunks), text=piece, start_char=pos, end_char=split))
                pos = split

    timings["chunk"] = t.timing.seconds if t.timing else -1.0
    verbose(
        _LOG, "chunked",
        chunks=len(chunks),
        chars=len(text),
        max_length=max_length,
        seconds=round(timings["chunk"], 4),
    )
    return ChunkResult(chunks=chunks, timings_s=timings)


def chunk_for_provider(text: str, profile: "ProviderProfile") -> ChunkResult:
    """Chunk ``text`` with the provider's request size limit."""
    return chunk_text(text, profile.max_chunk_length)
