"""
Export Assembler.

Packs the completed chunks of a run into one zip archive. Entry names
start with a zero-padded, 1-based sequence number so that sorting the
extracted files by name gives narration order:

    001_minimax-English_radiant_girl-chunk0-1767225600000.mp3
    002_minimax-English_radiant_girl-chunk1-1767225600412.mp3
    ...

The sequence number is the chunk's position in the manuscript
(``chunk_index + 1``), so a run with failed chunks leaves gaps in the
numbering rather than shifting later chunks. Pending, generating and
failed jobs are skipped; exporting a run with nothing completed is an
error and produces no archive.

Archive Filename:
    {Provider}_Audio_{YYYY-MM-DDTHH-MM-SS}.zip   (UTC)
"""
from __future__ import annotations

import io
import zipfile
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from tts_batch.core.config import Defaults
from tts_batch.core.errors import ExportError
from tts_batch.core.logging import get_logger, info
from tts_batch.tts.state import ChunkJob, ChunkStatus

_LOG = get_logger("tts-batch.export")

MIN_SEQUENCE_WIDTH = 3


@dataclass(frozen=True)
class ExportResult:
    """
    An assembled archive.

    Attributes:
        blob: Zip file bytes.
        filename: Suggested download filename.
        entries: Entry names in archive order.
    """
    blob: bytes
    filename: str
    entries: List[str]

    @property
    def size(self) -> int:
        return len(self.blob)


def sequence_width(max_sequence: int) -> int:
    return max(MIN_SEQUENCE_WIDTH, len(str(max_sequence)))


def archive_entry_name(job: ChunkJob, width: int = MIN_SEQUENCE_WIDTH) -> str:
    """``{chunk_index + 1, zero-padded}_{artifact filename}``."""
    if job.artifact is None:
        raise ValueError(f"chunk {job.chunk_index} has no artifact")
    return f"{job.chunk_index + 1:0{width}d}_{job.artifact.filename}"


def archive_filename(display_name: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    stamp = now.strftime("%Y-%m-%dT%H-%M-%S")
    return f"{display_name}_Audio_{stamp}.zip"


def assemble_archive(
    jobs: Iterable[ChunkJob],
    display_name: str = "TTS",
    compression_level: int = Defaults.EXPORT_COMPRESSION_LEVEL,
    now: Optional[datetime] = None,
) -> ExportResult:
    """
    Zip the completed jobs in chunk order.

    Args:
        jobs: Any jobs of a run, in any order.
        display_name: Provider display name for the archive filename.
        compression_level: zlib level 0-9.
        now: Timestamp for the filename (defaults to current UTC time).

    Returns:
        ExportResult with the archive bytes.

    Raises:
        ExportError: If no job is completed.
    """
    completed = sorted(
        (j for j in jobs if j.status == ChunkStatus.COMPLETED and j.artifact is not None),
        key=lambda j: j.chunk_index,
    )
    if not completed:
        raise ExportError()

    width = sequence_width(completed[-1].chunk_index + 1)
    entries: List[str] = []
    buf = io.BytesIO()
    with zipfile.ZipFile(
        buf, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=compression_level
    ) as zf:
        for job in completed:
            name = archive_entry_name(job, width)
            zf.writestr(name, job.artifact.audio_bytes)
            entries.append(name)

    result = ExportResult(
        blob=buf.getvalue(),
        filename=archive_filename(display_name, now),
        entries=entries,
    )
    info(_LOG, "archive_built", entries=len(entries), bytes=result.size, filename=result.filename)
    return result
