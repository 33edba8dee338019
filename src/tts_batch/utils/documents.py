"""
Manuscript Document Reading.

``extract_text(path)`` turns an input file into plain text for chunking:

    .docx   paragraph text via python-docx, one paragraph per line
    other   UTF-8 text (a leading BOM is dropped)

Formatting, tables, headers and footnotes are ignored; only the body
paragraphs reach the provider.

Example:
    >>> extract_text("book.docx")[:40]
    'Chapter 1\\nIt was a dark and stormy nig'
"""
from __future__ import annotations

import zipfile
from pathlib import Path
from typing import Union

import docx
from docx.opc.exceptions import PackageNotFoundError

from tts_batch.core.logging import get_logger, verbose

_LOG = get_logger("tts-batch.documents")

DOCX_SUFFIX = ".docx"


class DocumentError(Exception):
    """The file exists but its text cannot be extracted."""


def _docx_text(path: Path) -> str:
    try:
        document = docx.Document(str(path))
    except (PackageNotFoundError, zipfile.BadZipFile, KeyError) as e:
        raise DocumentError(f"Not a readable .docx file: {path.name}") from e
    return "\n".join(p.text for p in document.paragraphs)


def extract_text(path: Union[str, Path]) -> str:
    """
    Read the text of a manuscript file.

    Raises:
        FileNotFoundError: The file does not exist.
        DocumentError: Corrupt .docx, or a text file that is not UTF-8.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")

    if path.suffix.lower() == DOCX_SUFFIX:
        text = _docx_text(path)
        kind = "docx"
    else:
        try:
            text = path.read_bytes().decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise DocumentError(
                f"{path.name} is not UTF-8 text (byte {e.start}); save it as UTF-8 or .docx"
            ) from e
        kind = "text"

    verbose(_LOG, "document_read", file=path.name, kind=kind, chars=len(text))
    return text
