"""
Audio Helpers.

Every artifact handled by tts-batch is an MP3 file returned by a provider.
Nothing is decoded or re-encoded; these helpers only sniff and name the bytes.

Key Functions:
    looks_like_mp3: cheap format check (ID3 tag or MPEG frame sync)
    sanitize_token: make a voice id safe for use in a filename

Example:
    >>> sanitize_token("English_radiant girl!")
    'English_radiant_girl_'
"""
from __future__ import annotations

import re

MP3_MIME = "audio/mpeg"
MP3_EXTENSION = ".mp3"

_UNSAFE_RE = re.compile(r"[^a-zA-Z0-9]")


def looks_like_mp3(data: bytes) -> bool:
    """
    Return True if ``data`` starts like an MP3 stream.

    Accepts an ID3v2 header or an MPEG audio frame sync (11 set bits).
    """
    if len(data) < 3:
        return False
    if data[:3] == b"ID3":
        return True
    return data[0] == 0xFF and (data[1] & 0xE0) == 0xE0


def sanitize_token(value: str) -> str:
    """Replace every character outside ``[a-zA-Z0-9]`` with ``_``."""
    return _UNSAFE_RE.sub("_", value)
