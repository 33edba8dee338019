"""Tests for sentence-aware chunking."""
from __future__ import annotations

import re

import pytest


def _rejoin(chunks) -> str:
    return "".join(re.sub(r"\s+", "", c.text) for c in chunks)


class TestChunkBoundaries:
    """Where splits fall."""

    def test_short_text_is_single_chunk(self):
        from tts_batch.tts.chunker import chunk_text

        result = chunk_text("Hello world.", 25)
        assert [c.text for c in result.chunks] == ["Hello world."]
        assert result.chunks[0].index == 0

    def test_split_after_sentence_end(self):
        from tts_batch.tts.chunker import chunk_text

        text = "Hello world. This is a test. Another sentence here."
        chunks = chunk_text(text, 25).chunks

        assert chunks[0].text == "Hello world."
        assert [c.text for c in chunks] == [
            "Hello world.",
            "This is a test.",
            "Another sentence here.",
        ]

    def test_newline_is_a_boundary(self):
        from tts_batch.tts.chunker import chunk_text

        text = "Chapter One\nIt was a bright cold day in April"
        chunks = chunk_text(text, 30).chunks
        assert chunks[0].text == "Chapter One"

    def test_falls_back_to_last_space(self):
        from tts_batch.tts.chunker import chunk_text

        text = "alpha beta gamma delta epsilon zeta eta theta"
        chunks = chunk_text(text, 20).chunks
        assert all(len(c.text) <= 20 for c in chunks)
        assert all(not c.text.startswith(" ") and not c.text.endswith(" ") for c in chunks)
        # words are never split
        assert " ".join(c.text for c in chunks).split() == text.split()

    def test_hard_cut_without_boundaries(self):
        from tts_batch.tts.chunker import chunk_text

        text = "x" * 60
        chunks = chunk_text(text, 25).chunks
        assert [len(c.text) for c in chunks] == [25, 25, 10]


class TestChunkInvariants:
    """Coverage, density and length bound."""

    TEXT = (
        "It was the best of times, it was the worst of times. "
        "It was the age of wisdom!\nIt was the age of foolishness? "
        "It was the epoch of belief, it was the epoch of incredulity. "
        "Supercalifragilisticexpialidociousnessandmore follows here."
    )

    @pytest.mark.parametrize("max_length", [1, 7, 25, 40, 80, 1000])
    def test_no_characters_lost(self, max_length):
        from tts_batch.tts.chunker import chunk_text

        chunks = chunk_text(self.TEXT, max_length).chunks
        assert _rejoin(chunks) == re.sub(r"\s+", "", self.TEXT)

    @pytest.mark.parametrize("max_length", [1, 7, 25, 40, 80])
    def test_length_bound(self, max_length):
        from tts_batch.tts.chunker import chunk_text

        chunks = chunk_text(self.TEXT, max_length).chunks
        assert all(len(c.text) <= max_length for c in chunks)

    def test_indices_are_dense(self):
        from tts_batch.tts.chunker import chunk_text

        chunks = chunk_text(self.TEXT, 30).chunks
        assert [c.index for c in chunks] == list(range(len(chunks)))

    def test_no_empty_chunks(self):
        from tts_batch.tts.chunker import chunk_text

        chunks = chunk_text("One.\n\n\n\nTwo.\n\n\n\nThree.", 6).chunks
        assert [c.text for c in chunks] == ["One.", "Two.", "Three."]

    def test_offsets_cover_input(self):
        from tts_batch.tts.chunker import chunk_text

        chunks = chunk_text(self.TEXT, 40).chunks
        assert chunks[0].start_char == 0
        assert chunks[-1].end_char == len(self.TEXT)
        for c in chunks:
            assert c.text in self.TEXT[c.start_char:c.end_char]


class TestChunkerInputs:
    def test_invalid_max_length(self):
        from tts_batch.tts.chunker import chunk_text

        with pytest.raises(ValueError):
            chunk_text("Hello", 0)

    def test_timings_recorded(self):
        from tts_batch.tts.chunker import chunk_text

        result = chunk_text("Hello world. Again.", 10)
        assert isinstance(result.timings_s.get("chunk"), float)

    def test_chunk_for_provider_uses_profile_limit(self):
        from tts_batch.core.config import PROVIDER_PROFILES
        from tts_batch.tts.chunker import chunk_for_provider

        text = "Sentence number one. " * 300
        chunks = chunk_for_provider(text, PROVIDER_PROFILES["minimax"]).chunks
        assert len(chunks) > 1
        assert all(len(c.text) <= 3000 for c in chunks)
