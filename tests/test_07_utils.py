"""Tests for text, audio and timing helpers."""
from __future__ import annotations

import pytest


class TestText:
    def test_prepare_text_normalizes_line_endings(self):
        from tts_batch.utils.text import prepare_text

        assert prepare_text("  One.\r\nTwo.\rThree.  ") == "One.\nTwo.\nThree."

    def test_word_count(self):
        from tts_batch.utils.text import word_count

        assert word_count("It was a bright\ncold day.") == 6
        assert word_count("   ") == 0

    @pytest.mark.parametrize("chars, expected", [(0, 0), (1, 1), (15, 1), (16, 2), (3000, 200)])
    def test_duration_estimate(self, chars, expected):
        from tts_batch.utils.text import estimate_duration_seconds

        assert estimate_duration_seconds("a" * chars) == expected

    def test_duration_estimate_rejects_bad_rate(self):
        from tts_batch.utils.text import estimate_duration_seconds

        with pytest.raises(ValueError):
            estimate_duration_seconds("abc", chars_per_second=0)

    def test_preview(self):
        from tts_batch.utils.text import preview

        assert preview("short\n text") == "short text"
        assert preview("x" * 100, max_chars=10) == "xxxxxxx..."


class TestAudio:
    def test_mp3_sniffing(self):
        from tts_batch.utils.audio import looks_like_mp3

        assert looks_like_mp3(b"ID3\x04rest")
        assert looks_like_mp3(b"\xff\xfb\x90\x64")
        assert not looks_like_mp3(b"RIFF....WAVE")
        assert not looks_like_mp3(b"{}")

    def test_sanitize_token(self):
        from tts_batch.utils.audio import sanitize_token

        assert sanitize_token("English radiant/girl") == "English_radiant_girl"


class TestTimeit:
    def test_timing_recorded(self):
        from tts_batch.utils.timeit import timeit

        with timeit("work", meta={"batch": 1}) as t:
            sum(range(1000))
        assert t.timing is not None
        assert t.timing.name == "work"
        assert t.timing.meta == {"batch": 1}
        assert t.seconds >= 0.0

    def test_timing_recorded_on_error(self):
        from tts_batch.utils.timeit import timeit

        t = timeit("failing")
        with pytest.raises(RuntimeError):
            with t:
                raise RuntimeError("boom")
        assert t.timing is not None
