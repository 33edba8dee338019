"""Tests for NarrationService run orchestration."""
from __future__ import annotations

import asyncio
import time

import pytest

TEXT = " ".join(f"Sentence number {i} of the manuscript." for i in range(10))


def _settings(**fake):
    from tts_batch.core.config import Settings

    return Settings(raw={
        "scheduler": {"default_provider": "fake"},
        "providers": {"fake": {"max_chunk_length": 40, "batch_size": 2, **fake}},
    })


def _service(client_factory=None, **fake):
    from tts_batch.services import NarrationService

    return NarrationService(_settings(**fake), client_factory=client_factory)


async def _wait_for(predicate, timeout: float = 3.0):
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.005)


class TestPreview:
    def test_preview_uses_provider_profile(self):
        service = _service()
        preview = service.preview(TEXT)

        assert preview.config.provider == "fake"
        assert len(preview.chunks) == 10
        assert preview.total_batches == 5
        d = preview.to_dict()
        assert d["total_chunks"] == 10
        assert d["words"] == len(TEXT.split())
        assert d["estimated_duration_seconds"] > 0

    def test_preview_rejects_unknown_provider(self):
        from tts_batch.services import ConfigurationError, ErrorCode

        with pytest.raises(ConfigurationError) as exc_info:
            _service().preview(TEXT, provider="polly")
        assert exc_info.value.code == ErrorCode.UNKNOWN_PROVIDER


class TestExecute:
    def test_full_run_and_export(self):
        from tts_batch.services import RunRequest
        from tts_batch.tts.scheduler import RunState

        service = _service()
        run = asyncio.run(service.execute(RunRequest(text=TEXT)))
        summary = run.summary()

        assert run.state is RunState.COMPLETED
        assert (summary.completed_chunks, summary.failed_chunks) == (10, 0)
        assert summary.message() == "10/10 chunks completed (100.0% success rate)"

        archive = service.export(run.run_id)
        assert len(archive.entries) == 10
        assert archive.filename.startswith("Fake_Audio_")
        assert archive.entries[0].startswith("001_fake-fake_voice-chunk0-")

    def test_failed_chunks_do_not_stop_run(self):
        from tts_batch.services import RunRequest

        service = _service(fail_indices=[1, 6])
        run = asyncio.run(service.execute(RunRequest(text=TEXT)))

        failed = [j.chunk_index for j in run.scheduler.store.failed_jobs()]
        assert failed == [1, 6]
        assert run.summary().completed_chunks == 8
        assert len(service.export(run.run_id).entries) == 8

    def test_export_with_nothing_completed(self):
        from tts_batch.services import ExportError, RunRequest

        service = _service(fail_indices=list(range(10)))
        run = asyncio.run(service.execute(RunRequest(text=TEXT)))
        with pytest.raises(ExportError):
            service.export(run.run_id)

    def test_request_overrides(self):
        from tts_batch.services import RunRequest

        service = _service()
        run = asyncio.run(service.execute(RunRequest(text=TEXT, batch_size=4, voice="narrator-2")))
        assert run.config.batch_size == 4
        assert run.scheduler.progress.total_batches == 3
        assert run.config.voice == "narrator-2"


class TestValidation:
    @pytest.mark.parametrize(
        "kwargs, code",
        [
            ({"text": "   "}, "TEXT_REQUIRED"),
            ({"text": "Hello.", "batch_size": 0}, "BATCH_SIZE_INVALID"),
            ({"text": "Hello.", "inter_batch_delay_s": -2}, "DELAY_INVALID"),
            ({"text": "Hello.", "voice": "v" * 300}, "VOICE_TOO_LONG"),
        ],
    )
    def test_invalid_requests_create_nothing(self, kwargs, code):
        from tts_batch.services import ConfigurationError, ErrorCode, RunRequest

        service = _service()

        async def scenario():
            service.start_run(RunRequest(**kwargs))

        with pytest.raises(ConfigurationError) as exc_info:
            asyncio.run(scenario())
        assert exc_info.value.code == ErrorCode.INVALID_INPUT
        assert exc_info.value.details["code"] == code
        assert service.list_runs() == []

    def test_text_limit_from_settings(self):
        from tts_batch.core.config import Settings
        from tts_batch.services import ConfigurationError, NarrationService

        service = NarrationService(Settings(raw={
            "scheduler": {"default_provider": "fake"},
            "limits": {"max_text_chars": 10},
        }))
        with pytest.raises(ConfigurationError, match="maximum length"):
            service.preview("This text is too long.")


class TestRunControl:
    def test_pause_and_resume(self):
        from tts_batch.services import RunRequest
        from tts_batch.tts.scheduler import RunState
        from tts_batch.tts.state import ChunkStatus

        service = _service(latency_s=0.02)

        async def scenario():
            run = service.start_run(RunRequest(text=TEXT))
            await _wait_for(lambda: run.scheduler.progress.completed_batches >= 1)
            service.pause(run.run_id)
            await run.task
            paused_state = run.state
            pending = run.scheduler.store.counts()[ChunkStatus.PENDING.value]

            service.resume(run.run_id)
            await run.task
            return run, paused_state, pending

        run, paused_state, pending = asyncio.run(scenario())
        assert paused_state is RunState.PAUSED
        assert pending > 0
        assert run.state is RunState.COMPLETED
        assert run.summary().completed_chunks == 10

    @pytest.mark.parametrize("action, expected", [("pause", "paused"), ("abort", "aborted")])
    def test_control_right_after_resume(self, action, expected):
        from tts_batch.services import RunRequest

        service = _service(latency_s=0.02)

        async def scenario():
            run = service.start_run(RunRequest(text=TEXT))
            await _wait_for(lambda: run.scheduler.progress.completed_batches >= 1)
            service.pause(run.run_id)
            await run.task
            before = run.summary().completed_chunks

            # request lands before the relaunched task first runs
            service.resume(run.run_id)
            getattr(service, action)(run.run_id)
            await run.task
            return run, before

        run, before = asyncio.run(scenario())
        assert run.task.exception() is None
        assert run.state.value == expected
        assert run.summary().completed_chunks == before
        assert run.summary().completed_chunks < 10

    def test_resume_requires_paused_run(self):
        from tts_batch.services import RunRequest, RunStateError

        service = _service()

        async def scenario():
            run = await service.execute(RunRequest(text=TEXT))
            service.resume(run.run_id)

        with pytest.raises(RunStateError):
            asyncio.run(scenario())

    def test_abort_running_run(self):
        from tts_batch.services import RunRequest
        from tts_batch.tts.scheduler import RunState

        service = _service(latency_s=0.02)

        async def scenario():
            run = service.start_run(RunRequest(text=TEXT))
            await _wait_for(lambda: run.scheduler.progress.completed_batches >= 1)
            service.abort(run.run_id)
            await run.task
            return run

        run = asyncio.run(scenario())
        assert run.state is RunState.ABORTED
        assert 0 < run.summary().completed_chunks < 10
        # completed audio of an aborted run can still be exported
        assert service.export(run.run_id).entries

    def test_unknown_run(self):
        from tts_batch.services import RunNotFoundError

        with pytest.raises(RunNotFoundError):
            _service().get_run("nope")

    def test_shutdown_cancels_active_runs(self):
        from tts_batch.services import RunRequest
        from tts_batch.tts.scheduler import RunState

        service = _service(latency_s=5.0)

        async def scenario():
            run = service.start_run(RunRequest(text=TEXT))
            await asyncio.sleep(0.02)
            await service.shutdown()
            return run

        run = asyncio.run(scenario())
        assert run.state is RunState.ABORTED


class TestRetryFailed:
    def test_retry_runs_only_failed_chunks(self):
        from tts_batch.services import RunRequest
        from tts_batch.tts.clients.fake_client import FakeClient
        from tts_batch.tts.scheduler import RunState

        clients = []

        def factory(provider, settings):
            # first run fails chunks 2 and 7, the retry succeeds
            client = FakeClient(settings, fail_indices={2, 7} if not clients else set())
            clients.append(client)
            return client

        service = _service(client_factory=factory)

        async def scenario():
            source = await service.execute(RunRequest(text=TEXT))
            retry = service.retry_failed(source.run_id)
            await retry.task
            return source, retry

        source, retry = asyncio.run(scenario())

        assert retry.run_id != source.run_id
        assert retry.source_run_id == source.run_id
        assert retry.state is RunState.COMPLETED
        assert [j.chunk_index for j in retry.scheduler.store.jobs()] == [2, 7]
        assert sorted(clients[1].calls) == [2, 7]
        # source run is untouched
        assert [j.chunk_index for j in source.scheduler.store.failed_jobs()] == [2, 7]
        assert [e[:4] for e in service.export(retry.run_id).entries] == ["003_", "008_"]

    def test_retry_without_failures(self):
        from tts_batch.services import RunRequest, RunStateError

        service = _service()

        async def scenario():
            run = await service.execute(RunRequest(text=TEXT))
            service.retry_failed(run.run_id)

        with pytest.raises(RunStateError, match="no failed chunks"):
            asyncio.run(scenario())


class TestRunLimits:
    def test_too_many_active_runs(self):
        from tts_batch.core.config import Settings
        from tts_batch.services import NarrationService, RunRequest, TooManyRunsError

        service = NarrationService(Settings(raw={
            "scheduler": {"default_provider": "fake", "max_runs": 1},
            "providers": {"fake": {"latency_s": 0.05}},
        }))

        async def scenario():
            first = service.start_run(RunRequest(text="Hello."))
            with pytest.raises(TooManyRunsError):
                service.start_run(RunRequest(text="Hello again."))
            await first.task
            # settled runs are evicted to make room
            second = service.start_run(RunRequest(text="Hello again."))
            await second.task
            return first, second

        first, second = asyncio.run(scenario())
        assert [r.run_id for r in service.list_runs()] == [second.run_id]


class TestResults:
    def test_chunk_audio(self):
        from tts_batch.services import ConfigurationError, RunRequest, RunStateError

        service = _service(fail_indices=[3])
        run = asyncio.run(service.execute(RunRequest(text=TEXT)))

        artifact = service.chunk_audio(run.run_id, 0)
        assert artifact.audio_bytes.startswith(b"ID3")
        with pytest.raises(RunStateError):
            service.chunk_audio(run.run_id, 3)
        with pytest.raises(ConfigurationError):
            service.chunk_audio(run.run_id, 99)

    def test_run_to_dict(self):
        from tts_batch.services import RunRequest

        service = _service()
        run = asyncio.run(service.execute(RunRequest(text=TEXT)))
        d = run.to_dict()
        assert d["state"] == "completed"
        assert d["progress"]["completed_chunks"] == 10
        assert len(d["jobs"]) == 10
        assert "text" not in d["jobs"][0]
        assert "jobs" not in run.to_dict(include_jobs=False)

    def test_health_info(self):
        info = _service().get_health_info()
        assert info["ok"] is True
        assert info["default_provider"] == "fake"
        assert info["providers"]["fake"]["configured"] is True
        assert info["providers"]["minimax"]["configured"] is False
        assert info["runs"]["total"] == 0


class TestSingleton:
    def test_get_service_returns_same_instance(self, settings):
        from tts_batch.services.narration_service import get_service, reset_service

        first = get_service(settings)
        assert get_service(settings) is first
        reset_service()
        assert get_service(settings) is not first
