"""
tts-batch: Batch Narration of Long Texts through Rate-Limited TTS Providers.

Long manuscripts are split into provider-sized chunks, generated in small
concurrent batches with a pause between batches to respect provider rate
limits, and packed into a single ordered zip archive.

Supported Providers:
    - MiniMax: speech-02 models, hex-encoded MP3 responses, strict per-minute limit
    - ElevenLabs: multilingual v2 models, raw MP3 responses
    - Fake: deterministic in-process provider for tests and dry runs

Key Features:
    - Sentence-aware chunking with hard cuts as a last resort
    - Batch fan-out with per-chunk failure isolation
    - Cooperative pause / resume / abort at batch checkpoints
    - Retry of failed chunks as a new run
    - Zip export in narration order
    - HTTP API (FastAPI), CLI and Prometheus metrics

Example Usage:
    >>> from tts_batch.services import NarrationService, RunRequest
    >>> from tts_batch.core.config import Settings
    >>>
    >>> service = NarrationService(Settings(raw={}))
    >>> run = await service.execute(RunRequest(text=manuscript, provider="fake"))
    >>> archive = service.export(run.run_id)
    >>> with open(archive.filename, "wb") as f:
    ...     f.write(archive.blob)
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
