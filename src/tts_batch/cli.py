"""
Command-Line Interface for tts-batch.

This module narrates a text file end to end without running the HTTP
server: chunk, generate in batches, write the zip archive.

Usage Examples:
    # Narrate a manuscript with MiniMax
    tts-batch --file book.txt --provider minimax --out book.zip

    # Word document
    tts-batch --file book.docx --provider elevenlabs

    # Positional text
    tts-batch "Hello world. This is a test." --provider fake

    # Dry run (chunking and batch plan only, no requests)
    tts-batch --file book.txt --provider elevenlabs --dry-run --json

    # Override batch pacing
    tts-batch --file book.txt --batch-size 3 --delay 70

    # Show provider profiles
    tts-batch --providers

Exit Codes:
    0  at least one chunk completed and the archive was written
    1  nothing to export (every chunk failed)
    2  configuration error (unknown provider, empty text, unreadable
       input file, bad settings)
    130 interrupted

Environment Variables:
    TTS_BATCH_SETTINGS: settings.yaml path
    TTS_BATCH_PROVIDER: default provider
    MINIMAX_API_KEY / MINIMAX_GROUP_ID / ELEVENLABS_API_KEY: credentials
"""

from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path
from typing import List, Optional

from tts_batch.core.config import (
    PROVIDER_PROFILES,
    ConfigValidationError,
    Settings,
    get_provider_profile,
    load_settings,
    load_settings_or_default,
)
from tts_batch.core.errors import ConfigurationError, ExportError
from tts_batch.core.logging import configure_logging, get_logger, info, warn
from tts_batch.services.narration_service import NarrationService, RunRequest
from tts_batch.utils.documents import DocumentError, extract_text

_LOG = get_logger("tts-batch.cli")

EXIT_OK = 0
EXIT_EXPORT = 1
EXIT_CONFIG = 2
EXIT_INTERRUPTED = 130


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="tts-batch",
        description="Narrate long texts through rate-limited TTS providers",
    )

    # Input options
    parser.add_argument("text_pos", nargs="?", help="Text to narrate (positional)")
    parser.add_argument("--text", help="Text to narrate")
    parser.add_argument("--file", help="Manuscript to narrate (.docx or UTF-8 text)")

    # Provider options
    parser.add_argument("--provider", help=f"Provider ({', '.join(PROVIDER_PROFILES)})")
    parser.add_argument("--voice", help="Voice override")
    parser.add_argument("--model", help="Model override")
    parser.add_argument("--batch-size", type=int, help="Chunks per batch")
    parser.add_argument("--delay", type=float, help="Seconds between batches")
    parser.add_argument("--max-chunk-length", type=int, help="Characters per chunk")

    # Output options
    parser.add_argument("--out", help="Zip archive path (default: generated name in cwd)")
    parser.add_argument("--config", help="settings.yaml path")

    # Execution modes
    parser.add_argument("--dry-run", action="store_true",
                        help="Chunk and summarize without generating")
    parser.add_argument("--json", action="store_true",
                        help="Print JSON summary")
    parser.add_argument("--providers", action="store_true",
                        help="List provider profiles and exit")
    parser.add_argument("--log-level", help="Log level (1-4 or name)")

    return parser.parse_args(argv)


def _load_text(args: argparse.Namespace) -> str:
    """
    Resolve input text from --file, --text or the positional argument.

    Raises:
        ConfigurationError: No input, conflicting inputs, or an unreadable file.
    """
    text = args.text or args.text_pos
    if args.file:
        if text:
            raise ConfigurationError("Use --file without --text or positional text.")
        try:
            return extract_text(args.file)
        except (FileNotFoundError, DocumentError) as e:
            raise ConfigurationError(str(e)) from e
    if not text:
        raise ConfigurationError("Provide --text, --file or a positional text.")
    return text


def _print(payload: dict, as_json: bool) -> None:
    if as_json:
        print(json.dumps(payload, ensure_ascii=False))
    else:
        for key, value in payload.items():
            print(f"{key}: {value}")


def _list_providers(settings: Settings, as_json: bool) -> int:
    profiles = [get_provider_profile(name, settings).to_dict() for name in PROVIDER_PROFILES]
    if as_json:
        print(json.dumps({"providers": profiles}, ensure_ascii=False))
        return EXIT_OK
    for p in profiles:
        print(
            f"{p['name']:<12} chunk={p['max_chunk_length']:<6} batch={p['batch_size']:<4} "
            f"delay={p['inter_batch_delay_s']:<6} voice={p['default_voice']}"
        )
    return EXIT_OK


def _dry_run(service: NarrationService, text: str, args: argparse.Namespace) -> int:
    preview = service.preview(text, args.provider)
    payload = preview.to_dict()
    payload.pop("chunks")
    payload = {"ok": True, "dry_run": True, **payload}
    info(_LOG, "dry_run", provider=preview.config.provider, chunks=len(preview.chunks))
    _print(payload, args.json)
    print("DRY_RUN_OK")
    return EXIT_OK


def _narrate(service: NarrationService, text: str, args: argparse.Namespace) -> int:
    request = RunRequest(
        text=text,
        provider=args.provider,
        voice=args.voice,
        model=args.model,
        batch_size=args.batch_size,
        inter_batch_delay_s=args.delay,
        max_chunk_length=args.max_chunk_length,
    )
    run = asyncio.run(service.execute(request))
    summary = run.summary()
    print(summary.message())

    payload = {"ok": summary.completed_chunks > 0, "run_id": run.run_id, **summary.to_dict()}
    try:
        archive = service.export(run.run_id)
    except ExportError as e:
        warn(_LOG, "export_failed", error=e.message)
        payload["error"] = e.code
        payload["message"] = e.message
        _print(payload, args.json)
        return EXIT_EXPORT

    out = Path(args.out or archive.filename)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_bytes(archive.blob)
    info(_LOG, "archive_written", out=str(out), bytes=archive.size, entries=len(archive.entries))

    payload["out"] = str(out)
    payload["entries"] = len(archive.entries)
    _print(payload, args.json)
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Exit code (see module docstring).
    """
    args = _parse_args(argv)
    configure_logging(level=args.log_level)

    try:
        settings = load_settings(args.config) if args.config else load_settings_or_default()
        if args.providers:
            return _list_providers(settings, args.json)

        service = NarrationService(settings)
        text = _load_text(args)
        if args.dry_run:
            return _dry_run(service, text, args)
        return _narrate(service, text, args)

    except (ConfigurationError, ConfigValidationError, FileNotFoundError) as e:
        message = getattr(e, "message", None) or str(e)
        print(f"error: {message}")
        return EXIT_CONFIG
    except KeyboardInterrupt:
        print("interrupted")
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    raise SystemExit(main())
