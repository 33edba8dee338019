"""Tests for pyproject.toml and package installation."""
from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path


class TestPackageInstallation:
    def test_version_defined(self):
        import tts_batch

        assert isinstance(tts_batch.__version__, str)
        assert tts_batch.__version__

    def test_core_modules_importable(self):
        from tts_batch.api import routes, schemas
        from tts_batch.core import config, logging
        from tts_batch.tts import chunker, export, scheduler

        for module in (routes, schemas, config, logging, chunker, export, scheduler):
            assert module is not None

    def test_app_title_and_version(self):
        import tts_batch
        from tts_batch.main import create_app

        app = create_app()
        assert app.title == "tts-batch"
        assert app.version == tts_batch.__version__


class TestCLIEntryPoint:
    def test_cli_help_exits_zero(self):
        result = subprocess.run(
            [sys.executable, "-m", "tts_batch.cli", "--help"],
            env={**os.environ, "PYTHONPATH": str(Path(__file__).resolve().parents[1] / "src")},
            capture_output=True,
            text=True,
            timeout=60,
        )
        assert result.returncode == 0
        assert "--dry-run" in result.stdout
