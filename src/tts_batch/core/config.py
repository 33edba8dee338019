"""
Configuration Management for tts-batch.

This module provides centralized configuration handling with:
    - Default values (Defaults class)
    - Built-in provider profiles (chunk size, batch size, inter-batch delay)
    - Dataclass-based configuration sections
    - YAML file loading with environment variable overrides
    - Per-run configuration (RunConfig) validated before any chunking

Configuration Hierarchy (highest priority first):
    1. Explicit per-run overrides (CLI flags, API request fields)
    2. Environment variables (TTS_BATCH_PROVIDER, TTS_BATCH_LOG_LEVEL, ...)
    3. YAML config file (config/settings.yaml, or TTS_BATCH_SETTINGS)
    4. Defaults class values and PROVIDER_PROFILES

Example settings.yaml:
    scheduler:
      default_provider: minimax
      max_runs: 16

    providers:
      minimax:
        batch_size: 5
        inter_batch_delay_s: 65
      elevenlabs:
        default_voice: 21m00Tcm4TlvDq8ikWAM

    limits:
      max_text_chars: 500000

    logging:
      level: 2  # NORMAL
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional
import os
import yaml


class ConfigValidationError(Exception):
    """
    Raised when configuration validation fails.

    Covers out-of-range numbers, unknown providers and missing required
    values. Raised before a run creates any state.
    """
    pass


class Defaults:
    """
    Centralized default configuration values.

    Sections:
        - Providers: chunk size and rate limits per provider
        - Scheduler: service-wide run limits
        - Limits: input size guard
        - Client: HTTP behaviour of provider clients
        - Export: archive compression
        - Logging: log level and previews
    """

    # ─────────────────────────────────────────────────────────────────────────
    # Providers
    # ─────────────────────────────────────────────────────────────────────────
    DEFAULT_PROVIDER = "minimax"
    MAX_CHUNK_LENGTH = 3000             # Characters per provider request

    MINIMAX_BATCH_SIZE = 5              # Requests per rate-limit window
    MINIMAX_DELAY_S = 65.0              # Window is one minute, plus slack
    MINIMAX_VOICE = "English_radiant_girl"
    MINIMAX_MODEL = "speech-02-hd"
    MINIMAX_BASE_URL = "https://api.minimaxi.chat"

    ELEVENLABS_BATCH_SIZE = 10
    ELEVENLABS_DELAY_S = 3.0
    ELEVENLABS_VOICE = "21m00Tcm4TlvDq8ikWAM"   # Rachel
    ELEVENLABS_MODEL = "eleven_multilingual_v2"
    ELEVENLABS_BASE_URL = "https://api.elevenlabs.io"

    FAKE_BATCH_SIZE = 10
    FAKE_DELAY_S = 0.0

    # ─────────────────────────────────────────────────────────────────────────
    # Scheduler
    # ─────────────────────────────────────────────────────────────────────────
    SCHEDULER_MAX_RUNS = 16             # Runs kept in memory per service

    # ─────────────────────────────────────────────────────────────────────────
    # Limits
    # ─────────────────────────────────────────────────────────────────────────
    LIMITS_MAX_TEXT_CHARS = 500_000     # Roughly a 300-page book

    # ─────────────────────────────────────────────────────────────────────────
    # Provider HTTP client
    # ─────────────────────────────────────────────────────────────────────────
    CLIENT_TIMEOUT_S = 120.0            # A 3000-char chunk can take a while

    # ─────────────────────────────────────────────────────────────────────────
    # Export
    # ─────────────────────────────────────────────────────────────────────────
    EXPORT_COMPRESSION_LEVEL = 6        # zlib level for the zip archive

    # ─────────────────────────────────────────────────────────────────────────
    # Logging
    # ─────────────────────────────────────────────────────────────────────────
    LOGGING_TEXT_PREVIEW_CHARS = 80
    LOGGING_LEVEL = 2                   # 1=MINIMAL, 2=NORMAL, 3=VERBOSE, 4=DEBUG


@dataclass(frozen=True)
class ProviderProfile:
    """
    Static limits and defaults for one speech provider.

    Attributes:
        name: Provider key used in requests ("minimax", "elevenlabs").
        display_name: Human-readable name, also used in archive filenames.
        max_chunk_length: Maximum characters per generation request.
        batch_size: Requests dispatched concurrently per batch.
        inter_batch_delay_s: Wait between consecutive batches.
        default_voice: Voice used when the caller provides none.
        default_model: Model used when the caller provides none.
        voice_required: Whether a run needs a resolved voice at all.
    """
    name: str
    display_name: str
    max_chunk_length: int
    batch_size: int
    inter_batch_delay_s: float
    default_voice: str
    default_model: Optional[str] = None
    voice_required: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


PROVIDER_PROFILES: Dict[str, ProviderProfile] = {
    "minimax": ProviderProfile(
        name="minimax",
        display_name="MiniMax",
        max_chunk_length=Defaults.MAX_CHUNK_LENGTH,
        batch_size=Defaults.MINIMAX_BATCH_SIZE,
        inter_batch_delay_s=Defaults.MINIMAX_DELAY_S,
        default_voice=Defaults.MINIMAX_VOICE,
        default_model=Defaults.MINIMAX_MODEL,
    ),
    "elevenlabs": ProviderProfile(
        name="elevenlabs",
        display_name="ElevenLabs",
        max_chunk_length=Defaults.MAX_CHUNK_LENGTH,
        batch_size=Defaults.ELEVENLABS_BATCH_SIZE,
        inter_batch_delay_s=Defaults.ELEVENLABS_DELAY_S,
        default_voice=Defaults.ELEVENLABS_VOICE,
        default_model=Defaults.ELEVENLABS_MODEL,
    ),
    "fake": ProviderProfile(
        name="fake",
        display_name="Fake",
        max_chunk_length=Defaults.MAX_CHUNK_LENGTH,
        batch_size=Defaults.FAKE_BATCH_SIZE,
        inter_batch_delay_s=Defaults.FAKE_DELAY_S,
        default_voice="fake-voice",
        default_model="fake-model",
    ),
}

# profile fields that settings.yaml may override under providers.<name>
_PROFILE_OVERRIDES = {
    "display_name": str,
    "max_chunk_length": int,
    "batch_size": int,
    "inter_batch_delay_s": float,
    "default_voice": str,
    "default_model": str,
    "voice_required": bool,
}


def get_provider_profile(name: str, settings: Optional["Settings"] = None) -> ProviderProfile:
    """
    Resolve the profile for a provider, applying settings overrides.

    Args:
        name: Provider key (case-insensitive).
        settings: Optional settings whose ``providers.<name>`` section
            overrides the built-in profile.

    Returns:
        The effective ProviderProfile.

    Raises:
        ConfigValidationError: Unknown provider or invalid override.
    """
    key = (name or "").strip().lower()
    base = PROVIDER_PROFILES.get(key)
    if base is None:
        known = ", ".join(sorted(PROVIDER_PROFILES))
        raise ConfigValidationError(f"unknown provider '{name}' (known: {known})")

    if settings is None:
        return base

    overrides_raw = (settings.raw.get("providers", {}) or {}).get(key, {}) or {}
    overrides = {
        k: cast(overrides_raw[k])
        for k, cast in _PROFILE_OVERRIDES.items()
        if overrides_raw.get(k) is not None
    }
    profile = replace(base, **overrides)

    ServiceConfig._validate_positive(f"providers.{key}.max_chunk_length", profile.max_chunk_length)
    ServiceConfig._validate_positive(f"providers.{key}.batch_size", profile.batch_size)
    ServiceConfig._validate_non_negative(f"providers.{key}.inter_batch_delay_s", profile.inter_batch_delay_s)
    return profile


@dataclass
class SchedulerConfig:
    """
    Service-wide scheduling configuration.

    ``batch_size`` and ``inter_batch_delay_s`` override every provider's
    profile when set; leave them unset to use per-provider values.
    """
    default_provider: str = Defaults.DEFAULT_PROVIDER
    max_runs: int = Defaults.SCHEDULER_MAX_RUNS
    batch_size: Optional[int] = None
    inter_batch_delay_s: Optional[float] = None


@dataclass
class LimitsConfig:
    """Input guards applied before chunking."""
    max_text_chars: int = Defaults.LIMITS_MAX_TEXT_CHARS


@dataclass
class ClientConfig:
    """HTTP settings shared by provider clients."""
    timeout_s: float = Defaults.CLIENT_TIMEOUT_S


@dataclass
class ExportConfig:
    compression_level: int = Defaults.EXPORT_COMPRESSION_LEVEL


@dataclass
class LoggingConfig:
    """
    Logging configuration.

    Log levels:
        1 = MINIMAL: run failures, startup/shutdown
        2 = NORMAL: run lifecycle, batch results (default)
        3 = VERBOSE: batch timing, delays, chunking
        4 = DEBUG: per-chunk transitions
    """
    text_preview_chars: int = Defaults.LOGGING_TEXT_PREVIEW_CHARS
    level: int = Defaults.LOGGING_LEVEL


@dataclass
class ServiceConfig:
    """
    Validated configuration for NarrationService.

    Usage:
        settings = load_settings("config/settings.yaml")
        config = ServiceConfig.from_settings(settings)
        print(config.limits.max_text_chars)
    """
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    client: ClientConfig = field(default_factory=ClientConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ServiceConfig":
        """
        Create ServiceConfig from Settings with validation.

        Args:
            settings: Raw Settings object loaded from YAML.

        Returns:
            Validated ServiceConfig instance.

        Raises:
            ConfigValidationError: If any value fails validation.
        """
        raw = settings.raw

        # ─────────────────────────────────────────────────────────────────────
        # Scheduler configuration
        # ─────────────────────────────────────────────────────────────────────
        scheduler_raw = raw.get("scheduler", {}) or {}
        batch_size_raw = scheduler_raw.get("batch_size")
        delay_raw = scheduler_raw.get("inter_batch_delay_s")
        scheduler = SchedulerConfig(
            default_provider=str(scheduler_raw.get("default_provider", Defaults.DEFAULT_PROVIDER)).lower(),
            max_runs=int(scheduler_raw.get("max_runs", Defaults.SCHEDULER_MAX_RUNS)),
            batch_size=int(batch_size_raw) if batch_size_raw is not None else None,
            inter_batch_delay_s=float(delay_raw) if delay_raw is not None else None,
        )
        cls._validate_positive("scheduler.max_runs", scheduler.max_runs)
        if scheduler.batch_size is not None:
            cls._validate_positive("scheduler.batch_size", scheduler.batch_size)
        if scheduler.inter_batch_delay_s is not None:
            cls._validate_non_negative("scheduler.inter_batch_delay_s", scheduler.inter_batch_delay_s)
        if scheduler.default_provider not in PROVIDER_PROFILES:
            raise ConfigValidationError(
                f"scheduler.default_provider must be one of {sorted(PROVIDER_PROFILES)}, "
                f"got {scheduler.default_provider!r}"
            )

        # ─────────────────────────────────────────────────────────────────────
        # Limits configuration
        # ─────────────────────────────────────────────────────────────────────
        limits_raw = raw.get("limits", {}) or {}
        limits = LimitsConfig(
            max_text_chars=int(limits_raw.get("max_text_chars", Defaults.LIMITS_MAX_TEXT_CHARS)),
        )
        cls._validate_positive("limits.max_text_chars", limits.max_text_chars)

        # ─────────────────────────────────────────────────────────────────────
        # Client configuration
        # ─────────────────────────────────────────────────────────────────────
        client_raw = raw.get("client", {}) or {}
        client = ClientConfig(
            timeout_s=float(client_raw.get("timeout_s", Defaults.CLIENT_TIMEOUT_S)),
        )
        cls._validate_positive("client.timeout_s", client.timeout_s)

        # ─────────────────────────────────────────────────────────────────────
        # Export configuration
        # ─────────────────────────────────────────────────────────────────────
        export_raw = raw.get("export", {}) or {}
        export = ExportConfig(
            compression_level=int(export_raw.get("compression_level", Defaults.EXPORT_COMPRESSION_LEVEL)),
        )
        cls._validate_range("export.compression_level", export.compression_level, 0, 9)

        # ─────────────────────────────────────────────────────────────────────
        # Logging configuration
        # ─────────────────────────────────────────────────────────────────────
        logging_raw = raw.get("logging", {}) or {}
        log_level_raw = logging_raw.get("level", Defaults.LOGGING_LEVEL)

        if isinstance(log_level_raw, str):
            level_map = {
                "MINIMAL": 1, "1": 1,
                "NORMAL": 2, "INFO": 2, "2": 2,
                "VERBOSE": 3, "3": 3,
                "DEBUG": 4, "TRACE": 4, "4": 4,
            }
            log_level = level_map.get(log_level_raw.upper(), Defaults.LOGGING_LEVEL)
        else:
            log_level = int(log_level_raw)

        logging_cfg = LoggingConfig(
            text_preview_chars=int(logging_raw.get("text_preview_chars", Defaults.LOGGING_TEXT_PREVIEW_CHARS)),
            level=log_level,
        )
        cls._validate_non_negative("logging.text_preview_chars", logging_cfg.text_preview_chars)
        cls._validate_range("logging.level", logging_cfg.level, 1, 4)

        return cls(
            scheduler=scheduler,
            limits=limits,
            client=client,
            export=export,
            logging=logging_cfg,
        )

    @staticmethod
    def _validate_positive(name: str, value: int | float) -> None:
        """Validate that a value is positive (> 0)."""
        if value <= 0:
            raise ConfigValidationError(f"{name} must be positive, got {value}")

    @staticmethod
    def _validate_non_negative(name: str, value: int | float) -> None:
        """Validate that a value is non-negative (>= 0)."""
        if value < 0:
            raise ConfigValidationError(f"{name} must be non-negative, got {value}")

    @staticmethod
    def _validate_range(name: str, value: int | float, min_val: int | float, max_val: int | float) -> None:
        """Validate that a value is within a range [min_val, max_val]."""
        if not (min_val <= value <= max_val):
            raise ConfigValidationError(f"{name} must be between {min_val} and {max_val}, got {value}")


@dataclass(frozen=True)
class RunConfig:
    """
    Fully resolved configuration of a single run.

    Passed explicitly to the chunker, the scheduler and the client; nothing
    in a run reads ambient state. Build it with ``RunConfig.build()`` so
    that every value is validated before chunking starts.
    """
    provider: str
    voice: str
    model: Optional[str]
    text: str
    max_chunk_length: int
    batch_size: int
    inter_batch_delay_s: float

    @classmethod
    def build(
        cls,
        text: str,
        provider: str,
        voice: Optional[str] = None,
        model: Optional[str] = None,
        batch_size: Optional[int] = None,
        inter_batch_delay_s: Optional[float] = None,
        max_chunk_length: Optional[int] = None,
        settings: Optional["Settings"] = None,
    ) -> "RunConfig":
        """
        Resolve a run's configuration from its provider profile.

        Precedence per value: explicit argument, then settings
        ``scheduler`` overrides, then the provider profile.

        Raises:
            ConfigValidationError: Unknown provider, missing voice or
                non-positive batch size / chunk length / negative delay.
        """
        profile = get_provider_profile(provider, settings)
        scheduler = settings.get_service_config().scheduler if settings is not None else SchedulerConfig()

        resolved_voice = (voice or "").strip() or profile.default_voice
        if profile.voice_required and not resolved_voice:
            raise ConfigValidationError(f"provider '{profile.name}' requires a voice")

        if batch_size is None:
            batch_size = scheduler.batch_size if scheduler.batch_size is not None else profile.batch_size
        if inter_batch_delay_s is None:
            inter_batch_delay_s = (
                scheduler.inter_batch_delay_s
                if scheduler.inter_batch_delay_s is not None
                else profile.inter_batch_delay_s
            )
        if max_chunk_length is None:
            max_chunk_length = profile.max_chunk_length

        ServiceConfig._validate_positive("batch_size", batch_size)
        ServiceConfig._validate_non_negative("inter_batch_delay_s", inter_batch_delay_s)
        ServiceConfig._validate_positive("max_chunk_length", max_chunk_length)

        return cls(
            provider=profile.name,
            voice=resolved_voice,
            model=(model or "").strip() or profile.default_model,
            text=text,
            max_chunk_length=int(max_chunk_length),
            batch_size=int(batch_size),
            inter_batch_delay_s=float(inter_batch_delay_s),
        )


@dataclass(frozen=True)
class Settings:
    """
    Immutable settings container loaded from YAML.

    This is the raw settings object before validation. Use
    get_service_config() to get a validated ServiceConfig.
    """
    raw: Dict[str, Any]

    @property
    def default_provider(self) -> str:
        return str((self.raw.get("scheduler", {}) or {}).get("default_provider", Defaults.DEFAULT_PROVIDER)).lower()

    def provider_section(self, name: str) -> Dict[str, Any]:
        """Raw ``providers.<name>`` mapping (API keys, base URL, overrides)."""
        return dict((self.raw.get("providers", {}) or {}).get(name, {}) or {})

    def get_service_config(self) -> ServiceConfig:
        """
        Get validated ServiceConfig from these settings.

        Raises:
            ConfigValidationError: If validation fails.
        """
        return ServiceConfig.from_settings(self)


def _apply_env_overrides(raw: Dict[str, Any]) -> Dict[str, Any]:
    provider = os.getenv("TTS_BATCH_PROVIDER")
    if provider:
        raw.setdefault("scheduler", {})["default_provider"] = provider
    max_chars = os.getenv("TTS_BATCH_MAX_TEXT_CHARS")
    if max_chars:
        raw.setdefault("limits", {})["max_text_chars"] = int(max_chars)
    return raw


def load_settings(path: str = "config/settings.yaml") -> Settings:
    """
    Load settings from a YAML configuration file.

    Environment variable overrides:
        - TTS_BATCH_PROVIDER: scheduler.default_provider
        - TTS_BATCH_MAX_TEXT_CHARS: limits.max_text_chars

    Raises:
        FileNotFoundError: If the settings file doesn't exist.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"settings file not found: {p.resolve()}")

    with p.open("r", encoding="utf-8") as f:
        raw: Dict[str, Any] = yaml.safe_load(f) or {}

    return Settings(raw=_apply_env_overrides(raw))


def default_settings() -> Settings:
    """Settings used when no file is present: built-in defaults plus env."""
    return Settings(raw=_apply_env_overrides({}))


def settings_path() -> str:
    return os.getenv("TTS_BATCH_SETTINGS", "config/settings.yaml")


def load_settings_or_default(path: Optional[str] = None) -> Settings:
    """Load ``path`` (default TTS_BATCH_SETTINGS) if it exists, else defaults."""
    path = path or settings_path()
    if Path(path).exists():
        return load_settings(path)
    return default_settings()
