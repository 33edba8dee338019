"""
API Request/Response Schemas.

This module defines Pydantic models for the tts-batch API endpoints.
These schemas provide:
    - Request validation with type checking
    - Automatic JSON serialization/deserialization
    - OpenAPI documentation generation
    - Field constraints (ranges, lengths)

Models:
    ChunkPreviewRequest: Input schema for POST /v1/chunks
    RunCreateRequest: Input schema for POST /v1/runs
    RunAck: Short acknowledgment for control operations
    ErrorResponse: Standard error body

Only shape is checked here. Semantic rules (text limit, known provider,
voice fallback) live in services/validators.py so that the CLI and the
API reject the same inputs with the same codes.

Example Request:
    {
        "text": "Chapter one. It was a bright cold day in April...",
        "provider": "minimax",
        "voice": "English_radiant_girl",
        "batch_size": 5,
        "inter_batch_delay_s": 65
    }

See Also:
    - services/narration_service.py: RunRequest / Run
    - services/validators.py: semantic validation
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ChunkPreviewRequest(BaseModel):
    """
    Chunk a text for a provider without generating audio.

    Attributes:
        text: Manuscript text.
        provider: Provider name; the configured default when omitted.
    """
    text: str = Field(..., description="Manuscript text to chunk")
    provider: Optional[str] = Field(
        default=None,
        description="Provider name (minimax, elevenlabs, fake)"
    )


class RunCreateRequest(BaseModel):
    """
    Start a narration run.

    All fields except ``text`` default to the provider profile, possibly
    overridden in settings.yaml.

    Example:
        >>> RunCreateRequest(text="Hello world.", provider="fake", batch_size=2)
    """
    text: str = Field(..., description="Manuscript text to narrate")
    provider: Optional[str] = Field(
        default=None,
        description="Provider name; configured default when omitted"
    )
    voice: Optional[str] = Field(
        default=None,
        description="Provider voice id; profile default when omitted"
    )
    model: Optional[str] = Field(
        default=None,
        description="Provider model id; profile default when omitted"
    )
    batch_size: Optional[int] = Field(
        default=None,
        ge=1,
        description="Chunks generated concurrently per batch"
    )
    inter_batch_delay_s: Optional[float] = Field(
        default=None,
        ge=0,
        description="Seconds to wait between batches"
    )
    max_chunk_length: Optional[int] = Field(
        default=None,
        ge=1,
        description="Maximum characters per chunk"
    )


class RunAck(BaseModel):
    """Acknowledgment returned by pause / resume / abort."""
    ok: bool = True
    run_id: str = Field(..., description="Run identifier")
    state: str = Field(..., description="Run state after the operation")
    pause_requested: bool = Field(
        default=False,
        description="True while a pause is pending at the next checkpoint"
    )


class ErrorResponse(BaseModel):
    ok: bool = False
    error: str
    message: str
    details: Optional[Dict[str, Any]] = None


class ProviderListResponse(BaseModel):
    default_provider: str
    providers: List[Dict[str, Any]]
