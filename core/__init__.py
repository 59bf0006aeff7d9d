"""Core utilities shared across all modules."""

from core.config import settings
from core.errors import (
    ConfigError,
    DecodeError,
    EmptyResultError,
    InputError,
    JobCancelledError,
    ParseError,
    SubmitError,
    TranscriptionError,
    TranscriptionTimeoutError,
    UpstreamError,
)

__all__ = [
    "ConfigError",
    "DecodeError",
    "EmptyResultError",
    "InputError",
    "JobCancelledError",
    "ParseError",
    "SubmitError",
    "TranscriptionError",
    "TranscriptionTimeoutError",
    "UpstreamError",
    "settings",
]
