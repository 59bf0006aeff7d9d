"""Transport-independent handling of transcription requests."""

import base64
import binascii
import logging
import threading
from collections.abc import Mapping
from typing import Any

from audio.preparer import wrap_wav
from core.config import settings
from core.errors import (
    ConfigError,
    EmptyResultError,
    InputError,
    JobCancelledError,
    ParseError,
    TranscriptionError,
    TranscriptionTimeoutError,
    UpstreamError,
)
from core.utils import error_body
from lfasr.options import OPTION_NAMES
from lfasr.orchestrator import create_orchestrator

logger = logging.getLogger(__name__)

DEFAULT_UPLOAD_NAME = "audio.bin"
DEFAULT_PCM_NAME = "audio.wav"

# Client closed request
CANCELLED_STATUS = 499

_STATUS_BY_ERROR: tuple[tuple[type[TranscriptionError], int], ...] = (
    (InputError, 400),
    (ConfigError, 500),
    (UpstreamError, 502),
    (ParseError, 502),
    (TranscriptionTimeoutError, 502),
    (EmptyResultError, 502),
    (JobCancelledError, CANCELLED_STATUS),
)


def status_for(error: TranscriptionError) -> int:
    """HTTP status for a transcription error; unknown subclasses map to 500."""
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status
    return 500


def transcribe(
    audio: bytes,
    file_name: str,
    overrides: Mapping[str, Any] | None = None,
    cancel: threading.Event | None = None,
) -> tuple[dict[str, Any], int]:
    """
    Run one transcription job and build the response.

    Returns:
        (body, status) where body is the success payload or {error, code}
    """
    try:
        with create_orchestrator() as orchestrator:
            job = orchestrator.create_job(audio, file_name)
            result = orchestrator.run(job, overrides, cancel)
    except TranscriptionError as e:
        logger.error("Transcription of %s failed (%s): %s", file_name, e.error_code, e)
        return error_body(str(e), e.error_code), status_for(e)
    except Exception as e:
        logger.exception("Unexpected error transcribing %s", file_name)
        return error_body(str(e) or "Internal error", "INTERNAL_ERROR"), 500

    logger.info("Transcribed %s as task %s (%d segments)", file_name, result.task_id, len(result.segments))
    return result.to_dict(), 200


def transcribe_upload(
    audio: bytes,
    file_name: str | None,
    form: Mapping[str, Any],
    cancel: threading.Event | None = None,
) -> tuple[dict[str, Any], int]:
    """Handle a multipart upload; form fields named after transcription options override defaults."""
    overrides = {key: form[key] for key in OPTION_NAMES if key in form}
    return transcribe(audio, file_name or DEFAULT_UPLOAD_NAME, overrides, cancel)


def transcribe_json(payload: Any, cancel: threading.Event | None = None) -> tuple[dict[str, Any], int]:
    """Handle a JSON body carrying base64 PCM16LE mono audio."""
    try:
        audio, file_name, overrides = parse_pcm_body(payload, int(settings.lfasr_default_sample_rate))
    except InputError as e:
        logger.warning("Rejected JSON transcription request: %s", e)
        return error_body(str(e), e.error_code), 400
    return transcribe(audio, file_name, overrides, cancel)


def parse_pcm_body(payload: Any, default_sample_rate: int) -> tuple[bytes, str, dict[str, Any]]:
    """
    Validate a JSON body and wrap its PCM into a WAV file.

    Accepts the audio under "audio" or "pcm" and option overrides under
    "options" or "business". A missing or invalid sampleRate falls back to
    the configured default.
    """
    if not isinstance(payload, dict):
        raise InputError("Request body must be a JSON object")

    encoded = payload.get("audio")
    if not isinstance(encoded, str):
        encoded = payload.get("pcm")
    if not isinstance(encoded, str) or not encoded:
        raise InputError("Missing audio content, provide base64 encoded PCM")

    try:
        pcm = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InputError("Audio content is not valid base64") from e
    if not pcm:
        raise InputError("Audio content is empty")

    sample_rate = _coerce_sample_rate(payload.get("sampleRate"), default_sample_rate)

    overrides = payload.get("options")
    if overrides is None:
        overrides = payload.get("business")
    if not isinstance(overrides, dict):
        overrides = {}

    file_name = payload.get("fileName")
    if not isinstance(file_name, str) or not file_name.strip():
        file_name = DEFAULT_PCM_NAME

    return wrap_wav(pcm, sample_rate), file_name.strip(), overrides


def _coerce_sample_rate(value: Any, default: int) -> int:
    try:
        rate = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default
    return rate if rate > 0 else default
