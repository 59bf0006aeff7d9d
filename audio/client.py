"""Client for submitting prepared audio to the transcription server."""

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from audio.preparer import PcmBuffer, TransportMode, encode_for_transport, wrap_wav
from core.config import settings
from core.errors import SubmitError
from lfasr.options import render_option

logger = logging.getLogger(__name__)

DEFAULT_FILE_NAME = "recording.wav"


class TranscribeClient:
    """Posts PCM to the server's /transcribe endpoint and returns the decoded JSON body."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        http: httpx.Client | None = None,
    ) -> None:
        base_url = base_url or settings.client_server_url
        timeout = timeout if timeout is not None else float(settings.client_timeout_seconds)
        self._http = http or httpx.Client(base_url=base_url, timeout=timeout)

    def __enter__(self) -> "TranscribeClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    def submit(
        self,
        pcm: PcmBuffer,
        *,
        mode: TransportMode = TransportMode.BINARY,
        file_name: str = DEFAULT_FILE_NAME,
        options: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Submit audio for transcription.

        Args:
            pcm: Prepared mono PCM16LE samples
            mode: BINARY sends a multipart WAV file, BASE64 sends a JSON body
            file_name: Name reported to the speech API
            options: Transcription option overrides

        Returns:
            Server response with transcript, segments, taskId and progress
        """
        logger.info("Submitting %.1fs of audio as %s", pcm.duration_seconds, mode)
        try:
            if mode == TransportMode.BINARY:
                form = {key: render_option(value) for key, value in (options or {}).items()}
                form["fileName"] = file_name
                response = self._http.post(
                    "/transcribe",
                    data=form,
                    files={"file": (file_name, wrap_wav(pcm.samples, pcm.sample_rate), "audio/wav")},
                )
            else:
                response = self._http.post(
                    "/transcribe",
                    json={
                        "pcm": encode_for_transport(pcm.samples, TransportMode.BASE64),
                        "sampleRate": pcm.sample_rate,
                        "fileName": file_name,
                        "options": dict(options or {}),
                    },
                )
        except httpx.RequestError as e:
            logger.error("Request to transcription server failed: %s", e)
            raise SubmitError(str(e), error_code="SERVICE_UNAVAILABLE") from e

        body = _json_or_empty(response)
        if response.is_error:
            message = body.get("error") or response.text or "Transcription request failed"
            raise SubmitError(message, status_code=response.status_code, error_code=body.get("code"))

        transcript = body.get("transcript")
        if not isinstance(transcript, str) or not transcript:
            raise SubmitError("Server returned no transcript", status_code=response.status_code)
        return body


def _json_or_empty(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
