"""Signed HTTP client for the long-form speech transcription API."""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
import threading
import time
from typing import Any

import httpx

from core.errors import ConfigError, JobCancelledError, ParseError, UpstreamError
from lfasr.models import LfasrConfig, Progress

logger = logging.getLogger(__name__)

PREPARE = "prepare"
UPLOAD = "upload"
MERGE = "merge"
GET_PROGRESS = "getProgress"
GET_RESULT = "getResult"


class LfasrClient:
    """
    Thin wrapper over the speech API endpoints.

    Every call is signed with a fresh timestamp. A response envelope
    ``{ok, err_no, failed, data}`` counts as success only when ``ok`` is 0;
    anything else raises UpstreamError tagged with the endpoint name.
    """

    def __init__(self, config: LfasrConfig, http: httpx.Client | None = None) -> None:
        """Ask the API to assemble the uploaded slices and start transcription."""
        self._config = config
        self._http = http or httpx.Client(base_url=config.host, timeout=config.request_timeout)

    def __enter__(self) -> LfasrClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    def ensure_credentials(self) -> None:
        if not self._config.app_id or not self._config.secret_key:
            raise ConfigError("Speech API credentials are not configured (app id and secret key required)")

    def sign(self, timestamp: str) -> str:
        """Signature: base64(HMAC-SHA1(secret, md5_hex(app_id + timestamp)))."""
        base = hashlib.md5(f"{self._config.app_id}{timestamp}".encode()).hexdigest()
        digest = hmac.new(self._config.secret_key.encode(), base.encode(), hashlib.sha1).digest()
        return base64.b64encode(digest).decode()

    def _auth_params(self) -> dict[str, str]:
        ts = _timestamp()
        return {"app_id": self._config.app_id, "signa": self.sign(ts), "ts": ts}

    def prepare(
        self,
        file_len: int,
        file_name: str,
        slice_num: int,
        options: dict[str, str],
        cancel: threading.Event | None = None,
    ) -> str:
        """Register a job and return the task id issued by the API."""
        form = {
            **options,
            "file_len": str(file_len),
            "file_name": file_name,
            "slice_num": str(slice_num),
        }
        envelope = self._post(PREPARE, form, cancel=cancel)
        task_id = envelope.get("data")
        if not isinstance(task_id, str) or not task_id:
            raise ParseError("prepare returned no task id", phase=PREPARE)
        return task_id

    def upload(
        self,
        task_id: str,
        slice_id: str,
        content: bytes,
        cancel: threading.Event | None = None,
    ) -> None:
        """Send one slice as the multipart file field "content"."""
        self._post(
            UPLOAD,
            {"task_id": task_id, "slice_id": slice_id},
            files={"content": (slice_id, content, "application/octet-stream")},
            cancel=cancel,
        )

    def merge(self, task_id: str, file_name: str, cancel: threading.Event | None = None) -> None:
        """Ask the API to assemble the uploaded slices and start transcription."""
        self._post(MERGE, {"task_id": task_id, "file_name": file_name}, cancel=cancel)

    def get_progress(self, task_id: str, cancel: threading.Event | None = None) -> Progress:
        envelope = self._post(GET_PROGRESS, {"task_id": task_id}, cancel=cancel)
        payload = _decode_data(GET_PROGRESS, envelope)
        if not isinstance(payload, dict):
            raise ParseError("getProgress data is not an object", phase=GET_PROGRESS)
        try:
            status = int(payload["status"])
        except (KeyError, TypeError, ValueError) as e:
            raise ParseError("getProgress data has no numeric status", phase=GET_PROGRESS) from e
        desc = payload.get("desc")
        return Progress(status=status, desc=str(desc) if desc is not None else None)

    def get_result(self, task_id: str, cancel: threading.Event | None = None) -> list[dict[str, Any]]:
        envelope = self._post(GET_RESULT, {"task_id": task_id}, cancel=cancel)
        payload = _decode_data(GET_RESULT, envelope)
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise ParseError("getResult data is not a segment list", phase=GET_RESULT)
        return [s for s in payload if isinstance(s, dict)]

    def _post(
        self,
        phase: str,
        form: dict[str, str],
        files: dict[str, Any] | None = None,
        cancel: threading.Event | None = None,
    ) -> dict[str, Any]:
        self.ensure_credentials()
        if cancel is not None and cancel.is_set():
            raise JobCancelledError(f"Job cancelled before {phase}", phase=phase)

        data = {**self._auth_params(), **form}
        logger.debug("Calling %s for task %s", phase, form.get("task_id", "-"))

        try:
            response = self._http.post(f"/{phase}", data=data, files=files)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise UpstreamError(phase, e.response.reason_phrase, e.response.status_code) from e
        except httpx.RequestError as e:
            raise UpstreamError(phase, str(e) or type(e).__name__) from e

        try:
            envelope = response.json()
        except ValueError as e:
            raise ParseError(f"{phase} returned a non-JSON response", phase=phase) from e
        if not isinstance(envelope, dict):
            raise ParseError(f"{phase} returned an unexpected response", phase=phase)

        if not _is_ok(envelope.get("ok")):
            raise UpstreamError(phase, envelope.get("failed"), envelope.get("err_no"))
        return envelope


def _is_ok(value: Any) -> bool:
    """Only an integer 0, or the string "0", counts as success."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value == 0
    return isinstance(value, str) and value.strip() == "0"


def _decode_data(phase: str, envelope: dict[str, Any]) -> Any:
    """Decode the JSON document embedded as text in the data field."""
    data = envelope.get("data")
    if data is None or data == "":
        return None
    if not isinstance(data, str):
        return data
    try:
        return json.loads(data)
    except json.JSONDecodeError as e:
        raise ParseError(f"{phase} data is not valid JSON: {e}", phase=phase) from e


def _timestamp() -> str:
    return str(int(time.time()))
