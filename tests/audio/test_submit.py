"""Tests for submitting prepared audio to the transcription server."""

import base64
import json

import httpx
import pytest

from audio.client import TranscribeClient
from audio.preparer import PcmBuffer, TransportMode
from core.errors import SubmitError

SUCCESS = {
    "transcript": "Hello world.",
    "segments": [],
    "taskId": "task-1",
    "progress": {"desc": "done", "status": 9},
}


def make_client(handler) -> TranscribeClient:
    http = httpx.Client(base_url="http://server.test", transport=httpx.MockTransport(handler))
    return TranscribeClient(http=http)


@pytest.fixture
def pcm() -> PcmBuffer:
    return PcmBuffer(samples=b"\x00\x00\xff\x7f\x00\x80", sample_rate=16000)


class TestSubmit:
    def test_binary_mode_sends_wav_file(self, pcm):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=SUCCESS)

        with make_client(handler) as client:
            body = client.submit(pcm, file_name="note.wav", options={"language": "en", "hot_word": ["a", "b"]})

        request = seen[0]
        assert body == SUCCESS
        assert request.url.path == "/transcribe"
        assert request.headers["content-type"].startswith("multipart/form-data")
        assert b'filename="note.wav"' in request.content
        assert b"RIFF" in request.content
        assert b"a|b" in request.content

    def test_base64_mode_sends_json(self, pcm):
        seen = []

        def handler(request):
            seen.append(json.loads(request.content))
            return httpx.Response(200, json=SUCCESS)

        make_client(handler).submit(pcm, mode=TransportMode.BASE64, options={"pd": "edu"})

        assert seen[0] == {
            "pcm": base64.b64encode(pcm.samples).decode(),
            "sampleRate": 16000,
            "fileName": "recording.wav",
            "options": {"pd": "edu"},
        }

    def test_server_error_surfaces_message(self, pcm):
        body = {"error": "Audio content is too large", "code": "INVALID_INPUT"}
        client = make_client(lambda r: httpx.Response(400, json=body))

        with pytest.raises(SubmitError) as exc:
            client.submit(pcm)

        assert str(exc.value) == "Audio content is too large"
        assert exc.value.status_code == 400
        assert exc.value.error_code == "INVALID_INPUT"

    def test_non_json_error(self, pcm):
        client = make_client(lambda r: httpx.Response(502, text="Bad Gateway"))

        with pytest.raises(SubmitError, match="Bad Gateway") as exc:
            client.submit(pcm)

        assert exc.value.error_code == "SUBMIT_FAILED"

    def test_connection_error(self, pcm):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(SubmitError) as exc:
            make_client(handler).submit(pcm)

        assert exc.value.error_code == "SERVICE_UNAVAILABLE"

    def test_missing_transcript(self, pcm):
        client = make_client(lambda r: httpx.Response(200, json={"transcript": ""}))

        with pytest.raises(SubmitError, match="no transcript"):
            client.submit(pcm)
