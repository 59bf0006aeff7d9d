"""Tests for transcription request handling."""

import base64
import io
from unittest.mock import MagicMock, patch

import pytest
import soundfile as sf

from core.errors import (
    ConfigError,
    DecodeError,
    EmptyResultError,
    InputError,
    JobCancelledError,
    TranscriptionTimeoutError,
    UpstreamError,
)
from lfasr.handler import parse_pcm_body, status_for, transcribe, transcribe_json, transcribe_upload
from lfasr.models import Progress, TranscriptionResult, TranscriptSegment


@pytest.fixture
def orchestrator():
    with patch("lfasr.handler.create_orchestrator") as mock_create:
        orchestrator = MagicMock()
        mock_create.return_value.__enter__.return_value = orchestrator
        orchestrator.run.return_value = TranscriptionResult(
            task_id="task-1",
            transcript="Hello world.",
            segments=(TranscriptSegment(text="Hello world.", speaker="1", start_ms=0, end_ms=900),),
            progress=Progress(status=9, desc="done"),
        )
        yield orchestrator


class TestTranscribe:
    def test_success(self, orchestrator):
        body, status = transcribe(b"audio", "clip.wav", {"language": "en"})

        assert status == 200
        assert body["transcript"] == "Hello world."
        assert body["taskId"] == "task-1"
        assert body["progress"] == {"desc": "done", "status": 9}
        assert body["segments"][0]["text"] == "Hello world."
        orchestrator.create_job.assert_called_once_with(b"audio", "clip.wav")
        orchestrator.run.assert_called_once_with(
            orchestrator.create_job.return_value, {"language": "en"}, None
        )

    @pytest.mark.parametrize(
        ("error", "expected_status", "expected_code"),
        [
            (InputError("Audio content is empty"), 400, "INVALID_INPUT"),
            (ConfigError("missing credentials"), 500, "CONFIG_ERROR"),
            (UpstreamError("merge", "merge failed", 26620), 502, "UPSTREAM_FAILED"),
            (TranscriptionTimeoutError("task-1", 120, "transcribing"), 502, "TIMEOUT"),
            (EmptyResultError("no text"), 502, "NO_SPEECH_DETECTED"),
        ],
    )
    def test_error_mapping(self, orchestrator, error, expected_status, expected_code):
        orchestrator.run.side_effect = error

        body, status = transcribe(b"audio", "clip.wav")

        assert status == expected_status
        assert body == {"error": str(error), "code": expected_code}
        assert "transcript" not in body

    def test_oversized_input_rejected_before_run(self, orchestrator):
        orchestrator.create_job.side_effect = InputError("Audio content is too large")

        body, status = transcribe(b"x" * 10, "clip.wav")

        assert status == 400
        assert "too large" in body["error"]
        orchestrator.run.assert_not_called()

    def test_unexpected_error(self, orchestrator):
        orchestrator.run.side_effect = RuntimeError("boom")

        body, status = transcribe(b"audio", "clip.wav")

        assert status == 500
        assert body == {"error": "boom", "code": "INTERNAL_ERROR"}


class TestStatusFor:
    def test_decode_error_is_input_error(self):
        assert status_for(DecodeError("corrupt")) == 400

    def test_cancelled(self):
        assert status_for(JobCancelledError("gone")) == 499


class TestTranscribeUpload:
    def test_only_whitelisted_form_fields_forwarded(self, orchestrator):
        form = {"fileName": "clip.mp3", "language": "en", "hot_word": "alpha|beta", "other": "x"}

        transcribe_upload(b"audio", "clip.mp3", form)

        orchestrator.run.assert_called_once_with(
            orchestrator.create_job.return_value, {"language": "en", "hot_word": "alpha|beta"}, None
        )

    def test_default_file_name(self, orchestrator):
        transcribe_upload(b"audio", "", {})

        orchestrator.create_job.assert_called_once_with(b"audio", "audio.bin")


class TestTranscribeJson:
    def test_pcm_wrapped_as_wav(self, orchestrator):
        pcm = b"\x00\x00\xff\x7f"
        payload = {"pcm": base64.b64encode(pcm).decode(), "sampleRate": 8000, "options": {"language": "en"}}

        body, status = transcribe_json(payload)

        assert status == 200
        audio, file_name = orchestrator.create_job.call_args.args
        assert file_name == "audio.wav"
        assert audio.startswith(b"RIFF")
        assert sf.info(io.BytesIO(audio)).samplerate == 8000
        orchestrator.run.assert_called_once_with(
            orchestrator.create_job.return_value, {"language": "en"}, None
        )

    def test_invalid_base64(self, orchestrator):
        body, status = transcribe_json({"audio": "not base64!!"})

        assert status == 400
        assert body["code"] == "INVALID_INPUT"
        orchestrator.run.assert_not_called()

    def test_not_an_object(self, orchestrator):
        body, status = transcribe_json(["audio"])

        assert status == 400
        orchestrator.create_job.assert_not_called()


class TestParsePcmBody:
    def test_audio_key_and_business_alias(self):
        payload = {"audio": base64.b64encode(b"\x01\x00").decode(), "business": {"pd": "edu"}, "fileName": " a.wav "}

        audio, file_name, overrides = parse_pcm_body(payload, 16000)

        assert file_name == "a.wav"
        assert overrides == {"pd": "edu"}
        assert sf.info(io.BytesIO(audio)).samplerate == 16000

    @pytest.mark.parametrize("rate", [None, "abc", 0, -8000, float("nan")])
    def test_invalid_sample_rate_falls_back(self, rate):
        payload = {"pcm": base64.b64encode(b"\x01\x00").decode(), "sampleRate": rate}

        audio, _, _ = parse_pcm_body(payload, 16000)

        assert sf.info(io.BytesIO(audio)).samplerate == 16000

    def test_missing_audio(self):
        with pytest.raises(InputError, match="Missing audio"):
            parse_pcm_body({"sampleRate": 16000}, 16000)

    def test_odd_length_pcm(self):
        with pytest.raises(InputError, match="16-bit"):
            parse_pcm_body({"pcm": base64.b64encode(b"\x01\x02\x03").decode()}, 16000)
