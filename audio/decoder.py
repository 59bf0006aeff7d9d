"""Audio decoding capability used by the preparation pipeline."""

from __future__ import annotations

import io
import logging
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import ffmpeg
import numpy as np
import soundfile as sf

from core.errors import ConfigError, DecodeError, InputError

logger = logging.getLogger(__name__)

# Leading bytes of containers libsndfile reads natively
SOUNDFILE_SIGNATURES: tuple[bytes, ...] = (b"RIFF", b"RF64", b"fLaC", b"OggS", b"FORM")


@dataclass(frozen=True, slots=True)
class DecodedAudio:
    """Float samples laid out as (channels, frames) plus the native sample rate."""

    channels: np.ndarray
    sample_rate: int

    @property
    def channel_count(self) -> int:
        return int(self.channels.shape[0])


class AudioDecoder(Protocol):
    """Anything that can turn a compressed or containerized blob into float samples."""

    def decode(self, blob: bytes) -> DecodedAudio: ...


class SoundFileDecoder:
    """Decoder backed by libsndfile (WAV, FLAC, OGG/Vorbis, Opus, MP3 where supported)."""

    def decode(self, blob: bytes) -> DecodedAudio:
        if not blob:
            raise InputError("Audio content is empty")
        try:
            with sf.SoundFile(io.BytesIO(blob)) as f:
                frames = f.read(dtype="float32", always_2d=True)
                sample_rate = f.samplerate
        except (sf.SoundFileError, RuntimeError, TypeError) as e:
            logger.error("Could not decode audio blob of %d bytes: %s", len(blob), e)
            raise DecodeError(f"Unsupported or corrupt audio: {e}") from e

        return DecodedAudio(channels=np.ascontiguousarray(frames.T), sample_rate=int(sample_rate))


class FFmpegDecoder:
    """
    Decoder backed by the ffmpeg executable.

    Handles containers libsndfile cannot open, such as the WebM/Opus that
    browser MediaRecorder produces. The blob is written to a temporary file,
    probed for its native rate and channel count, then decoded to interleaved
    float32 through a pipe without resampling or downmixing.
    """

    def decode(self, blob: bytes) -> DecodedAudio:
        if not blob:
            raise InputError("Audio content is empty")
        if shutil.which("ffmpeg") is None:
            raise ConfigError("FFmpeg is not installed or not in PATH")

        with tempfile.TemporaryDirectory() as temp_dir:
            path = str(Path(temp_dir) / "input")
            Path(path).write_bytes(blob)
            try:
                sample_rate, channel_count = _probe_audio_stream(path)
                out, _ = (
                    ffmpeg.input(path)
                    .output("pipe:", format="f32le", acodec="pcm_f32le", ac=channel_count, ar=sample_rate)
                    .run(capture_stdout=True, capture_stderr=True, quiet=True)
                )
            except ffmpeg.Error as e:
                stderr = e.stderr.decode(errors="replace").strip() if e.stderr else str(e)
                logger.error("FFmpeg could not decode audio blob of %d bytes: %s", len(blob), stderr)
                raise DecodeError(f"Unsupported or corrupt audio: {stderr}") from e

        samples = np.frombuffer(out, dtype="<f4")
        frames = samples[: len(samples) - len(samples) % channel_count].reshape(-1, channel_count)
        logger.debug("Decoded %d frames at %d Hz with ffmpeg", len(frames), sample_rate)
        return DecodedAudio(channels=np.ascontiguousarray(frames.T), sample_rate=sample_rate)


class AutoDecoder:
    """Route WAV/FLAC/OGG/AIFF to libsndfile and every other container to ffmpeg."""

    def __init__(
        self,
        soundfile_decoder: AudioDecoder | None = None,
        ffmpeg_decoder: AudioDecoder | None = None,
    ) -> None:
        self._soundfile = soundfile_decoder or SoundFileDecoder()
        self._ffmpeg = ffmpeg_decoder or FFmpegDecoder()

    def decode(self, blob: bytes) -> DecodedAudio:
        if not blob:
            raise InputError("Audio content is empty")
        if blob.startswith(SOUNDFILE_SIGNATURES):
            return self._soundfile.decode(blob)
        return self._ffmpeg.decode(blob)


def _probe_audio_stream(path: str) -> tuple[int, int]:
    """Return (sample_rate, channels) of the first audio stream."""
    info = ffmpeg.probe(path)
    stream = next((s for s in info.get("streams", []) if s.get("codec_type") == "audio"), None)
    if stream is None:
        raise DecodeError("No audio stream found in upload")
    try:
        sample_rate = int(stream["sample_rate"])
        channels = int(stream["channels"])
    except (KeyError, TypeError, ValueError) as e:
        raise DecodeError("Audio stream has no usable sample rate or channel count") from e
    if sample_rate <= 0 or channels <= 0:
        raise DecodeError("Audio stream has no usable sample rate or channel count")
    return sample_rate, channels
