"""
Client-side audio preparation.

Turns a captured audio blob into 16-bit little-endian mono PCM at the target
sample rate, ready to be sent to the transcription server:

    decode -> mix_to_mono -> resample -> quantize -> encode_for_transport

Resampling is a block-averaging decimator with no anti-alias filter. It only
ever reduces the rate; content above the new Nyquist frequency folds back
into the output. This is a known quality trade-off kept for low cost.
"""

from __future__ import annotations

import base64
import io
import logging
import math
from dataclasses import dataclass
from enum import StrEnum

import numpy as np
import soundfile as sf

from audio.decoder import AudioDecoder, AutoDecoder
from core.errors import InputError

logger = logging.getLogger(__name__)

DEFAULT_TARGET_SAMPLE_RATE = 16000

PCM16_NEGATIVE_SCALE = 0x8000
PCM16_POSITIVE_SCALE = 0x7FFF


class TransportMode(StrEnum):
    """How prepared PCM travels to the server."""

    BASE64 = "base64"
    BINARY = "binary"


@dataclass(frozen=True, slots=True)
class PcmBuffer:
    """PCM16LE mono samples and the rate they were produced at."""

    samples: bytes
    sample_rate: int

    @property
    def frame_count(self) -> int:
        return len(self.samples) // 2

    @property
    def duration_seconds(self) -> float:
        return self.frame_count / self.sample_rate if self.sample_rate else 0.0


def mix_to_mono(channels: np.ndarray) -> np.ndarray:
    """Average all channels sample by sample; mono input is returned as is."""
    channels = np.asarray(channels, dtype=np.float32)
    if channels.ndim == 1:
        return channels
    if channels.shape[0] == 1:
        return channels[0]
    return channels.mean(axis=0, dtype=np.float64).astype(np.float32)


def resample(
    samples: np.ndarray,
    from_rate: float,
    to_rate: float | None,
) -> tuple[np.ndarray, float]:
    """
    Downsample by averaging fixed-ratio windows of input samples.

    Returns the samples and their rate. Nothing happens when to_rate is
    missing, non-positive, or not lower than from_rate.
    """
    if not _is_valid_rate(from_rate):
        raise InputError(f"Cannot determine the recording sample rate ({from_rate!r})")
    if not _is_valid_rate(to_rate) or to_rate >= from_rate:
        return samples, from_rate

    data = np.asarray(samples, dtype=np.float64)
    ratio = from_rate / to_rate
    out_len = max(1, math.floor(len(data) / ratio))

    ends = np.floor(np.arange(1, out_len + 1) * ratio).astype(np.int64)
    starts = np.concatenate(([0], ends[:-1]))
    ends = np.minimum(ends, len(data))
    starts = np.minimum(starts, ends)

    cumulative = np.concatenate(([0.0], np.cumsum(data)))
    counts = ends - starts
    sums = cumulative[ends] - cumulative[starts]
    averaged = np.divide(sums, counts, out=np.zeros(out_len), where=counts > 0)
    return averaged.astype(np.float32), to_rate


def quantize(samples: np.ndarray) -> bytes:
    """Base64 text for JSON bodies, raw bytes for binary uploads."""
    """Clamp to [-1, 1] and convert to signed 16-bit little-endian PCM."""
    clipped = np.clip(np.asarray(samples, dtype=np.float64), -1.0, 1.0)
    scaled = np.where(clipped < 0, clipped * PCM16_NEGATIVE_SCALE, clipped * PCM16_POSITIVE_SCALE)
    return np.trunc(scaled).astype("<i2").tobytes()


def encode_for_transport(pcm: bytes, mode: TransportMode = TransportMode.BASE64) -> str | bytes:
    """Base64 text for JSON bodies, raw bytes for binary uploads."""
    if mode == TransportMode.BASE64:
        return base64.b64encode(pcm).decode("ascii")
    return bytes(pcm)


def wrap_wav(pcm: bytes, sample_rate: int) -> bytes:
    """Put mono PCM16LE samples into a WAV container."""
    if len(pcm) % 2:
        raise InputError("PCM payload must contain whole 16-bit samples")
    samples = np.frombuffer(pcm, dtype="<i2")
    buffer = io.BytesIO()
    sf.write(buffer, samples, int(sample_rate), format="WAV", subtype="PCM_16")
    return buffer.getvalue()


class AudioPreparer:
    """Decode, downmix, decimate and quantize captured audio."""

    def __init__(
        self,
        decoder: AudioDecoder | None = None,
        target_sample_rate: int | None = DEFAULT_TARGET_SAMPLE_RATE,
    ) -> None:
        self._decoder = decoder or AutoDecoder()
        self._target_sample_rate = target_sample_rate

    def prepare(self, blob: bytes) -> PcmBuffer:
        decoded = self._decoder.decode(blob)
        mono = mix_to_mono(decoded.channels)
        data, rate = resample(mono, decoded.sample_rate, self._target_sample_rate)
        pcm = quantize(data)
        logger.info(
            "Prepared %d channel(s) at %d Hz into %d PCM frames at %d Hz",
            decoded.channel_count,
            decoded.sample_rate,
            len(pcm) // 2,
            int(rate),
        )
        return PcmBuffer(samples=pcm, sample_rate=int(rate))


def _is_valid_rate(rate: float | None) -> bool:
    return rate is not None and math.isfinite(rate) and rate > 0
