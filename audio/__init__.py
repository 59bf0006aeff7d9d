"""Client-side audio preparation and submission."""

from audio.client import TranscribeClient
from audio.decoder import AudioDecoder, AutoDecoder, DecodedAudio, FFmpegDecoder, SoundFileDecoder
from audio.preparer import (
    AudioPreparer,
    PcmBuffer,
    TransportMode,
    encode_for_transport,
    mix_to_mono,
    quantize,
    resample,
    wrap_wav,
)

__all__ = [
    "AudioDecoder",
    "AudioPreparer",
    "AutoDecoder",
    "DecodedAudio",
    "FFmpegDecoder",
    "PcmBuffer",
    "SoundFileDecoder",
    "TranscribeClient",
    "TransportMode",
    "encode_for_transport",
    "mix_to_mono",
    "quantize",
    "resample",
    "wrap_wav",
]
