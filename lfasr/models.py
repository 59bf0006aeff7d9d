"""Data models for a single transcription job."""

from __future__ import annotations

import math
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import IntEnum, StrEnum
from typing import Any

from core.errors import InputError
from lfasr.options import OPTION_NAMES

# Upstream word offsets are expressed in 10 ms frames relative to the segment start.
WORD_FRAME_MS = 10


class JobPhase(StrEnum):
    """Phases of one job against the speech API."""

    INIT = "init"
    PREPARED = "prepared"
    UPLOADING = "uploading"
    MERGED = "merged"
    POLLING = "polling"
    DONE = "done"
    TIMEOUT = "timeout"
    FAILED = "failed"


class TaskStatus(IntEnum):
    """Known task statuses reported by getProgress."""

    CREATED = 0
    UPLOADED = 1
    MERGED = 2
    TRANSCRIBING = 3
    PROCESSING = 4
    TRANSCRIBED = 5
    DONE = 9


@dataclass(frozen=True, slots=True)
class LfasrConfig:
    """Snapshot of the speech API settings used by one orchestrator."""

    host: str
    app_id: str
    secret_key: str
    max_file_bytes: int = 100 * 1024 * 1024
    piece_size_bytes: int = 10 * 1024 * 1024
    poll_interval: float = 5.0
    poll_timeout: float = 120.0
    request_timeout: float = 30.0
    default_sample_rate: int = 16000
    option_defaults: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_settings(cls, settings: Any) -> LfasrConfig:
        return cls(
            host=str(settings.lfasr_host).rstrip("/"),
            app_id=str(settings.lfasr_app_id or "").strip(),
            secret_key=str(settings.lfasr_secret_key or "").strip(),
            max_file_bytes=int(settings.lfasr_max_file_bytes),
            piece_size_bytes=int(settings.lfasr_piece_size_bytes),
            poll_interval=float(settings.lfasr_poll_interval_seconds),
            poll_timeout=float(settings.lfasr_poll_timeout_seconds),
            request_timeout=float(settings.lfasr_request_timeout_seconds),
            default_sample_rate=int(settings.lfasr_default_sample_rate),
            option_defaults={
                name: settings.get(f"lfasr_option_{name}", "") for name in OPTION_NAMES
            },
        )


@dataclass(frozen=True, slots=True)
class AudioJob:
    """Audio submitted for transcription, held in memory for one request."""

    raw_bytes: bytes
    file_name: str
    piece_size: int
    total_size: int

    @classmethod
    def create(cls, raw_bytes: bytes, file_name: str, piece_size: int, max_bytes: int) -> AudioJob:
        """Validate the payload size and build a job."""
        if piece_size <= 0:
            raise InputError(f"Invalid piece size {piece_size}")
        total = len(raw_bytes)
        if total == 0:
            raise InputError("Audio content is empty")
        if total > max_bytes:
            raise InputError(
                f"Audio content is too large ({total} bytes, limit {max_bytes} bytes)"
            )
        return cls(raw_bytes=raw_bytes, file_name=file_name, piece_size=piece_size, total_size=total)

    @property
    def slice_count(self) -> int:
        return math.ceil(self.total_size / self.piece_size)

    def iter_slices(self) -> Iterator[bytes]:
        """Yield contiguous slices of at most piece_size bytes, in order."""
        view = memoryview(self.raw_bytes)
        try:
            for offset in range(0, self.total_size, self.piece_size):
                yield bytes(view[offset : offset + self.piece_size])
        finally:
            view.release()


@dataclass(frozen=True, slots=True)
class Progress:
    """Task progress as reported by getProgress."""

    status: int
    desc: str | None = None

    @property
    def is_done(self) -> bool:
        return self.status == TaskStatus.DONE

    def to_dict(self) -> dict[str, Any]:
        return {"desc": self.desc, "status": self.status}


@dataclass(frozen=True, slots=True)
class Word:
    """Single recognized word with timing."""

    text: str
    start_ms: int | None
    end_ms: int | None
    confidence: float | None


@dataclass(frozen=True, slots=True)
class TranscriptSegment:
    """One recognized speech segment and its best hypothesis."""

    text: str
    speaker: str | None = None
    start_ms: int | None = None
    end_ms: int | None = None
    words: tuple[Word, ...] = ()

    @classmethod
    def from_upstream(cls, raw: dict[str, Any]) -> TranscriptSegment:
        """Build a segment from one entry of the getResult array."""
        start_ms = _to_int(raw.get("bg"))
        speaker = raw.get("speaker")
        words = []
        for w in raw.get("wordsResultList") or []:
            if not isinstance(w, dict):
                continue
            word_bg = _to_int(w.get("wordBg"))
            word_ed = _to_int(w.get("wordEd"))
            base = start_ms or 0
            words.append(
                Word(
                    text=str(w.get("wordsName") or ""),
                    start_ms=base + word_bg * WORD_FRAME_MS if word_bg is not None else None,
                    end_ms=base + word_ed * WORD_FRAME_MS if word_ed is not None else None,
                    confidence=_to_float(w.get("wc")),
                )
            )
        return cls(
            text=str(raw.get("onebest") or ""),
            speaker=str(speaker) if speaker not in (None, "") else None,
            start_ms=start_ms,
            end_ms=_to_int(raw.get("ed")),
            words=tuple(words),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "speaker": self.speaker,
            "startMs": self.start_ms,
            "endMs": self.end_ms,
            "words": [
                {
                    "text": w.text,
                    "startMs": w.start_ms,
                    "endMs": w.end_ms,
                    "confidence": w.confidence,
                }
                for w in self.words
            ],
        }


@dataclass(frozen=True, slots=True)
class TranscriptionResult:
    """Complete transcription result returned to the caller."""

    task_id: str
    transcript: str
    segments: tuple[TranscriptSegment, ...]
    progress: Progress

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the HTTP success body."""
        return {
            "transcript": self.transcript,
            "segments": [s.to_dict() for s in self.segments],
            "taskId": self.task_id,
            "progress": self.progress.to_dict(),
        }


# Phase transition results. Each orchestrator step accepts only the type
# produced by the step before it.


@dataclass(frozen=True, slots=True)
class PreparedTask:
    task_id: str
    job: AudioJob


@dataclass(frozen=True, slots=True)
class UploadedTask:
    task_id: str
    job: AudioJob
    slice_ids: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class MergedTask:
    task_id: str


@dataclass(frozen=True, slots=True)
class CompletedTask:
    task_id: str
    progress: Progress


def _to_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _to_float(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
