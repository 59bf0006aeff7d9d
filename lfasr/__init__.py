"""Chunked long-form transcription against an external speech API."""

from lfasr.client import LfasrClient
from lfasr.models import (
    AudioJob,
    JobPhase,
    LfasrConfig,
    Progress,
    TaskStatus,
    TranscriptionResult,
    TranscriptSegment,
    Word,
)
from lfasr.orchestrator import TranscriptionOrchestrator, create_orchestrator
from lfasr.slices import SliceIdGenerator

__all__ = [
    "AudioJob",
    "JobPhase",
    "LfasrClient",
    "LfasrConfig",
    "Progress",
    "SliceIdGenerator",
    "TaskStatus",
    "TranscriptSegment",
    "TranscriptionOrchestrator",
    "TranscriptionResult",
    "Word",
    "create_orchestrator",
]
