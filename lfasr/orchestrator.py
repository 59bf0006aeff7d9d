"""Drives one transcription job through prepare, upload, merge, poll and result."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Mapping
from typing import Any

from core.config import settings
from core.errors import EmptyResultError, JobCancelledError, TranscriptionError, TranscriptionTimeoutError
from lfasr.client import LfasrClient
from lfasr.models import (
    AudioJob,
    CompletedTask,
    JobPhase,
    LfasrConfig,
    MergedTask,
    PreparedTask,
    TranscriptionResult,
    TranscriptSegment,
    UploadedTask,
)
from lfasr.options import normalize_options
from lfasr.slices import SliceIdGenerator

logger = logging.getLogger(__name__)


class TranscriptionOrchestrator:
    """
    Runs a single job end-to-end against the speech API.

    Each step takes the result of the previous one, so the phase order
    prepare -> upload -> merge -> poll -> fetch_result is fixed by the
    types. Nothing is retried: the first failing step aborts the job.
    """

    def __init__(self, client: LfasrClient, config: LfasrConfig) -> None:
        self._client = client
        self._config = config

    def __enter__(self) -> TranscriptionOrchestrator:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._client.close()

    @property
    def config(self) -> LfasrConfig:
        return self._config

    def create_job(self, raw_bytes: bytes, file_name: str) -> AudioJob:
        return AudioJob.create(
            raw_bytes,
            file_name,
            piece_size=self._config.piece_size_bytes,
            max_bytes=self._config.max_file_bytes,
        )

    def run(
        self,
        job: AudioJob,
        overrides: Mapping[str, Any] | None = None,
        cancel: threading.Event | None = None,
    ) -> TranscriptionResult:
        """Transcribe the job, blocking until a transcript or a terminal error."""
        self._client.ensure_credentials()
        # Last state the job reached; the failing call is named by the error's phase
        reached = JobPhase.INIT
        try:
            prepared = self.prepare(job, overrides, cancel)
            reached = JobPhase.PREPARED
            uploaded = self.upload(prepared, cancel)
            merged = self.merge(uploaded, cancel)
            reached = JobPhase.MERGED
            completed = self.poll(merged, cancel)
            reached = JobPhase.DONE
            return self.fetch_result(completed, cancel)
        except TranscriptionTimeoutError:
            logger.warning("Job %s ended in phase %s", job.file_name, JobPhase.TIMEOUT)
            raise
        except TranscriptionError as e:
            logger.warning(
                "Job %s %s in %s after reaching %s: %s",
                job.file_name,
                JobPhase.FAILED,
                e.phase or "-",
                reached,
                e,
            )
            raise

    def prepare(
        self,
        job: AudioJob,
        overrides: Mapping[str, Any] | None = None,
        cancel: threading.Event | None = None,
    ) -> PreparedTask:
        options = normalize_options(self._config.option_defaults, overrides)
        task_id = self._client.prepare(
            file_len=job.total_size,
            file_name=job.file_name,
            slice_num=job.slice_count,
            options=options,
            cancel=cancel,
        )
        logger.info(
            "Task %s %s: %s, %d bytes in %d slices",
            task_id,
            JobPhase.PREPARED,
            job.file_name,
            job.total_size,
            job.slice_count,
        )
        return PreparedTask(task_id=task_id, job=job)

    def upload(self, prepared: PreparedTask, cancel: threading.Event | None = None) -> UploadedTask:
        """Upload every slice in order; the first failure aborts the job."""
        slice_ids = SliceIdGenerator()
        issued: list[str] = []
        for chunk in prepared.job.iter_slices():
            slice_id = slice_ids.next()
            self._client.upload(prepared.task_id, slice_id, chunk, cancel=cancel)
            issued.append(slice_id)
            logger.debug(
                "Task %s %s slice %s (%d bytes)", prepared.task_id, JobPhase.UPLOADING, slice_id, len(chunk)
            )
        return UploadedTask(task_id=prepared.task_id, job=prepared.job, slice_ids=tuple(issued))

    def merge(self, uploaded: UploadedTask, cancel: threading.Event | None = None) -> MergedTask:
        self._client.merge(uploaded.task_id, uploaded.job.file_name, cancel=cancel)
        logger.info("Task %s %s after %d slices", uploaded.task_id, JobPhase.MERGED, len(uploaded.slice_ids))
        return MergedTask(task_id=uploaded.task_id)

    def poll(self, merged: MergedTask, cancel: threading.Event | None = None) -> CompletedTask:
        """Poll progress on a fixed interval until done or the wall-clock budget runs out."""
        interval = self._config.poll_interval
        timeout = self._config.poll_timeout
        deadline = time.monotonic() + timeout
        last_desc: str | None = None

        while True:
            progress = self._client.get_progress(merged.task_id, cancel=cancel)
            if progress.desc:
                last_desc = progress.desc
            if progress.is_done:
                logger.info("Task %s %s", merged.task_id, JobPhase.DONE)
                return CompletedTask(task_id=merged.task_id, progress=progress)

            now = time.monotonic()
            if now >= deadline:
                raise TranscriptionTimeoutError(merged.task_id, timeout, last_desc)

            logger.debug("Task %s status %s: %s", merged.task_id, progress.status, progress.desc)
            self._wait(min(interval, deadline - now), cancel)

    def fetch_result(self, completed: CompletedTask, cancel: threading.Event | None = None) -> TranscriptionResult:
        raw_segments = self._client.get_result(completed.task_id, cancel=cancel)
        segments = tuple(TranscriptSegment.from_upstream(s) for s in raw_segments)
        lines = [s.text.strip() for s in segments]
        transcript = "\n".join(line for line in lines if line)
        if not transcript:
            raise EmptyResultError(f"Task {completed.task_id} produced no text", phase="getResult")
        return TranscriptionResult(
            task_id=completed.task_id,
            transcript=transcript,
            segments=segments,
            progress=completed.progress,
        )

    @staticmethod
    def _wait(seconds: float, cancel: threading.Event | None) -> None:
        if cancel is None:
            time.sleep(seconds)
        elif cancel.wait(seconds):
            raise JobCancelledError("Job cancelled while polling", phase=JobPhase.POLLING)


def create_orchestrator(config: LfasrConfig | None = None) -> TranscriptionOrchestrator:
    """Create an orchestrator with its own HTTP client, configured from settings by default."""
    config = config or LfasrConfig.from_settings(settings)
    return TranscriptionOrchestrator(LfasrClient(config), config)
