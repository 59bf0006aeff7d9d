"""Error taxonomy shared by the transcription server and the audio client."""


class TranscriptionError(Exception):
    """Transcription error with error code for categorization."""

    error_code = "TRANSCRIPTION_FAILED"

    def __init__(self, message: str, *, phase: str | None = None) -> None:
        super().__init__(message)
        self.phase = phase


class ConfigError(TranscriptionError):
    """Speech API credentials or settings are missing."""

    error_code = "CONFIG_ERROR"


class InputError(TranscriptionError):
    """Submitted audio is empty, oversized or malformed."""

    error_code = "INVALID_INPUT"


class DecodeError(InputError):
    """Audio container or codec could not be parsed."""

    error_code = "DECODE_FAILED"


class UpstreamError(TranscriptionError):
    """Speech API reported a failure for one of its phases."""

    error_code = "UPSTREAM_FAILED"

    def __init__(self, phase: str, message: str | None, code: int | str | None = None) -> None:
        self.upstream_message = message or "unknown error"
        self.upstream_code = code
        super().__init__(f"{phase} failed ({code}): {self.upstream_message}", phase=phase)


class TranscriptionTimeoutError(TranscriptionError, TimeoutError):
    """Polling exceeded its wall-clock budget before the task finished."""

    error_code = "TIMEOUT"

    def __init__(self, task_id: str, timeout: float, last_desc: str | None = None) -> None:
        self.task_id = task_id
        self.last_desc = last_desc
        message = f"Task {task_id} did not finish within {timeout:g}s"
        if last_desc:
            message = f"{message} (last progress: {last_desc})"
        super().__init__(message, phase="polling")


class ParseError(TranscriptionError):
    """JSON returned by the speech API could not be decoded."""

    error_code = "PARSE_ERROR"


class EmptyResultError(TranscriptionError):
    """Transcription finished upstream but produced no usable text."""

    error_code = "NO_SPEECH_DETECTED"


class JobCancelledError(TranscriptionError):
    """Job was abandoned by its caller before it finished."""

    error_code = "CANCELLED"


class SubmitError(TranscriptionError):
    """Submitting prepared audio to the transcription server failed."""

    error_code = "SUBMIT_FAILED"

    def __init__(self, message: str, status_code: int | None = None, error_code: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        if error_code:
            self.error_code = error_code
