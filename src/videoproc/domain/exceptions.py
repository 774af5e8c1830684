"""Domain exceptions for the video processing pipeline."""

from typing import Optional

from videoproc.domain.models import FailureKind, TranscodeFailure


class DomainException(Exception):
    """Base exception for all domain errors."""
    pass


class ConfigurationError(DomainException):
    """Raised when configuration is invalid."""
    pass


class PipelineError(DomainException):
    """Base for failures a pipeline step can report."""

    kind: FailureKind = FailureKind.TRANSIENT
    retryable: bool = False


class ObjectNotFoundError(PipelineError):
    """Raised when the source object does not exist."""

    kind = FailureKind.NOT_FOUND


class AccessDeniedError(PipelineError):
    """Raised when the storage backend refuses access."""

    kind = FailureKind.PERMISSION_DENIED


class TransientError(PipelineError):
    """Raised on network/server failures, including step deadlines."""

    kind = FailureKind.TRANSIENT
    retryable = True


class TranscodeError(PipelineError):
    """Raised when the transcoding engine fails."""

    kind = FailureKind.TRANSCODE

    def __init__(
        self,
        reason: str,
        failure: TranscodeFailure = TranscodeFailure.ENGINE_CRASHED
    ):
        super().__init__(reason)
        self.reason = reason
        self.failure = failure

    def __str__(self) -> str:
        return f"{self.failure.value}: {self.reason}"


class LocalIOError(PipelineError):
    """Raised when the local staging area cannot be read or written."""

    kind = FailureKind.LOCAL_IO

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path
