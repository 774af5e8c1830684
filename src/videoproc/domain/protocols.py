"""Protocol definitions for dependency inversion."""

from typing import TYPE_CHECKING, Protocol, Optional
from pathlib import Path

from .models import (
    FileRole,
    Job,
    ObjectRef,
    StagedFile,
    TransferResult,
    TransformOptions,
)

if TYPE_CHECKING:
    from videoproc.shared.metrics import MetricsCollector


class IObjectStorage(Protocol):
    """Object storage capability.

    Implementations raise ``ObjectNotFoundError``, ``AccessDeniedError`` or
    ``TransientError`` instead of backend-specific exceptions.
    """

    def exists(self, ref: ObjectRef) -> bool:
        """Check whether an object exists."""
        ...

    def download(self, ref: ObjectRef, destination: Path) -> Path:
        """Copy an object to a local file."""
        ...

    def upload(self, source: Path, ref: ObjectRef) -> int:
        """Store a local file as an object, overwriting; returns bytes sent."""
        ...

    def set_public(self, ref: ObjectRef) -> None:
        """Make an object publicly readable."""
        ...

    def is_public(self, ref: ObjectRef) -> bool:
        """Check whether an object is publicly readable."""
        ...


class ITranscoder(Protocol):
    """Transcoding engine capability."""

    def transcode(
        self,
        input_path: Path,
        output_path: Path,
        options: TransformOptions
    ) -> Path:
        """Run the engine to completion; raises ``TranscodeError`` on failure."""
        ...


class IStagingArea(Protocol):
    """Job-scoped local scratch space."""

    def acquire_path(self, job_id: str, role: FileRole, suffix: str = "") -> Path:
        ...

    def release(self, job_id: str, role: FileRole, suffix: str = "") -> bool:
        ...

    def release_file(self, staged: StagedFile) -> bool:
        ...


class ITransfer(Protocol):
    """Moves objects between storage and the staging area."""

    def download(self, job: Job, metrics: Optional["MetricsCollector"] = None) -> StagedFile:
        ...

    def upload(
        self,
        staged: StagedFile,
        target_key: str,
        make_public: Optional[bool] = None,
        metrics: Optional["MetricsCollector"] = None
    ) -> TransferResult:
        ...


class ITranscodeService(Protocol):
    """Turns a staged raw file into a staged processed file."""

    def transform(
        self,
        raw: StagedFile,
        options: TransformOptions,
        suffix: Optional[str] = None
    ) -> StagedFile:
        ...


class ILogger(Protocol):
    """Interface for logging."""

    def debug(self, message: str, **kwargs) -> None:
        """Log debug message."""
        ...

    def info(self, message: str, **kwargs) -> None:
        """Log info message."""
        ...

    def warning(self, message: str, **kwargs) -> None:
        """Log warning message."""
        ...

    def error(self, message: str, **kwargs) -> None:
        """Log error message."""
        ...

    def exception(self, message: str, **kwargs) -> None:
        """Log exception with traceback."""
        ...
