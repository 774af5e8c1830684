"""Domain layer package."""

from .models import (
    Bucket,
    ObjectRef,
    TransformOptions,
    Job,
    FileRole,
    StagedFile,
    TransferResult,
    JobState,
    JobOutcome,
    FailureKind,
    TranscodeFailure,
)
from .exceptions import (
    DomainException,
    ConfigurationError,
    PipelineError,
    ObjectNotFoundError,
    AccessDeniedError,
    TransientError,
    TranscodeError,
    LocalIOError,
)
from .protocols import (
    IObjectStorage,
    ITranscoder,
    IStagingArea,
    ITransfer,
    ITranscodeService,
    ILogger,
)

__all__ = [
    # Models
    "Bucket",
    "ObjectRef",
    "TransformOptions",
    "Job",
    "FileRole",
    "StagedFile",
    "TransferResult",
    "JobState",
    "JobOutcome",
    "FailureKind",
    "TranscodeFailure",
    # Exceptions
    "DomainException",
    "ConfigurationError",
    "PipelineError",
    "ObjectNotFoundError",
    "AccessDeniedError",
    "TransientError",
    "TranscodeError",
    "LocalIOError",
    # Protocols
    "IObjectStorage",
    "ITranscoder",
    "IStagingArea",
    "ITransfer",
    "ITranscodeService",
    "ILogger",
]
