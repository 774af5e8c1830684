"""Domain models for video processing."""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Optional, Dict, Any, List, Tuple

DEFAULT_SUFFIX = ".mp4"


def validate_job_id(job_id: str) -> str:
    """Reject ids that cannot serve as a single file name."""
    if not job_id or "/" in job_id or "\\" in job_id or job_id in (".", ".."):
        raise ValueError(f"Invalid job_id: {job_id!r}")
    return job_id


class FileRole(str, Enum):
    """Logical role of a staged file."""

    RAW = "raw"
    PROCESSED = "processed"


class JobState(str, Enum):
    """Lifecycle of a single job."""

    PENDING = "pending"
    DOWNLOADING = "downloading"
    TRANSCODING = "transcoding"
    UPLOADING = "uploading"
    CLEANING_UP = "cleaning_up"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.DONE, JobState.FAILED)


class FailureKind(str, Enum):
    """Failure taxonomy surfaced to callers."""

    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    TRANSIENT = "transient"
    TRANSCODE = "transcode"
    LOCAL_IO = "local_io"


class TranscodeFailure(str, Enum):
    """Why the transcoding engine failed."""

    INVALID_INPUT = "invalid_input"
    UNSUPPORTED_FORMAT = "unsupported_format"
    ENGINE_CRASHED = "engine_crashed"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class Bucket:
    """Name of an object storage bucket."""

    name: str

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValueError("Bucket name cannot be empty")
        if "/" in self.name or "\\" in self.name:
            raise ValueError(f"Bucket name must not look like a path: {self.name}")

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class ObjectRef:
    """An object key inside a bucket."""

    bucket: Bucket
    key: str

    def __post_init__(self):
        if not isinstance(self.bucket, Bucket):
            raise TypeError("bucket must be a Bucket, not a plain string")
        if not self.key:
            raise ValueError("Object key cannot be empty")

    @property
    def uri(self) -> str:
        return f"s3://{self.bucket.name}/{self.key}"

    def __str__(self) -> str:
        return self.uri


@dataclass(frozen=True)
class TransformOptions:
    """Rescale parameters handed to the transcoder."""

    height: int = 360
    width: int = -1
    video_codec: Optional[str] = None
    extra_args: Tuple[str, ...] = ()

    def __post_init__(self):
        if self.height <= 0:
            raise ValueError("Height must be positive")
        # -1 keeps aspect ratio, -2 keeps it with an even result
        if self.width == 0 or self.width < -2:
            raise ValueError("Width must be positive, -1 or -2")

    @property
    def scale_filter(self) -> str:
        return f"scale={self.width}:{self.height}"


@dataclass(frozen=True)
class Job:
    """One request to move and transform a single video object."""

    source_key: str
    target_key: str
    transform_options: TransformOptions = field(default_factory=TransformOptions)
    job_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __post_init__(self):
        if not self.source_key:
            raise ValueError("source_key is required")
        if not self.target_key:
            raise ValueError("target_key is required")
        validate_job_id(self.job_id)

    @classmethod
    def for_source(
        cls,
        source_key: str,
        height: int = 360,
        width: int = -1,
        target_key: Optional[str] = None,
        job_id: Optional[str] = None
    ) -> 'Job':
        """Build a job, naming the output ``<stem>_<height>p<ext>`` unless given."""
        if not target_key:
            name = PurePosixPath(source_key)
            suffix = name.suffix or DEFAULT_SUFFIX
            target_key = str(name.with_name(f"{name.stem}_{height}p{suffix}"))

        kwargs: Dict[str, Any] = {
            "source_key": source_key,
            "target_key": target_key,
            "transform_options": TransformOptions(height=height, width=width),
        }
        if job_id:
            kwargs["job_id"] = job_id
        return cls(**kwargs)

    def staged_suffix(self, role: FileRole) -> str:
        """File extension used for this job's local copy in ``role``."""
        key = self.source_key if role is FileRole.RAW else self.target_key
        return PurePosixPath(key).suffix or DEFAULT_SUFFIX


@dataclass(frozen=True)
class StagedFile:
    """A job-scoped local copy of video data."""

    job_id: str
    role: FileRole
    path: Path

    def exists(self) -> bool:
        return self.path.exists()

    def size_bytes(self) -> int:
        return self.path.stat().st_size


@dataclass
class TransferResult:
    """Result of an upload; upload and visibility are tracked separately."""

    bucket: Bucket
    key: str
    size_bytes: int = 0
    uploaded: bool = False
    public: bool = False
    visibility_requested: bool = False
    visibility_error: Optional[Exception] = None

    def __post_init__(self):
        if not isinstance(self.bucket, Bucket):
            raise TypeError("bucket must be a Bucket, not a plain string")

    @property
    def ok(self) -> bool:
        if not self.uploaded:
            return False
        return self.public or not self.visibility_requested


@dataclass
class JobOutcome:
    """Terminal report for a job handed back to the caller."""

    job: Job
    state: JobState = JobState.PENDING
    history: List[JobState] = field(default_factory=list)
    failure_kind: Optional[FailureKind] = None
    failure_message: Optional[str] = None
    error: Optional[Exception] = None
    upload: Optional[TransferResult] = None
    metrics: Dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.state is JobState.DONE

    def record_failure(self, error: Exception, kind: FailureKind) -> None:
        """Remember the first failure; later ones do not overwrite it."""
        if self.error is not None:
            return
        self.error = error
        self.failure_kind = kind
        self.failure_message = str(error)

    def raise_for_failure(self) -> None:
        """Re-raise the recorded failure, if any."""
        if self.error is not None:
            raise self.error
