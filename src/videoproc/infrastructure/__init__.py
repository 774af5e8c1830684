"""Infrastructure layer package."""

from videoproc.infrastructure.config import ConfigLoader, ServiceConfig
from videoproc.infrastructure.io import StorageTransfer
from videoproc.infrastructure.media import FFmpegTranscoder, TranscodeService
from videoproc.infrastructure.storage import (
    LocalObjectStorage,
    S3ObjectStorage,
    StagingArea,
)

__all__ = [
    "ConfigLoader",
    "ServiceConfig",
    "StorageTransfer",
    "FFmpegTranscoder",
    "TranscodeService",
    "LocalObjectStorage",
    "S3ObjectStorage",
    "StagingArea",
]
