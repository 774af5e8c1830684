"""Storage infrastructure."""

from videoproc.infrastructure.storage.s3_storage import S3ObjectStorage
from videoproc.infrastructure.storage.local_storage import LocalObjectStorage
from videoproc.infrastructure.storage.staging import StagingArea

__all__ = ['S3ObjectStorage', 'LocalObjectStorage', 'StagingArea']
