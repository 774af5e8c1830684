"""Moves video objects between object storage and the staging area."""

import logging
from typing import Callable, Optional

from videoproc.domain.exceptions import (
    LocalIOError,
    ObjectNotFoundError,
    PipelineError,
)
from videoproc.domain.models import (
    Bucket,
    FileRole,
    Job,
    ObjectRef,
    StagedFile,
    TransferResult,
)
from videoproc.domain.protocols import IObjectStorage, IStagingArea
from videoproc.shared.logging import get_logger
from videoproc.shared.metrics import MetricsCollector
from videoproc.shared.retry import RetryStrategy


class StorageTransfer:
    """
    Downloads raw objects into the staging area and uploads processed files.
    Implements ITransfer protocol.

    Each storage call is retried on ``TransientError`` only; retries are
    counted on the job's metrics when one is given. Bucket identity comes
    from configuration, never from a local path.
    """

    def __init__(
        self,
        storage: IObjectStorage,
        staging: IStagingArea,
        raw_bucket: Bucket,
        processed_bucket: Bucket,
        retry: Optional[RetryStrategy] = None,
        make_public: bool = True,
        logger: Optional[logging.Logger] = None
    ):
        if not isinstance(raw_bucket, Bucket) or not isinstance(processed_bucket, Bucket):
            raise TypeError("Buckets must be given as Bucket values")

        self._storage = storage
        self._staging = staging
        self.raw_bucket = raw_bucket
        self.processed_bucket = processed_bucket
        self._retry = retry or RetryStrategy()
        self.make_public_default = make_public
        self._logger = logger or get_logger(__name__)

    def download(self, job: Job, metrics: Optional[MetricsCollector] = None) -> StagedFile:
        """
        Fetch the job's source object into a fresh raw-role path.

        Raises:
            ObjectNotFoundError: The source object does not exist
            AccessDeniedError: Access to the object was refused
            TransientError: Network/server failure after retries
            LocalIOError: The staging path could not be prepared
        """
        ref = ObjectRef(self.raw_bucket, job.source_key)

        on_retry = self._retry_counter(metrics, 'download_retries')

        if not self._retry.execute(self._storage.exists, ref, on_retry=on_retry):
            raise ObjectNotFoundError(f"{ref.uri} not found")

        staged = StagedFile(
            job_id=job.job_id,
            role=FileRole.RAW,
            path=self._staging.acquire_path(job.job_id, FileRole.RAW, job.staged_suffix(FileRole.RAW))
        )

        try:
            self._retry.execute(self._storage.download, ref, staged.path, on_retry=on_retry)
        except PipelineError:
            self._discard(staged)
            raise

        self._logger.info(f"{ref.uri} downloaded to {staged.path}")
        return staged

    def upload(
        self,
        staged: StagedFile,
        target_key: str,
        make_public: Optional[bool] = None,
        metrics: Optional[MetricsCollector] = None
    ) -> TransferResult:
        """
        Push a staged file to the processed bucket under ``target_key``.

        Visibility is a separate step; if it fails the result still reports
        the upload as done and carries the visibility error.

        Raises:
            LocalIOError: The staged file is missing
            AccessDeniedError, ObjectNotFoundError, TransientError: Upload failed
        """
        if make_public is None:
            make_public = self.make_public_default

        if not staged.exists():
            raise LocalIOError(f"Staged file missing: {staged.path}", path=str(staged.path))

        ref = ObjectRef(self.processed_bucket, target_key)
        size = self._retry.execute(
            self._storage.upload,
            staged.path,
            ref,
            on_retry=self._retry_counter(metrics, 'upload_retries')
        )
        self._logger.info(f"{staged.path} uploaded to {ref.uri}")

        result = TransferResult(
            bucket=ref.bucket,
            key=ref.key,
            size_bytes=size,
            uploaded=True,
            visibility_requested=make_public
        )

        if make_public:
            try:
                self.make_public(target_key, metrics=metrics)
                result.public = True
            except PipelineError as e:
                self._logger.warning(f"Uploaded {ref.uri} but could not make it public: {e}")
                result.visibility_error = e

        return result

    def make_public(self, target_key: str, metrics: Optional[MetricsCollector] = None) -> None:
        """Set public-read on an already uploaded object."""
        ref = ObjectRef(self.processed_bucket, target_key)
        self._retry.execute(
            self._storage.set_public,
            ref,
            on_retry=self._retry_counter(metrics, 'visibility_retries')
        )
        self._logger.info(f"{ref.uri} is now public")

    @staticmethod
    def _retry_counter(
        metrics: Optional[MetricsCollector],
        name: str
    ) -> Optional[Callable[[int, Exception], None]]:
        if metrics is None:
            return None
        return lambda attempt, error: metrics.increment_counter(name)

    def _discard(self, staged: StagedFile) -> None:
        try:
            self._staging.release_file(staged)
        except LocalIOError as e:
            # The coordinator's cleanup step tries again
            self._logger.error(f"Could not discard partial download {staged.path}: {e}")
