"""Builds pipeline components from a ServiceConfig."""

from typing import Optional

from videoproc.application.batch import BatchRunner
from videoproc.application.orchestrator import PipelineCoordinator
from videoproc.domain.exceptions import ConfigurationError
from videoproc.domain.protocols import IObjectStorage, ITranscoder
from videoproc.infrastructure.config import ServiceConfig
from videoproc.infrastructure.io import StorageTransfer
from videoproc.infrastructure.media import FFmpegTranscoder, TranscodeService
from videoproc.infrastructure.storage import (
    LocalObjectStorage,
    S3ObjectStorage,
    StagingArea,
)
from videoproc.shared.logging import LoggerAdapter, get_logger
from videoproc.shared.retry import RetryStrategy


class PipelineFactory:
    """
    Wires storage, staging, transfer and transcoding from one config.

    The storage and engine can be injected, which is how tests and
    embedding applications swap in their own capabilities.
    """

    def __init__(
        self,
        config: ServiceConfig,
        storage: Optional[IObjectStorage] = None,
        engine: Optional[ITranscoder] = None
    ):
        self.config = config
        self._storage = storage
        self._engine = engine
        self._logger = get_logger(__name__)

    def create_storage(self) -> IObjectStorage:
        if self._storage is not None:
            return self._storage

        if self.config.storage_backend == "local":
            self._logger.info(f"Using local object storage at {self.config.local_storage_root}")
            self._storage = LocalObjectStorage(self.config.local_storage_root)
        else:
            self._logger.info(f"Using S3 object storage ({self.config.storage_endpoint or 'default endpoint'})")
            self._storage = S3ObjectStorage(
                endpoint=self.config.storage_endpoint,
                access_key=self.config.access_key,
                secret_key=self.config.secret_key,
                region=self.config.storage_region,
                connect_timeout=self.config.connect_timeout,
                read_timeout=self.config.read_timeout
            )
        return self._storage

    def create_engine(self) -> ITranscoder:
        """
        Return the transcoding engine, building ffmpeg on first use.

        Raises:
            ConfigurationError: If the ffmpeg binary cannot be run
        """
        if self._engine is None:
            engine = FFmpegTranscoder(timeout=self.config.transcode_timeout)
            if not engine.is_available():
                raise ConfigurationError(f"ffmpeg is not available (tried '{engine.binary}')")
            self._engine = engine
        return self._engine

    def create_staging(self) -> StagingArea:
        return StagingArea(self.config.raw_dir, self.config.processed_dir)

    def create_retry(self) -> RetryStrategy:
        return RetryStrategy(
            max_attempts=self.config.transfer_max_attempts,
            backoff_seconds=self.config.transfer_backoff_seconds
        )

    def create_coordinator(self) -> PipelineCoordinator:
        staging = self.create_staging()
        transfer = StorageTransfer(
            storage=self.create_storage(),
            staging=staging,
            raw_bucket=self.config.raw,
            processed_bucket=self.config.processed,
            retry=self.create_retry(),
            make_public=self.config.make_public
        )
        transcoder = TranscodeService(engine=self.create_engine(), staging=staging)

        return PipelineCoordinator(
            staging=staging,
            transfer=transfer,
            transcoder=transcoder,
            make_public=self.config.make_public,
            logger=LoggerAdapter(get_logger('videoproc.pipeline'))
        )

    def create_batch_runner(self) -> BatchRunner:
        return BatchRunner(
            coordinator=self.create_coordinator(),
            max_concurrent_jobs=self.config.max_concurrent_jobs
        )
