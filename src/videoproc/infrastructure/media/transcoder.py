"""Turns a staged raw file into a staged processed file."""

import logging
from typing import Optional

from videoproc.domain.exceptions import LocalIOError, TranscodeError
from videoproc.domain.models import (
    FileRole,
    StagedFile,
    TranscodeFailure,
    TransformOptions,
)
from videoproc.domain.protocols import IStagingArea, ITranscoder
from videoproc.shared.logging import get_logger


class TranscodeService:
    """
    Wraps the transcoding engine with staging-area bookkeeping.
    Implements ITranscodeService protocol.

    A failed transform never leaves a file at the processed-role path.
    """

    def __init__(
        self,
        engine: ITranscoder,
        staging: IStagingArea,
        logger: Optional[logging.Logger] = None
    ):
        self._engine = engine
        self._staging = staging
        self._logger = logger or get_logger(__name__)

    def transform(
        self,
        raw: StagedFile,
        options: TransformOptions,
        suffix: Optional[str] = None
    ) -> StagedFile:
        """
        Transcode ``raw`` into a fresh processed-role path.

        Args:
            raw: Staged raw input
            options: Rescale options
            suffix: Extension for the output (defaults to the input's)

        Raises:
            TranscodeError: Engine failure, carrying its diagnostic
            LocalIOError: The output path could not be prepared or cleared
        """
        if raw.role is not FileRole.RAW:
            raise ValueError(f"Expected a raw staged file, got {raw.role.value}")
        if not raw.exists():
            raise TranscodeError(f"Input file missing: {raw.path}", TranscodeFailure.INVALID_INPUT)

        if suffix is None:
            suffix = raw.path.suffix
        output = StagedFile(
            job_id=raw.job_id,
            role=FileRole.PROCESSED,
            path=self._staging.acquire_path(raw.job_id, FileRole.PROCESSED, suffix)
        )

        self._logger.info(f"Transcoding {raw.path} -> {output.path} ({options.scale_filter})")

        try:
            self._engine.transcode(raw.path, output.path, options)
        except TranscodeError:
            self._discard(output)
            raise
        except Exception as e:
            self._discard(output)
            raise TranscodeError(str(e), TranscodeFailure.ENGINE_CRASHED) from e

        if not output.exists():
            raise TranscodeError(
                f"Engine reported success but wrote nothing to {output.path}",
                TranscodeFailure.ENGINE_CRASHED
            )
        return output

    def _discard(self, output: StagedFile) -> None:
        try:
            self._staging.release_file(output)
        except LocalIOError as e:
            self._logger.error(f"Could not remove partial output {output.path}: {e}")
