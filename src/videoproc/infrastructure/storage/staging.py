"""Job-scoped local staging of raw and processed video files."""

import logging
from pathlib import Path
from typing import Optional

from videoproc.domain.exceptions import LocalIOError
from videoproc.domain.models import FileRole, StagedFile, validate_job_id
from videoproc.shared.logging import get_logger
from videoproc.shared.types import PathLike


class StagingArea:
    """
    Owns the raw intake and processed output directories.

    File names are derived from the job id, so concurrent jobs never share
    a path and need no locking. Directories are created on first use.
    """

    def __init__(
        self,
        raw_dir: PathLike,
        processed_dir: PathLike,
        logger: Optional[logging.Logger] = None
    ):
        self.raw_dir = Path(raw_dir)
        self.processed_dir = Path(processed_dir)
        self._logger = logger or get_logger(__name__)

    def root_for(self, role: FileRole) -> Path:
        return self.raw_dir if role is FileRole.RAW else self.processed_dir

    def setup(self) -> None:
        """Create both roots up front (optional, acquire_path does it lazily)."""
        for role in FileRole:
            self._ensure_directory(self.root_for(role))

    def path_for(self, job_id: str, role: FileRole, suffix: str = "") -> Path:
        """Deterministic path for ``(job_id, role, suffix)``; touches nothing."""
        return self.root_for(role) / f"{validate_job_id(job_id)}{suffix}"

    def acquire_path(self, job_id: str, role: FileRole, suffix: str = "") -> Path:
        """
        Return the path for a job's file in ``role``, creating its directory.

        Safe to call repeatedly; the same arguments give the same path.

        Raises:
            LocalIOError: If the directory cannot be created
        """
        path = self.path_for(job_id, role, suffix)
        self._ensure_directory(path.parent)
        return path

    def release(self, job_id: str, role: FileRole, suffix: str = "") -> bool:
        """
        Delete a job's file in ``role`` if present.

        Returns:
            True if a file was deleted, False if there was nothing to delete

        Raises:
            LocalIOError: If an existing file cannot be deleted
        """
        return self._delete_file(self.path_for(job_id, role, suffix))

    def release_file(self, staged: StagedFile) -> bool:
        return self._delete_file(staged.path)

    def delete_raw(self, file_name: str) -> bool:
        """Delete a file by name from the raw directory."""
        return self._delete_file(self.raw_dir / file_name)

    def delete_processed(self, file_name: str) -> bool:
        """Delete a file by name from the processed directory."""
        return self._delete_file(self.processed_dir / file_name)

    def _delete_file(self, file_path: Path) -> bool:
        try:
            file_path.unlink()
        except FileNotFoundError:
            self._logger.info(f"File not found at {file_path}, skipping the delete")
            return False
        except OSError as e:
            self._logger.error(f"Failed to delete file at {file_path}: {e}")
            raise LocalIOError(f"Failed to delete {file_path}: {e}", path=str(file_path)) from e

        self._logger.info(f"File deleted at {file_path}")
        return True

    def _ensure_directory(self, dir_path: Path) -> None:
        if dir_path.is_dir():
            return
        try:
            dir_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise LocalIOError(f"Cannot create directory {dir_path}: {e}", path=str(dir_path)) from e
        self._logger.info(f"Directory created at {dir_path}")
