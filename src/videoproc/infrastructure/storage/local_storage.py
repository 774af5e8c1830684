"""Filesystem-backed object storage for local runs and tests."""

import json
import logging
import os
import shutil
import threading
from pathlib import Path
from typing import Optional, Set

from videoproc.domain.exceptions import (
    AccessDeniedError,
    ObjectNotFoundError,
    TransientError,
)
from videoproc.domain.models import ObjectRef
from videoproc.shared.logging import get_logger
from videoproc.shared.types import PathLike

PUBLIC_INDEX = ".public.json"


class LocalObjectStorage:
    """
    Buckets are directories under ``root`` and keys are relative paths.
    Implements IObjectStorage protocol.

    Public visibility is recorded in a ``.public.json`` file per bucket.
    """

    def __init__(self, root: PathLike, logger: Optional[logging.Logger] = None):
        self.root = Path(root)
        self._logger = logger or get_logger(__name__)
        self._lock = threading.Lock()

    def _bucket_dir(self, ref: ObjectRef) -> Path:
        return self.root / ref.bucket.name

    def _object_path(self, ref: ObjectRef) -> Path:
        bucket_dir = self._bucket_dir(ref).resolve()
        path = (bucket_dir / ref.key).resolve()
        if bucket_dir not in path.parents:
            raise AccessDeniedError(f"Key escapes its bucket: {ref.key}")
        return path

    def exists(self, ref: ObjectRef) -> bool:
        return self._object_path(ref).is_file()

    def download(self, ref: ObjectRef, destination: Path) -> Path:
        source = self._object_path(ref)
        if not source.is_file():
            raise ObjectNotFoundError(f"{ref.uri} not found")

        try:
            shutil.copy2(source, destination)
        except PermissionError as e:
            raise AccessDeniedError(f"Access denied reading {ref.uri}: {e}") from e
        except OSError as e:
            raise TransientError(f"Failed to copy {ref.uri} to {destination}: {e}") from e

        return destination

    def upload(self, source: Path, ref: ObjectRef) -> int:
        """Copy ``source`` into the bucket; the object is replaced atomically."""
        target = self._object_path(ref)
        partial = target.with_name(f".{target.name}.partial")

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, partial)
            os.replace(partial, target)
        except OSError as e:
            partial.unlink(missing_ok=True)
            if isinstance(e, PermissionError):
                raise AccessDeniedError(f"Access denied writing {ref.uri}: {e}") from e
            raise TransientError(f"Failed to write {ref.uri}: {e}") from e

        return target.stat().st_size

    def set_public(self, ref: ObjectRef) -> None:
        if not self.exists(ref):
            raise ObjectNotFoundError(f"{ref.uri} not found")

        with self._lock:
            keys = self._read_public(ref)
            keys.add(ref.key)
            index = self._bucket_dir(ref) / PUBLIC_INDEX
            try:
                index.write_text(json.dumps(sorted(keys), indent=2), encoding='utf-8')
            except OSError as e:
                raise TransientError(f"Failed to record visibility of {ref.uri}: {e}") from e

    def is_public(self, ref: ObjectRef) -> bool:
        with self._lock:
            return ref.key in self._read_public(ref)

    def _read_public(self, ref: ObjectRef) -> Set[str]:
        index = self._bucket_dir(ref) / PUBLIC_INDEX
        if not index.exists():
            return set()
        try:
            return set(json.loads(index.read_text(encoding='utf-8')))
        except (OSError, ValueError) as e:
            self._logger.warning(f"Unreadable visibility index {index}: {e}")
            return set()
