"""IO utilities package."""

from videoproc.infrastructure.io.transfer import StorageTransfer

__all__ = ["StorageTransfer"]
