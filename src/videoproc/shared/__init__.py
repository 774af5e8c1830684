"""Shared utilities package."""

from videoproc.shared.logging import setup_logger, get_logger, LoggerAdapter
from videoproc.shared.retry import RetryStrategy
from videoproc.shared.metrics import MetricsCollector
from videoproc.shared.types import PathLike

__all__ = [
    "setup_logger",
    "get_logger",
    "LoggerAdapter",
    "RetryStrategy",
    "MetricsCollector",
    "PathLike",
]
