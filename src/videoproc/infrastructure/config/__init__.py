"""Configuration package."""

from videoproc.infrastructure.config.loader import ConfigLoader, ServiceConfig

__all__ = ["ConfigLoader", "ServiceConfig"]
