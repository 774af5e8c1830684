"""Configuration loading and validation."""

import os
import yaml
from pathlib import Path
from typing import Optional, Dict, Any
from dataclasses import dataclass, fields

from videoproc.domain.exceptions import ConfigurationError
from videoproc.domain.models import Bucket, TransformOptions
from videoproc.shared.logging import get_logger

logger = get_logger(__name__)


@dataclass
class ServiceConfig:
    """Everything a pipeline needs; nothing here is a module-level constant."""

    # Buckets
    raw_bucket: str = ""
    processed_bucket: str = ""

    # Local staging roots
    raw_dir: Path = Path("./raw-videos")
    processed_dir: Path = Path("./processed-videos")

    # Storage backend
    storage_backend: str = "s3"  # 's3' or 'local'
    storage_endpoint: Optional[str] = None
    storage_region: Optional[str] = None
    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    local_storage_root: Path = Path("./buckets")

    # Output
    make_public: bool = True
    target_height: int = 360
    target_width: int = -1
    video_codec: Optional[str] = None

    # Deadlines and retries
    transcode_timeout: float = 3600.0
    connect_timeout: float = 10.0
    read_timeout: float = 300.0
    transfer_max_attempts: int = 3
    transfer_backoff_seconds: float = 1.0

    # Concurrency
    max_concurrent_jobs: int = 4

    # Logging
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    def __post_init__(self):
        """Validate configuration after initialization."""
        self.raw_dir = Path(self.raw_dir)
        self.processed_dir = Path(self.processed_dir)
        self.local_storage_root = Path(self.local_storage_root)
        if self.log_file is not None:
            self.log_file = Path(self.log_file)
        self._validate()

    def _validate(self):
        """Validate configuration values."""
        for name in ("raw_bucket", "processed_bucket"):
            value = getattr(self, name)
            try:
                Bucket(value)
            except ValueError as e:
                raise ConfigurationError(f"{name}: {e}")

        if self.raw_dir.resolve() == self.processed_dir.resolve():
            raise ConfigurationError("raw_dir and processed_dir must be different directories")

        if self.storage_backend not in ("s3", "local"):
            raise ConfigurationError(f"Invalid storage_backend: {self.storage_backend}")

        try:
            self.transform_options()
        except ValueError as e:
            raise ConfigurationError(f"Invalid transform options: {e}")

        for name in ("transcode_timeout", "connect_timeout", "read_timeout"):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive, got: {getattr(self, name)}")

        if self.transfer_max_attempts < 1:
            raise ConfigurationError("transfer_max_attempts must be at least 1")

        if self.transfer_backoff_seconds < 0:
            raise ConfigurationError("transfer_backoff_seconds cannot be negative")

        if self.max_concurrent_jobs < 1:
            raise ConfigurationError("max_concurrent_jobs must be at least 1")

    @property
    def raw(self) -> Bucket:
        return Bucket(self.raw_bucket)

    @property
    def processed(self) -> Bucket:
        return Bucket(self.processed_bucket)

    def transform_options(self) -> TransformOptions:
        return TransformOptions(
            height=self.target_height,
            width=self.target_width,
            video_codec=self.video_codec
        )


# env var -> (field, converter)
_ENV_FIELDS = {
    "VIDEO_RAW_BUCKET": ("raw_bucket", str),
    "VIDEO_PROCESSED_BUCKET": ("processed_bucket", str),
    "VIDEO_RAW_DIR": ("raw_dir", Path),
    "VIDEO_PROCESSED_DIR": ("processed_dir", Path),
    "VIDEO_STORAGE_BACKEND": ("storage_backend", lambda v: v.lower()),
    "VIDEO_STORAGE_ENDPOINT": ("storage_endpoint", str),
    "VIDEO_STORAGE_REGION": ("storage_region", str),
    "VIDEO_ACCESS_KEY": ("access_key", str),
    "VIDEO_SECRET_KEY": ("secret_key", str),
    "VIDEO_LOCAL_STORAGE_ROOT": ("local_storage_root", Path),
    "VIDEO_MAKE_PUBLIC": ("make_public", lambda v: v.lower() in ("true", "1", "yes")),
    "VIDEO_TARGET_HEIGHT": ("target_height", int),
    "VIDEO_TARGET_WIDTH": ("target_width", int),
    "VIDEO_CODEC": ("video_codec", str),
    "VIDEO_TRANSCODE_TIMEOUT": ("transcode_timeout", float),
    "VIDEO_CONNECT_TIMEOUT": ("connect_timeout", float),
    "VIDEO_READ_TIMEOUT": ("read_timeout", float),
    "VIDEO_TRANSFER_MAX_ATTEMPTS": ("transfer_max_attempts", int),
    "VIDEO_TRANSFER_BACKOFF": ("transfer_backoff_seconds", float),
    "VIDEO_MAX_CONCURRENT_JOBS": ("max_concurrent_jobs", int),
    "VIDEO_LOG_LEVEL": ("log_level", str),
    "VIDEO_LOG_FILE": ("log_file", Path),
}


class ConfigLoader:
    """Loads configuration from a YAML file, the environment and overrides."""

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize config loader.

        Args:
            config_path: Optional path to YAML config file
        """
        self.config_path = Path(config_path) if config_path else Path("config.yaml")
        self._logger = get_logger(__name__)

    def load(self, overrides: Optional[Dict[str, Any]] = None) -> ServiceConfig:
        """
        Load configuration from file and environment.

        Precedence: overrides > environment > YAML file > defaults.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        config_dict: Dict[str, Any] = {}

        if self.config_path.exists():
            self._logger.info(f"Loading config from {self.config_path}")
            config_dict.update(self._load_yaml())
        else:
            self._logger.debug(f"Config file not found: {self.config_path}")

        config_dict.update(self._load_from_env())

        if overrides:
            config_dict.update({k: v for k, v in overrides.items() if v is not None})

        valid_fields = {f.name for f in fields(ServiceConfig)}
        unknown = sorted(set(config_dict) - valid_fields)
        if unknown:
            self._logger.warning(f"Ignoring unknown config keys: {', '.join(unknown)}")

        filtered_config = {k: v for k, v in config_dict.items() if k in valid_fields}

        try:
            return ServiceConfig(**filtered_config)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    def _load_yaml(self) -> Dict[str, Any]:
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Cannot parse {self.config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"{self.config_path} must contain a mapping")
        return data

    def _load_from_env(self) -> Dict[str, Any]:
        """Load configuration from VIDEO_* environment variables."""
        env_config = {}

        for env_name, (field_name, convert) in _ENV_FIELDS.items():
            raw_value = os.getenv(env_name)
            if not raw_value:
                continue
            try:
                env_config[field_name] = convert(raw_value)
            except ValueError:
                self._logger.warning(f"Invalid {env_name} value: {raw_value}")

        return env_config
