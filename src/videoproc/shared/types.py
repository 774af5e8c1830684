"""Common type definitions."""

from typing import Union
from pathlib import Path

# Local filesystem locations only; bucket names use domain.models.Bucket
PathLike = Union[str, Path]
