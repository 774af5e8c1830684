"""Moves videos between object storage buckets, rescaling them on the way."""

__version__ = "2.0.0"
