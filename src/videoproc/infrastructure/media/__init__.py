"""Media processing package."""

from videoproc.infrastructure.media.ffmpeg import FFmpegTranscoder
from videoproc.infrastructure.media.transcoder import TranscodeService

__all__ = ["FFmpegTranscoder", "TranscodeService"]
