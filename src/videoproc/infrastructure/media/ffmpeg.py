"""FFmpeg wrapper for rescaling videos."""

import logging
import subprocess
from pathlib import Path
from typing import List, Optional

from videoproc.domain.exceptions import TranscodeError
from videoproc.domain.models import TranscodeFailure, TransformOptions
from videoproc.shared.logging import get_logger

INVALID_INPUT_MARKERS = (
    "Invalid data found when processing input",
    "moov atom not found",
    "does not contain any stream",
    "No such file or directory",
)
UNSUPPORTED_MARKERS = (
    "Unknown encoder",
    "Unable to find a suitable output format",
    "Encoder not found",
    "not supported",
)


def classify_failure(stderr: str) -> TranscodeFailure:
    """Guess why ffmpeg failed from its diagnostic output."""
    if any(marker in stderr for marker in INVALID_INPUT_MARKERS):
        return TranscodeFailure.INVALID_INPUT
    if any(marker in stderr for marker in UNSUPPORTED_MARKERS):
        return TranscodeFailure.UNSUPPORTED_FORMAT
    return TranscodeFailure.ENGINE_CRASHED


def _tail(text: str, lines: int = 5) -> str:
    return "\n".join((text or "").strip().splitlines()[-lines:])


class FFmpegTranscoder:
    """
    Runs ffmpeg as a subprocess and waits for it to exit.
    Implements ITranscoder protocol.
    """

    def __init__(
        self,
        binary: str = "ffmpeg",
        timeout: Optional[float] = 3600.0,
        logger: Optional[logging.Logger] = None
    ):
        self.binary = binary
        self.timeout = timeout
        self._logger = logger or get_logger(__name__)

    def build_command(
        self,
        input_path: Path,
        output_path: Path,
        options: TransformOptions
    ) -> List[str]:
        cmd = [
            self.binary,
            '-y',
            '-hide_banner',
            '-loglevel', 'error',
            '-i', str(input_path),
            '-vf', options.scale_filter,
        ]
        if options.video_codec:
            cmd.extend(['-c:v', options.video_codec])
        cmd.extend(options.extra_args)
        cmd.append(str(output_path))
        return cmd

    def transcode(
        self,
        input_path: Path,
        output_path: Path,
        options: TransformOptions
    ) -> Path:
        """
        Rescale ``input_path`` into ``output_path``.

        Returns only once ffmpeg has exited successfully and the output is
        non-empty.

        Raises:
            TranscodeError: With the engine's diagnostic as ``reason``
        """
        cmd = self.build_command(input_path, output_path, options)
        self._logger.debug(f"Running: {' '.join(cmd)}")

        try:
            subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=True,
                timeout=self.timeout
            )
        except subprocess.CalledProcessError as e:
            stderr = e.stderr or ""
            self._logger.error(f"An error occurred: {_tail(stderr)}")
            raise TranscodeError(
                _tail(stderr) or f"ffmpeg exited with code {e.returncode}",
                classify_failure(stderr)
            ) from e
        except subprocess.TimeoutExpired as e:
            raise TranscodeError(
                f"ffmpeg did not finish within {self.timeout}s",
                TranscodeFailure.TIMED_OUT
            ) from e
        except FileNotFoundError as e:
            raise TranscodeError(
                f"ffmpeg binary not found: {self.binary}",
                TranscodeFailure.ENGINE_CRASHED
            ) from e

        if not output_path.exists() or output_path.stat().st_size == 0:
            raise TranscodeError("Output video is empty or missing", TranscodeFailure.ENGINE_CRASHED)

        self._logger.info("Processing finished successfully")
        return output_path

    def is_available(self) -> bool:
        """Test if the ffmpeg binary can be executed."""
        try:
            subprocess.run(
                [self.binary, '-hide_banner', '-version'],
                capture_output=True,
                text=True,
                check=True,
                timeout=30
            )
            return True
        except (OSError, subprocess.SubprocessError):
            return False
