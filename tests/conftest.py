import sys
import os

# Ensure src/ is on sys.path so the package imports without installation
SRC = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src'))
if SRC not in sys.path:
    sys.path.insert(0, SRC)

import shutil
from pathlib import Path

import pytest

from videoproc.application.orchestrator import PipelineCoordinator
from videoproc.domain.exceptions import TranscodeError
from videoproc.domain.models import Bucket, TranscodeFailure
from videoproc.infrastructure.io.transfer import StorageTransfer
from videoproc.infrastructure.media.transcoder import TranscodeService
from videoproc.infrastructure.storage.local_storage import LocalObjectStorage
from videoproc.infrastructure.storage.staging import StagingArea
from videoproc.shared.retry import RetryStrategy

RAW_BUCKET = Bucket("laughin-yt-raw-videos")
PROCESSED_BUCKET = Bucket("laughin-processed-videos")


class FakeTranscoder:
    """Stands in for ffmpeg: copies the input, or fails like the engine would."""

    binary = "fake-ffmpeg"

    def __init__(self, error=None, write_partial=False):
        self.error = error
        self.write_partial = write_partial
        self.calls = []

    def transcode(self, input_path, output_path, options):
        self.calls.append((Path(input_path), Path(output_path), options))
        if self.write_partial:
            Path(output_path).write_bytes(b"half a video")
        if self.error is not None:
            raise self.error
        shutil.copyfile(input_path, output_path)
        return output_path

    def is_available(self):
        return True


def files_under(*roots):
    """All regular files below the given directories."""
    found = []
    for root in roots:
        root = Path(root)
        if root.exists():
            found.extend(p for p in root.rglob('*') if p.is_file())
    return found


@pytest.fixture
def staging(tmp_path):
    return StagingArea(tmp_path / "raw-videos", tmp_path / "processed-videos")


@pytest.fixture
def storage(tmp_path):
    return LocalObjectStorage(tmp_path / "buckets")


@pytest.fixture
def put_raw(tmp_path):
    """Place an object in the raw bucket of the local storage."""
    def _put(key, data=b"raw video bytes"):
        path = tmp_path / "buckets" / RAW_BUCKET.name / key
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return path
    return _put


@pytest.fixture
def fast_retry():
    return RetryStrategy(max_attempts=3, backoff_seconds=0, jitter=False, sleep=lambda s: None)


@pytest.fixture
def engine():
    return FakeTranscoder()


@pytest.fixture
def transfer(storage, staging, fast_retry):
    return StorageTransfer(
        storage=storage,
        staging=staging,
        raw_bucket=RAW_BUCKET,
        processed_bucket=PROCESSED_BUCKET,
        retry=fast_retry
    )


@pytest.fixture
def make_coordinator(staging, transfer):
    def _make(engine=None, transfer_override=None, make_public=True):
        return PipelineCoordinator(
            staging=staging,
            transfer=transfer_override or transfer,
            transcoder=TranscodeService(engine or FakeTranscoder(), staging),
            make_public=make_public
        )
    return _make


@pytest.fixture
def corrupt_input_error():
    return TranscodeError(
        "clip.mp4: Invalid data found when processing input",
        TranscodeFailure.INVALID_INPUT
    )


@pytest.fixture
def make_engine():
    return FakeTranscoder


@pytest.fixture
def leftover_files(staging):
    """Files remaining under either staging root."""
    return lambda: files_under(staging.raw_dir, staging.processed_dir)
