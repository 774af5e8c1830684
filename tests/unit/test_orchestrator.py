"""Tests for PipelineCoordinator."""

import pytest
from unittest.mock import Mock

from videoproc.domain.exceptions import (
    AccessDeniedError,
    LocalIOError,
    ObjectNotFoundError,
    TranscodeError,
    TransientError,
)
from videoproc.domain.models import (
    FailureKind,
    Job,
    JobState,
    ObjectRef,
    TransformOptions,
)

from conftest import PROCESSED_BUCKET, RAW_BUCKET


@pytest.fixture
def clip_job():
    return Job(
        source_key="clip.mp4",
        target_key="clip_360p.mp4",
        transform_options=TransformOptions(height=360)
    )


class TestHappyPath:
    """A present source object goes all the way to done."""

    def test_reaches_done_and_publishes(self, make_coordinator, storage, put_raw, clip_job, leftover_files):
        put_raw("clip.mp4", b"original footage")

        outcome = make_coordinator().run(clip_job)

        assert outcome.state is JobState.DONE
        assert outcome.success
        assert outcome.failure_kind is None

        target = ObjectRef(PROCESSED_BUCKET, "clip_360p.mp4")
        assert storage.exists(target)
        assert storage.is_public(target)
        assert outcome.upload.uploaded and outcome.upload.public
        assert leftover_files() == []

    def test_history_follows_state_machine(self, make_coordinator, put_raw, clip_job):
        put_raw("clip.mp4")

        outcome = make_coordinator().run(clip_job)

        assert outcome.history == [
            JobState.PENDING,
            JobState.DOWNLOADING,
            JobState.TRANSCODING,
            JobState.UPLOADING,
            JobState.CLEANING_UP,
            JobState.DONE,
        ]

    def test_engine_receives_job_options(self, make_coordinator, make_engine, put_raw, clip_job):
        put_raw("clip.mp4")
        engine = make_engine()

        make_coordinator(engine=engine).run(clip_job)

        assert len(engine.calls) == 1
        input_path, output_path, options = engine.calls[0]
        assert options.scale_filter == "scale=-1:360"
        assert clip_job.job_id in input_path.name
        assert clip_job.job_id in output_path.name
        assert output_path.suffix == ".mp4"

    def test_private_upload_when_public_disabled(self, make_coordinator, storage, put_raw, clip_job):
        put_raw("clip.mp4")

        outcome = make_coordinator(make_public=False).run(clip_job)

        assert outcome.success
        assert not storage.is_public(ObjectRef(PROCESSED_BUCKET, "clip_360p.mp4"))

    def test_metrics_cover_every_step(self, make_coordinator, put_raw, clip_job):
        put_raw("clip.mp4")

        outcome = make_coordinator().run(clip_job)

        steps = outcome.metrics["steps"]
        for name in ("download", "transcode", "upload", "cleanup", "total"):
            assert name in steps

    def test_rerunning_same_keys_overwrites(self, make_coordinator, storage, put_raw, tmp_path):
        put_raw("clip.mp4", b"first cut")
        coordinator = make_coordinator()
        assert coordinator.run(Job.for_source("clip.mp4")).success

        put_raw("clip.mp4", b"second cut")
        assert coordinator.run(Job.for_source("clip.mp4")).success

        stored = tmp_path / "buckets" / PROCESSED_BUCKET.name / "clip_360p.mp4"
        assert stored.read_bytes() == b"second cut"


class TestFailures:
    """Every failure ends in failed with cleanup done."""

    def test_missing_source_fails_without_transcode_or_upload(
        self, make_coordinator, make_engine, storage, clip_job, leftover_files
    ):
        engine = make_engine()

        outcome = make_coordinator(engine=engine).run(clip_job)

        assert outcome.state is JobState.FAILED
        assert outcome.failure_kind is FailureKind.NOT_FOUND
        assert isinstance(outcome.error, ObjectNotFoundError)
        assert engine.calls == []
        assert not storage.exists(ObjectRef(PROCESSED_BUCKET, "clip_360p.mp4"))
        assert leftover_files() == []
        assert JobState.TRANSCODING not in outcome.history
        assert JobState.UPLOADING not in outcome.history
        assert outcome.history[-2:] == [JobState.CLEANING_UP, JobState.FAILED]

    def test_corrupt_input_fails_with_transcode_error(
        self, make_coordinator, make_engine, storage, put_raw, clip_job, corrupt_input_error, leftover_files
    ):
        put_raw("clip.mp4", b"not really a video")
        engine = make_engine(error=corrupt_input_error, write_partial=True)

        outcome = make_coordinator(engine=engine).run(clip_job)

        assert outcome.state is JobState.FAILED
        assert outcome.failure_kind is FailureKind.TRANSCODE
        assert "Invalid data found" in outcome.failure_message
        assert outcome.upload is None
        assert not storage.exists(ObjectRef(PROCESSED_BUCKET, "clip_360p.mp4"))
        assert leftover_files() == []

    def test_raise_for_failure_reraises_typed_error(self, make_coordinator, make_engine, put_raw, clip_job, corrupt_input_error):
        put_raw("clip.mp4")
        outcome = make_coordinator(engine=make_engine(error=corrupt_input_error)).run(clip_job)

        with pytest.raises(TranscodeError):
            outcome.raise_for_failure()

    def test_successful_outcome_does_not_raise(self, make_coordinator, put_raw, clip_job):
        put_raw("clip.mp4")
        make_coordinator().run(clip_job).raise_for_failure()

    def test_upload_failure_is_recorded_and_cleaned(self, make_coordinator, transfer, put_raw, clip_job, leftover_files):
        put_raw("clip.mp4")
        real = transfer
        transfer = Mock()
        transfer.download.side_effect = real.download
        transfer.upload.side_effect = TransientError("connection reset")

        outcome = make_coordinator(transfer_override=transfer).run(clip_job)

        assert outcome.state is JobState.FAILED
        assert outcome.failure_kind is FailureKind.TRANSIENT
        assert leftover_files() == []

    def test_access_denied_on_download(self, make_coordinator, clip_job, leftover_files):
        transfer = Mock()
        transfer.download.side_effect = AccessDeniedError("AccessDenied")

        outcome = make_coordinator(transfer_override=transfer).run(clip_job)

        assert outcome.failure_kind is FailureKind.PERMISSION_DENIED
        transfer.upload.assert_not_called()
        assert leftover_files() == []

    def test_visibility_failure_keeps_upload(self, make_coordinator, storage, put_raw, clip_job, monkeypatch):
        put_raw("clip.mp4")

        def refuse(ref):
            raise AccessDeniedError("ACLs disabled on bucket")
        monkeypatch.setattr(storage, "set_public", refuse)

        outcome = make_coordinator().run(clip_job)

        assert outcome.state is JobState.FAILED
        assert outcome.failure_kind is FailureKind.PERMISSION_DENIED
        assert outcome.upload.uploaded is True
        assert outcome.upload.public is False
        assert storage.exists(ObjectRef(PROCESSED_BUCKET, "clip_360p.mp4"))

    def test_unexpected_exception_is_recorded(self, make_coordinator, clip_job):
        transfer = Mock()
        transfer.download.side_effect = RuntimeError("boom")

        outcome = make_coordinator(transfer_override=transfer).run(clip_job)

        assert outcome.state is JobState.FAILED
        assert outcome.failure_kind is FailureKind.TRANSIENT
        assert outcome.failure_message == "boom"

    def test_cleanup_failure_fails_successful_job(self, make_coordinator, put_raw, clip_job, staging, monkeypatch):
        put_raw("clip.mp4")
        real_release = staging.release

        def flaky_release(job_id, role, suffix=""):
            real_release(job_id, role, suffix)
            raise LocalIOError("disk went read-only")
        monkeypatch.setattr(staging, "release", flaky_release)

        outcome = make_coordinator().run(clip_job)

        assert outcome.state is JobState.FAILED
        assert outcome.failure_kind is FailureKind.LOCAL_IO

    def test_cleanup_keeps_first_failure(self, make_coordinator, clip_job, staging, monkeypatch):
        def broken_release(job_id, role, suffix=""):
            raise LocalIOError("cannot unlink")
        monkeypatch.setattr(staging, "release", broken_release)

        outcome = make_coordinator().run(clip_job)

        assert outcome.failure_kind is FailureKind.NOT_FOUND


class TestCleanupTotality:
    """No terminal state leaves staged files behind."""

    @pytest.mark.parametrize("error", [
        TransientError("timeout"),
        AccessDeniedError("denied"),
        ObjectNotFoundError("gone"),
    ])
    def test_upload_errors(self, make_coordinator, transfer, put_raw, clip_job, leftover_files, error):
        put_raw("clip.mp4")
        real = transfer
        transfer = Mock()
        transfer.download.side_effect = real.download
        transfer.upload.side_effect = error

        outcome = make_coordinator(transfer_override=transfer).run(clip_job)

        assert outcome.state.is_terminal
        assert leftover_files() == []

    def test_raw_and_processed_buckets_are_distinct(self, make_coordinator, storage, put_raw, clip_job):
        put_raw("clip.mp4")
        make_coordinator().run(clip_job)

        assert not storage.exists(ObjectRef(RAW_BUCKET, "clip_360p.mp4"))
        assert storage.exists(ObjectRef(RAW_BUCKET, "clip.mp4"))


class TestCleanupNeverEscapes:
    """run() hands back an outcome even when cleanup itself blows up."""

    @pytest.mark.parametrize("job_id", [".", ".."])
    def test_dot_job_ids_never_reach_the_coordinator(self, job_id):
        with pytest.raises(ValueError):
            Job("clip.mp4", "clip_360p.mp4", job_id=job_id)

    def test_unexpected_cleanup_error_is_recorded(self, make_coordinator, put_raw, clip_job, staging, monkeypatch):
        put_raw("clip.mp4")

        def broken_release(job_id, role, suffix=""):
            raise ValueError(f"Invalid job_id: {job_id!r}")
        monkeypatch.setattr(staging, "release", broken_release)

        outcome = make_coordinator().run(clip_job)

        assert outcome.state is JobState.FAILED
        assert outcome.history[-1] is JobState.FAILED
        assert outcome.failure_kind is FailureKind.TRANSIENT
        assert isinstance(outcome.error, ValueError)

    def test_unexpected_cleanup_error_keeps_step_failure(self, make_coordinator, clip_job, staging, monkeypatch):
        def broken_release(job_id, role, suffix=""):
            raise RuntimeError("staging area gone")
        monkeypatch.setattr(staging, "release", broken_release)

        outcome = make_coordinator().run(clip_job)

        assert outcome.state is JobState.FAILED
        assert outcome.failure_kind is FailureKind.NOT_FOUND


class TestRetryCounters:

    def test_transient_upload_retries_are_counted(self, make_coordinator, storage, put_raw, clip_job, monkeypatch):
        put_raw("clip.mp4")
        real_upload = storage.upload
        attempts = []

        def flaky_upload(source, ref):
            attempts.append(ref)
            if len(attempts) == 1:
                raise TransientError("connection reset")
            return real_upload(source, ref)
        monkeypatch.setattr(storage, "upload", flaky_upload)

        outcome = make_coordinator().run(clip_job)

        assert outcome.success
        assert outcome.metrics["counters"] == {"upload_retries": 1}

    def test_clean_run_has_no_retries(self, make_coordinator, put_raw, clip_job):
        put_raw("clip.mp4")

        outcome = make_coordinator().run(clip_job)

        assert outcome.metrics["counters"] == {}
