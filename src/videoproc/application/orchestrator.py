"""Pipeline coordinator: download, transcode, upload, clean up."""

from typing import Callable, Optional

from videoproc.domain.exceptions import LocalIOError, PipelineError
from videoproc.domain.models import (
    FailureKind,
    FileRole,
    Job,
    JobOutcome,
    JobState,
)
from videoproc.domain.protocols import (
    ILogger,
    IStagingArea,
    ITranscodeService,
    ITransfer,
)
from videoproc.shared.logging import LoggerAdapter, get_logger
from videoproc.shared.metrics import MetricsCollector


def failure_kind_for(error: Exception) -> FailureKind:
    """Classify an exception raised by a pipeline step."""
    if isinstance(error, PipelineError):
        return error.kind
    if isinstance(error, OSError):
        return FailureKind.LOCAL_IO
    return FailureKind.TRANSIENT


class PipelineCoordinator:
    """
    Runs one job through
    ``pending -> downloading -> transcoding -> uploading -> cleaning_up``
    and ends in ``done`` or ``failed``.

    Any step failure jumps straight to ``cleaning_up``. Cleanup always runs
    and releases both staged files whether or not they were created. The
    coordinator keeps no per-job state, so one instance can serve many
    jobs at once.
    """

    def __init__(
        self,
        staging: IStagingArea,
        transfer: ITransfer,
        transcoder: ITranscodeService,
        make_public: bool = True,
        logger: Optional[ILogger] = None,
        metrics_factory: Callable[[], MetricsCollector] = MetricsCollector
    ):
        self._staging = staging
        self._transfer = transfer
        self._transcoder = transcoder
        self.make_public = make_public
        self._logger = logger or LoggerAdapter(get_logger(__name__))
        self._metrics_factory = metrics_factory

    def run(self, job: Job) -> JobOutcome:
        """Execute a job; failures are recorded on the outcome, not raised."""
        outcome = JobOutcome(job=job)
        metrics = self._metrics_factory()
        self._transition(outcome, JobState.PENDING)
        self._logger.info(f"Starting job {job.job_id}: {job.source_key} -> {job.target_key}")
        metrics.start_timer('total')

        try:
            self._execute(job, outcome, metrics)
        except Exception as e:
            kind = failure_kind_for(e)
            if isinstance(e, PipelineError):
                self._logger.error(f"Job {job.job_id} failed while {outcome.state.value}: {kind.value}: {e}")
            else:
                self._logger.exception(f"Job {job.job_id} failed while {outcome.state.value}: {e}")
            outcome.record_failure(e, kind)
        finally:
            self._transition(outcome, JobState.CLEANING_UP)
            with metrics.timed('cleanup'):
                self._cleanup(job, outcome)

        self._transition(outcome, JobState.FAILED if outcome.error else JobState.DONE)
        metrics.stop_timer('total')
        outcome.metrics = metrics.get_summary()

        if outcome.success:
            self._logger.info(f"Job {job.job_id} done: {job.target_key}")
        else:
            self._logger.error(
                f"Job {job.job_id} failed: {outcome.failure_kind.value}: {outcome.failure_message}"
            )
        return outcome

    def _execute(self, job: Job, outcome: JobOutcome, metrics: MetricsCollector) -> None:
        self._transition(outcome, JobState.DOWNLOADING)
        with metrics.timed('download'):
            raw = self._transfer.download(job, metrics=metrics)

        self._transition(outcome, JobState.TRANSCODING)
        with metrics.timed('transcode'):
            processed = self._transcoder.transform(
                raw,
                job.transform_options,
                suffix=job.staged_suffix(FileRole.PROCESSED)
            )

        self._transition(outcome, JobState.UPLOADING)
        with metrics.timed('upload'):
            result = self._transfer.upload(
                processed,
                job.target_key,
                make_public=self.make_public,
                metrics=metrics
            )
        outcome.upload = result

        if result.visibility_error is not None:
            # The object is uploaded; only the public-read step needs redoing
            raise result.visibility_error

    def _cleanup(self, job: Job, outcome: JobOutcome) -> None:
        for role in FileRole:
            try:
                self._staging.release(job.job_id, role, job.staged_suffix(role))
            except LocalIOError as e:
                self._logger.error(f"Cleanup of {role.value} file for job {job.job_id} failed: {e}")
                outcome.record_failure(e, FailureKind.LOCAL_IO)
            except Exception as e:
                self._logger.exception(f"Cleanup of {role.value} file for job {job.job_id} failed: {e}")
                outcome.record_failure(e, failure_kind_for(e))

    def _transition(self, outcome: JobOutcome, state: JobState) -> None:
        outcome.state = state
        outcome.history.append(state)
        self._logger.debug(f"Job {outcome.job.job_id} -> {state.value}")
