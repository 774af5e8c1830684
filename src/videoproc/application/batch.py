"""Runs independent jobs side by side."""

from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

from videoproc.application.orchestrator import PipelineCoordinator
from videoproc.domain.exceptions import ConfigurationError
from videoproc.domain.models import Job, JobOutcome
from videoproc.domain.protocols import ILogger
from videoproc.shared.logging import LoggerAdapter, get_logger


class BatchRunner:
    """
    Runs up to ``max_concurrent_jobs`` jobs at once.

    Steps inside a job stay sequential. Jobs share nothing but the
    coordinator, which is stateless, and staging paths are partitioned by
    job id, so no locking is involved.
    """

    def __init__(
        self,
        coordinator: PipelineCoordinator,
        max_concurrent_jobs: int = 4,
        logger: Optional[ILogger] = None
    ):
        if max_concurrent_jobs < 1:
            raise ValueError("max_concurrent_jobs must be at least 1")
        self._coordinator = coordinator
        self.max_concurrent_jobs = max_concurrent_jobs
        self._logger = logger or LoggerAdapter(get_logger(__name__))

    def run_all(self, jobs: Sequence[Job]) -> List[JobOutcome]:
        """
        Run every job and return outcomes in the order the jobs were given.

        Raises:
            ConfigurationError: If two jobs share a job id
        """
        duplicates = [job_id for job_id, n in Counter(j.job_id for j in jobs).items() if n > 1]
        if duplicates:
            raise ConfigurationError(f"Duplicate job ids in batch: {', '.join(sorted(duplicates))}")

        if not jobs:
            return []

        workers = min(self.max_concurrent_jobs, len(jobs))
        self._logger.info(f"Running {len(jobs)} job(s) with {workers} worker(s)")

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="videoproc-job") as pool:
            outcomes = list(pool.map(self._coordinator.run, jobs))

        done = sum(1 for o in outcomes if o.success)
        self._logger.info(f"Batch finished: {done} done, {len(outcomes) - done} failed")
        return outcomes
