"""Application layer package."""

from videoproc.application.orchestrator import PipelineCoordinator
from videoproc.application.batch import BatchRunner
from videoproc.application.factories import PipelineFactory

__all__ = ["PipelineCoordinator", "BatchRunner", "PipelineFactory"]
