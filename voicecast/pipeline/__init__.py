"""Background pipeline execution primitives."""

from .calls import call_provider
from .executor import Phase, PhaseContext, PipelineExecutor, failure_message

__all__ = ["Phase", "PhaseContext", "PipelineExecutor", "call_provider", "failure_message"]
