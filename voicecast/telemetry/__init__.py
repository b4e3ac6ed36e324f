"""Runtime observability and cost accounting modules."""

from .cost_tracker import CostTracker, estimate_tokens
from .logger import RunLogger, configure_logging

__all__ = ["CostTracker", "RunLogger", "configure_logging", "estimate_tokens"]
