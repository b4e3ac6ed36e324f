"""Job bookkeeping: record registry and cooperative cancellation."""

from .cancellation import CancellationToken
from .registry import JobRegistry, TrackedRecord

__all__ = ["CancellationToken", "JobRegistry", "TrackedRecord"]
