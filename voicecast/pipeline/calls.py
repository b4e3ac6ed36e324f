"""Provider call wrapper shared by pipeline phases.

Responsibilities:
- Run blocking provider clients off the event loop with `asyncio.to_thread`.
- Apply a per-call timeout and a cancellation check before each attempt.
- Retry idempotent read-only calls a bounded number of times.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, TypeVar

from loguru import logger

from ..errors import ProviderError
from ..jobs.cancellation import CancellationToken

R = TypeVar("R")


async def call_provider(
    func: Callable[..., R],
    *args: Any,
    token: CancellationToken | None = None,
    timeout_seconds: float = 120.0,
    retries: int = 0,
    operation: str = "provider call",
    **kwargs: Any,
) -> R:
    """Await a blocking provider function with timeout, cancellation, and retry.

    Raises:
        JobCanceledError: If the token is cancelled before an attempt.
        ProviderError: If every attempt fails or times out.
    """

    attempt = 0
    while True:
        if token is not None:
            token.raise_if_cancelled()
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(func, *args, **kwargs),
                timeout=timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            failure: ProviderError = ProviderError(
                f"{operation} timed out after {timeout_seconds:g} seconds.",
                failure_kind="timeout",
            )
            if attempt >= retries:
                raise failure from exc
        except ProviderError as exc:
            failure = exc
            if attempt >= retries:
                raise
        attempt += 1
        logger.warning(
            "Retrying {} after {} failure (attempt {}/{}).",
            operation,
            failure.failure_kind,
            attempt,
            retries,
        )
