"""HTTP utilities providing retry/backoff semantics."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, FrozenSet

import httpx

RETRYABLE_STATUS_CODES: FrozenSet[int] = frozenset({429, 502, 503, 504})


class RetryConfig:
    def __init__(
        self,
        *,
        attempts: int = 3,
        backoff_seconds: float = 1.0,
        retry_statuses: FrozenSet[int] = RETRYABLE_STATUS_CODES,
    ) -> None:
        self.attempts = max(1, attempts)
        self.backoff_seconds = backoff_seconds
        self.retry_statuses = retry_statuses


async def request_with_retry(
    func: Callable[..., Awaitable[httpx.Response]],
    *args,
    retry_config: RetryConfig | None = None,
    **kwargs,
) -> httpx.Response:
    """Await ``func`` until it yields a response that is not transient.

    Transport errors and responses whose status is in ``retry_statuses`` are
    retried with linear backoff. The final response is returned whatever its
    status so callers keep their own error mapping; the final transport error
    is re-raised.
    """
    config = retry_config or RetryConfig()

    for attempt in range(1, config.attempts + 1):
        try:
            response = await func(*args, **kwargs)
        except httpx.TransportError:
            if attempt >= config.attempts:
                raise
        else:
            if response.status_code not in config.retry_statuses or attempt >= config.attempts:
                return response
        await asyncio.sleep(config.backoff_seconds * attempt)

    raise RuntimeError("Request failed without raising an exception")


__all__ = ["RETRYABLE_STATUS_CODES", "RetryConfig", "request_with_retry"]
