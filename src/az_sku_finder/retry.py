"""Bounded exponential-backoff retry for remote calls.

Every ARM and Retail Prices request goes through :func:`execute_with_retry`.
The policy is a frozen pydantic model handed to every region worker.

Backoff rule
------------
    wait = base_seconds * 2**attempt       (attempt = 0, 1, 2, ...)
    wait = Retry-After                     (429 responses that sent one)
    wait += uniform(0, jitter_ratio * wait)

Only throttling (429), service unavailable (503) and network-level
timeouts / connection failures are retried.  Anything else, or the last
retryable failure once the budget is spent, is re-raised unchanged.
"""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable
from typing import TypeVar

import requests
from pydantic import BaseModel, ConfigDict, Field

from az_sku_finder.errors import TransientApiError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({429, 503})


class RetryPolicy(BaseModel):
    """Serializable retry settings shared by every remote call."""

    model_config = ConfigDict(frozen=True)

    max_retries: int = Field(3, ge=0)
    base_seconds: float = Field(1.0, gt=0)
    jitter_ratio: float = Field(0.25, ge=0, le=1)

    def execute(self, action: Callable[[], T], operation_name: str = "remote call") -> T:
        return execute_with_retry(action, operation_name=operation_name, policy=self)


DEFAULT_POLICY = RetryPolicy()


def _status_code(exc: BaseException) -> int | None:
    if isinstance(exc, TransientApiError):
        return exc.status_code
    response = getattr(exc, "response", None)
    return getattr(response, "status_code", None)


def is_retryable(exc: BaseException) -> bool:
    """Return *True* if *exc* is a transient failure worth retrying."""
    if isinstance(exc, TransientApiError):
        return True
    if isinstance(exc, (requests.Timeout, requests.ConnectionError)):
        return True
    # Builtin socket-level failures (ConnectionResetError, ConnectionRefusedError, ...)
    if isinstance(exc, (TimeoutError, ConnectionError)):
        return True
    if isinstance(exc, requests.HTTPError):
        return _status_code(exc) in RETRYABLE_STATUS_CODES
    return False


def retry_after_seconds(exc: BaseException) -> float | None:
    """Extract a server-provided ``Retry-After`` delay from *exc*, if any.

    Only throttling (429) responses may override the backoff schedule; a
    ``Retry-After`` sent with 503 is ignored.  Only the delta-seconds form
    is understood; HTTP-date values are ignored as well.
    """
    if isinstance(exc, TransientApiError):
        return exc.retry_after if exc.status_code in (None, 429) else None
    if _status_code(exc) != 429:
        return None
    response = getattr(exc, "response", None)
    headers = getattr(response, "headers", None)
    if not headers:
        return None
    raw = headers.get("Retry-After")
    if raw is None:
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    return value if value >= 0 else None


def compute_wait(
    attempt: int,
    retry_after: float | None,
    policy: RetryPolicy = DEFAULT_POLICY,
    rng: random.Random | None = None,
) -> float:
    """Return the number of seconds to sleep before retry number *attempt*."""
    base = retry_after if retry_after is not None else policy.base_seconds * 2**attempt
    jitter = (rng or random).uniform(0, base * policy.jitter_ratio)
    return base + jitter


def execute_with_retry(
    action: Callable[[], T],
    max_retries: int | None = None,
    operation_name: str = "remote call",
    *,
    policy: RetryPolicy | None = None,
) -> T:
    """Call *action* until it succeeds or a non-retryable error occurs.

    *max_retries* overrides ``policy.max_retries`` when given.  The action
    is invoked at most ``max_retries + 1`` times.  The sleep blocks only the
    calling thread.
    """
    policy = policy or DEFAULT_POLICY
    retries = policy.max_retries if max_retries is None else max_retries

    attempt = 0
    while True:
        try:
            return action()
        except Exception as exc:
            if not is_retryable(exc):
                raise
            if attempt >= retries:
                logger.warning(
                    "%s still failing after %s retries, giving up: %s",
                    operation_name,
                    retries,
                    exc,
                )
                raise
            wait = compute_wait(attempt, retry_after_seconds(exc), policy)
            logger.warning(
                "%s throttled/transient, retrying in %.1fs (attempt %s/%s)",
                operation_name,
                wait,
                attempt + 1,
                retries,
            )
            time.sleep(wait)
            attempt += 1
