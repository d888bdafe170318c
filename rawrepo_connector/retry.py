"""Retry policy applied around every outbound rawrepo request.

A request is retried when the transport raises one of the policy's
retryable exceptions, or when the response status is in the policy's
retryable set. Delays between attempts are fixed. When the budget runs
out the last response is handed on for classification; the last
transport exception surfaces as a TRANSPORT_FAILURE error.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, FrozenSet, Iterable, Optional, Tuple, Type

import httpx
import tenacity
from tenacity.stop import stop_base

from rawrepo_connector.errors import ConnectorError, ErrorKind

logger = logging.getLogger(__name__)

__all__ = ["RetryPolicy", "execute_with_retry", "DEFAULT_RETRY_EXCEPTIONS"]

DEFAULT_RETRY_EXCEPTIONS: Tuple[Type[BaseException], ...] = (httpx.TransportError,)

# Rolling deploys of the record service briefly answer 404
LOOKUP_RETRY_STATUSES = frozenset({404, 500, 502})
DUMP_RETRY_STATUSES = frozenset({404})


class RetryPolicy:
    """Bounded fixed-delay retry settings.

    ``max_retries`` counts additional attempts, so a policy with six
    retries makes at most seven requests.
    """

    def __init__(
        self,
        max_retries: int = 6,
        delay_seconds: float = 10.0,
        retry_statuses: Iterable[int] = LOOKUP_RETRY_STATUSES,
        retry_exceptions: Tuple[Type[BaseException], ...] = DEFAULT_RETRY_EXCEPTIONS,
    ):
        if max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {max_retries}")
        if delay_seconds < 0:
            raise ValueError(f"delay_seconds must be >= 0, got {delay_seconds}")
        self.max_retries = max_retries
        self.delay_seconds = delay_seconds
        self.retry_statuses: FrozenSet[int] = frozenset(retry_statuses)
        self.retry_exceptions = tuple(retry_exceptions)

    @classmethod
    def lookup(cls) -> "RetryPolicy":
        """Record and agency lookups: 6 retries, 10s apart, on 404/500/502."""
        return cls()

    @classmethod
    def dump(cls) -> "RetryPolicy":
        """Dumps: a single retry, only on 404."""
        return cls(max_retries=1, retry_statuses=DUMP_RETRY_STATUSES)

    @classmethod
    def queue(cls) -> "RetryPolicy":
        """Queue traffic: same as lookups."""
        return cls()

    @classmethod
    def none(cls) -> "RetryPolicy":
        """No retry - fail on the first attempt."""
        return cls(max_retries=0, delay_seconds=0.0)

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def replace(
        self,
        max_retries: Optional[int] = None,
        delay_seconds: Optional[float] = None,
    ) -> "RetryPolicy":
        return RetryPolicy(
            max_retries=self.max_retries if max_retries is None else max_retries,
            delay_seconds=self.delay_seconds if delay_seconds is None else delay_seconds,
            retry_statuses=self.retry_statuses,
            retry_exceptions=self.retry_exceptions,
        )

    def is_retryable_status(self, status_code: int) -> bool:
        return status_code in self.retry_statuses

    def __repr__(self) -> str:
        return (
            f"RetryPolicy(max_retries={self.max_retries}, "
            f"delay_seconds={self.delay_seconds}, "
            f"retry_statuses={sorted(self.retry_statuses)})"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RetryPolicy):
            return NotImplemented
        return (
            self.max_retries == other.max_retries
            and self.delay_seconds == other.delay_seconds
            and self.retry_statuses == other.retry_statuses
            and self.retry_exceptions == other.retry_exceptions
        )


def _describe(outcome: Optional[tenacity.Future]) -> str:
    if outcome is None:
        return "no outcome"
    if outcome.failed:
        exc = outcome.exception()
        return f"{type(exc).__name__}: {exc}"
    return f"HTTP {outcome.result().status_code}"


def execute_with_retry(
    send: Callable[[Optional[float]], httpx.Response],
    policy: RetryPolicy,
    operation_name: str = "request",
    deadline: Optional[float] = None,
) -> httpx.Response:
    """Run ``send`` under ``policy`` and return the authoritative response.

    Args:
        send: Performs one attempt. Receives the seconds left before the
            deadline (None without a deadline) to cap its timeout.
        policy: Retry policy to apply
        operation_name: Name for logging
        deadline: Overall budget in seconds for all attempts and delays

    Returns:
        The final attempt's response, retryable status or not

    Raises:
        ConnectorError: TRANSPORT_FAILURE when the final attempt raised a
            transport exception or the deadline ran out
    """
    expires_at = time.monotonic() + deadline if deadline is not None else None

    def attempt() -> httpx.Response:
        remaining = None
        if expires_at is not None:
            remaining = expires_at - time.monotonic()
            if remaining <= 0:
                raise ConnectorError(
                    ErrorKind.TRANSPORT_FAILURE,
                    f"Deadline of {deadline}s exceeded before attempt could start",
                )
        return send(remaining)

    def before_sleep_handler(retry_state: tenacity.RetryCallState) -> None:
        """Log retry attempts."""
        logger.warning(
            "%s attempt %d/%d failed: %s. Retrying in %.1fs...",
            operation_name,
            retry_state.attempt_number,
            policy.max_attempts,
            _describe(retry_state.outcome),
            retry_state.next_action.sleep if retry_state.next_action else 0,
        )

    def exhausted_handler(retry_state: tenacity.RetryCallState) -> httpx.Response:
        """Hand the last response on, or surface the last transport error."""
        outcome = retry_state.outcome
        logger.error(
            "%s failed after %d attempts. Last outcome: %s",
            operation_name,
            retry_state.attempt_number,
            _describe(outcome),
        )
        if outcome is not None and outcome.failed:
            exc = outcome.exception()
            raise ConnectorError(
                ErrorKind.TRANSPORT_FAILURE,
                f"Request failed after {retry_state.attempt_number} attempts",
                cause=exc,
            ) from exc
        return outcome.result()  # type: ignore[union-attr]

    stop: stop_base = tenacity.stop_after_attempt(policy.max_attempts)
    if deadline is not None:
        stop = stop | tenacity.stop_before_delay(deadline)

    retryer = tenacity.Retrying(
        stop=stop,
        wait=tenacity.wait_fixed(policy.delay_seconds),
        retry=(
            tenacity.retry_if_exception_type(policy.retry_exceptions)
            | tenacity.retry_if_result(
                lambda response: policy.is_retryable_status(response.status_code)
            )
        ),
        before_sleep=before_sleep_handler,
        retry_error_callback=exhausted_handler,
    )

    try:
        return retryer(attempt)
    except httpx.HTTPError as e:
        # Transport errors outside the policy's retryable set
        raise ConnectorError(
            ErrorKind.TRANSPORT_FAILURE,
            f"Request failed: {type(e).__name__}",
            cause=e,
        ) from e
