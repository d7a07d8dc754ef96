"""Bounded-time polling for effects FusionAuth applies asynchronously."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    stop_after_delay,
    stop_when_event_set,
    wait_fixed,
)

from fusionauth_provider.clients.results import OperationResult
from fusionauth_provider.core.errors import (
    ConvergenceCancelledError,
    ConvergenceTimeoutError,
    RetryableRemoteError,
)
from fusionauth_provider.reconcile.classifier import (
    FatalFailure,
    Proceed,
    RetryableFailure,
    RetryDecision,
)

logger = structlog.get_logger()

DEFAULT_TIMEOUT = 30.0
DEFAULT_INTERVAL = 2.0


@dataclass(frozen=True)
class RetrySettings:
    """Time budget and cadence for convergence polls."""

    timeout: float = DEFAULT_TIMEOUT
    interval: float = DEFAULT_INTERVAL

    def override(self, timeout: float | None = None, interval: float | None = None) -> "RetrySettings":
        return RetrySettings(
            timeout=self.timeout if timeout is None else timeout,
            interval=self.interval if interval is None else interval,
        )


def _log_retry(resource: str) -> Callable[[RetryCallState], None]:
    def before_sleep(retry_state: RetryCallState) -> None:
        outcome = retry_state.outcome
        error = outcome.exception() if outcome is not None else None
        logger.debug(
            "convergence_retry",
            resource=resource,
            attempt=retry_state.attempt_number,
            condition=str(error) if error else None,
        )

    return before_sleep


async def poll_until(
    operation: Callable[[], Awaitable[OperationResult]],
    is_converged: Callable[[OperationResult], RetryDecision],
    *,
    timeout: float = DEFAULT_TIMEOUT,
    interval: float = DEFAULT_INTERVAL,
    resource: str = "",
    cancel_event: asyncio.Event | None = None,
    sleep: Callable[[float], Awaitable[Any]] | None = None,
) -> Proceed:
    """Invoke ``operation`` until ``is_converged`` accepts its result.

    The first call happens immediately, then every ``interval`` seconds until
    ``timeout`` has elapsed. Each call is bounded by the time left in the
    budget. A ``FatalFailure`` from the predicate is raised at
    once. Setting ``cancel_event`` (or cancelling the awaiting task) aborts the
    poll.

    Raises:
        FatalRemoteError: The predicate reported a non-retryable condition.
        ConvergenceTimeoutError: ``timeout`` elapsed without convergence.
        ConvergenceCancelledError: ``cancel_event`` was set.
    """
    stop = stop_after_delay(timeout)
    if cancel_event is not None:
        stop = stop | stop_when_event_set(cancel_event)  # type: ignore[arg-type]

    retrying = AsyncRetrying(
        stop=stop,
        wait=wait_fixed(interval),
        retry=retry_if_exception_type(RetryableRemoteError),
        before_sleep=_log_retry(resource),
        **({"sleep": sleep} if sleep is not None else {}),
    )

    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout

    decision: RetryDecision | None = None
    try:
        async for attempt in retrying:
            with attempt:
                # A single slow read must not outlive the budget.
                remaining = max(deadline - loop.time(), 0.0)
                try:
                    result = await asyncio.wait_for(operation(), remaining)
                except asyncio.TimeoutError as exc:
                    raise ConvergenceTimeoutError(
                        f"{resource} did not converge within {timeout}s: attempt exceeded the time budget",
                        {
                            "resource": resource,
                            "attempts": attempt.retry_state.attempt_number,
                            "last_condition": "attempt exceeded the time budget",
                            "timeout": timeout,
                        },
                    ) from exc
                decision = is_converged(result)
                if isinstance(decision, FatalFailure):
                    raise decision.error
                if isinstance(decision, RetryableFailure):
                    raise decision.error
    except RetryError as exc:
        last_error = exc.last_attempt.exception()
        condition = str(last_error) if last_error else "unknown"
        details = {
            "resource": resource,
            "attempts": exc.last_attempt.attempt_number,
            "last_condition": condition,
        }
        if cancel_event is not None and cancel_event.is_set():
            raise ConvergenceCancelledError(
                f"convergence poll for {resource} was cancelled", details
            ) from last_error
        details["timeout"] = timeout
        raise ConvergenceTimeoutError(
            f"{resource} did not converge within {timeout}s: {condition}", details
        ) from last_error

    assert isinstance(decision, Proceed)
    logger.debug("convergence_reached", resource=resource)
    return decision
