"""Retry with exponential backoff and jitter.

Wraps any zero-argument coroutine function and re-invokes it while its
failures classify as retryable:

- Attempt 1 runs immediately
- Non-retryable failures and the failure of the last attempt are re-raised
  unchanged (the original exception object, never wrapped)
- Between attempts the engine sleeps ``min(max_delay, base_delay *
  backoff_factor ** (attempt - 1))`` seconds, perturbed by up to +/-10%

Example usage:
    from backstop.execution import RetryOptions, with_retry

    video = await with_retry(
        lambda: client.create_video(request),
        RetryOptions(max_attempts=4, on_retry=lambda n, exc: print(n, exc)),
    )

Testing example:
    sleeps: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    await with_retry(op, RetryOptions(jitter=False), sleep=fake_sleep)
"""

from __future__ import annotations

import asyncio
import inspect
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from backstop.core.config import RetryConfig
from backstop.core.constants import (
    RETRY_DEFAULT_BACKOFF_FACTOR,
    RETRY_DEFAULT_BASE_DELAY_SECONDS,
    RETRY_DEFAULT_MAX_ATTEMPTS,
    RETRY_DEFAULT_MAX_DELAY_SECONDS,
    RETRY_JITTER_RATIO,
)
from backstop.core.errors import ErrorClassifier, TransportError, coerce_transport_error
from backstop.core.errors.classifier import _default_classifier
from backstop.core.logging import get_logger

T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[Any]]
OnRetry = Callable[[int, BaseException], Any]

# Module-level logger
_logger = get_logger("retry")


@dataclass
class RetryOptions:
    """Options for a single ``with_retry`` call.

    Attributes:
        max_attempts: Total attempts, the first call included.
        base_delay: Delay before the second attempt (seconds).
        max_delay: Cap applied to the exponential delay before jitter.
        backoff_factor: Multiplier applied per failed attempt.
        jitter: Perturb each delay uniformly within +/-10%.
        on_retry: Called as ``on_retry(attempt, error)`` after each backoff
            sleep, where ``attempt`` is the number of the attempt that just
            failed. Awaitable results are awaited.
        respect_retry_after: Prefer a TransportError's ``retry_after`` over
            the computed delay.
    """

    max_attempts: int = RETRY_DEFAULT_MAX_ATTEMPTS
    base_delay: float = RETRY_DEFAULT_BASE_DELAY_SECONDS
    max_delay: float = RETRY_DEFAULT_MAX_DELAY_SECONDS
    backoff_factor: float = RETRY_DEFAULT_BACKOFF_FACTOR
    jitter: bool = True
    on_retry: OnRetry | None = None
    respect_retry_after: bool = False

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must be non-negative")

    @classmethod
    def from_config(cls, config: RetryConfig, on_retry: OnRetry | None = None) -> RetryOptions:
        """Build options from a RetryConfig section."""
        return cls(
            max_attempts=config.max_attempts,
            base_delay=config.base_delay,
            max_delay=config.max_delay,
            backoff_factor=config.backoff_factor,
            jitter=config.jitter,
            on_retry=on_retry,
            respect_retry_after=config.respect_retry_after,
        )


def compute_delay(
    attempt: int,
    options: RetryOptions,
    rng: random.Random | None = None,
) -> float:
    """Delay (seconds) to wait after failed attempt number ``attempt``.

    The exponential value is capped at ``max_delay`` first; jitter then moves
    it by a uniform offset within +/-10% of the capped value.
    """
    delay = min(options.max_delay, options.base_delay * options.backoff_factor ** (attempt - 1))
    if options.jitter and delay > 0:
        _rng = rng or random
        delay += _rng.uniform(-1.0, 1.0) * RETRY_JITTER_RATIO * delay
    return max(0.0, delay)


def backoff_schedule(options: RetryOptions) -> list[float]:
    """Un-jittered delays between consecutive attempts (``max_attempts - 1`` values)."""
    base = RetryOptions(
        max_attempts=options.max_attempts,
        base_delay=options.base_delay,
        max_delay=options.max_delay,
        backoff_factor=options.backoff_factor,
        jitter=False,
    )
    return [compute_delay(n, base) for n in range(1, options.max_attempts)]


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    options: RetryOptions | None = None,
    *,
    classifier: ErrorClassifier | None = None,
    sleep: SleepFunc = asyncio.sleep,
    rng: random.Random | None = None,
) -> T:
    """Run ``operation``, retrying transient failures with backoff.

    Args:
        operation: Zero-argument coroutine function. Only wrap operations
            that are safe to repeat.
        options: Retry options; defaults to ``RetryOptions()``.
        classifier: Classifier deciding retryability; defaults to the
            module-level one.
        sleep: Injectable sleep for time control in tests.
        rng: Injectable Random instance for deterministic jitter.

    Returns:
        Result of the first successful attempt.

    Raises:
        Exception: The original error of the last attempt made.
    """
    opts = options or RetryOptions()
    _classifier = classifier or _default_classifier

    attempt = 1
    while True:
        try:
            return await operation()
        except Exception as exc:
            details = _classifier.classify(exc)
            retryable = _classifier.is_retryable(exc, details)
            if not retryable or attempt >= opts.max_attempts:
                _logger.debug(
                    "retry_stopped",
                    attempt=attempt,
                    max_attempts=opts.max_attempts,
                    kind=details.kind.value,
                    retryable=retryable,
                )
                raise

            delay = _retry_after_delay(exc, opts)
            if delay is None:
                delay = compute_delay(attempt, opts, rng)
            _logger.info(
                "retry_scheduled",
                attempt=attempt,
                max_attempts=opts.max_attempts,
                kind=details.kind.value,
                delay_seconds=round(delay, 3),
            )

            await sleep(delay)

            if opts.on_retry is not None:
                result = opts.on_retry(attempt, exc)
                if inspect.isawaitable(result):
                    await result
            attempt += 1


def _retry_after_delay(exc: BaseException, options: RetryOptions) -> float | None:
    if not options.respect_retry_after:
        return None
    transport = coerce_transport_error(exc)
    if isinstance(transport, TransportError) and transport.retry_after is not None:
        return min(options.max_delay, max(0.0, transport.retry_after))
    return None
