"""Retry policies for re-reading a policy source after it was rejected.

A loader is a zero-argument callable that reads one source from scratch.
When it raises :class:`SourceError` the policy decides whether to try again:
:class:`RetryPolicy` gives up after a fixed number of attempts with an
exponential delay in between, :class:`InteractiveRetryPolicy` asks an
operator to fix the file and press enter, without limit.
"""
from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeVar

import structlog

from rbacops.shared.exceptions import RetryExhaustedError, SourceError

logger = structlog.get_logger(__name__)

T = TypeVar("T")

EDIT_PROMPT = "Edit the file and press <enter> to continue."


@dataclass
class RetryPolicy:
    """Bounded retry with exponential backoff.

    Attributes:
        max_attempts: Total attempts, including the first; ``None`` retries
            forever.
        delay_seconds: Pause before the second attempt.
        backoff_multiplier: Factor applied to the pause after each failure.
        max_delay_seconds: Upper bound for the pause.
        sleep: Injected for tests.
    """

    max_attempts: int | None = 3
    delay_seconds: float = 0.0
    backoff_multiplier: float = 2.0
    max_delay_seconds: float = 60.0
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def get_delay(self, attempt: int) -> float:
        """Pause before retrying after failed attempt number *attempt* (1-based)."""
        delay = self.delay_seconds * (self.backoff_multiplier ** (attempt - 1))
        return min(delay, self.max_delay_seconds)

    def should_retry(self, error: SourceError, attempt: int) -> bool:
        return self.max_attempts is None or attempt < self.max_attempts

    def before_retry(self, operation: str, error: SourceError, attempt: int) -> None:
        """Hook run between a failed attempt and the next one."""
        delay = self.get_delay(attempt)
        if delay > 0:
            self.sleep(delay)

    def run(self, operation: str, loader: Callable[[], T]) -> T:
        """Call *loader* until it succeeds or the policy gives up.

        Raises:
            RetryExhaustedError: When :meth:`should_retry` declines.
        """
        attempt = 1
        while True:
            try:
                return loader()
            except SourceError as exc:
                logger.warning(
                    "source_load_failed",
                    operation=operation,
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    error_code=exc.error_code,
                    error=exc.message,
                )
                if not self.should_retry(exc, attempt):
                    raise RetryExhaustedError(operation, attempt, exc) from exc
                self.before_retry(operation, exc, attempt)
                attempt += 1


@dataclass
class InteractiveRetryPolicy(RetryPolicy):
    """Unbounded retry that waits for an operator to fix the source."""

    max_attempts: int | None = None
    output: Callable[[str], None] = field(default=print, repr=False)
    prompt: Callable[[str], str] = field(default=input, repr=False)

    def before_retry(self, operation: str, error: SourceError, attempt: int) -> None:
        self.output(error.message)
        try:
            self.prompt(EDIT_PROMPT)
        except EOFError:
            # No operator left to edit the file; stop retrying.
            raise RetryExhaustedError(operation, attempt, error) from error


__all__ = ["EDIT_PROMPT", "InteractiveRetryPolicy", "RetryPolicy"]
