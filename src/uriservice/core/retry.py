"""Retry strategies and the retry policy wrapped around repository operations.

Every public repository operation runs under a ``RetryPolicy``: a strategy
that bounds the number of attempts and a classifier that decides which
errors are worth another attempt. The default policy retries relational
disconnects immediately, up to three attempts in total, and lets every other
error through on the first attempt.

Example:
    >>> from uriservice.core.retry import RetryPolicy, with_retry
    >>>
    >>> class Repo:
    ...     retry_policy = RetryPolicy()
    ...
    ...     @with_retry
    ...     def find(self, key):
    ...         ...
"""

from __future__ import annotations

import functools
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

from uriservice.core.errors import is_transient_disconnect
from uriservice.core.logging import get_logger

T = TypeVar("T")

logger = get_logger(__name__)


class RetryStrategy(ABC):
    """Abstract base for retry strategies."""

    @abstractmethod
    def next_delay(self, attempt: int) -> float:
        """Calculate delay before next retry attempt.

        Args:
            attempt: Zero-based attempt number (0 = first retry)

        Returns:
            Delay in seconds before next attempt
        """
        ...

    @abstractmethod
    def should_retry(self, attempt: int) -> bool:
        """Determine if another attempt is allowed after *attempt* attempts."""
        ...


@dataclass
class ConstantBackoff(RetryStrategy):
    """Constant delay between attempts.

    ``max_attempts`` counts the first call, so ``max_attempts=3`` means one
    call plus at most two retries.
    """

    max_attempts: int = 3
    delay: float = 0.0

    def next_delay(self, attempt: int) -> float:
        """Return constant delay."""
        return self.delay

    def should_retry(self, attempt: int) -> bool:
        """Check if retry should be attempted."""
        return attempt < self.max_attempts


@dataclass
class NoRetry(RetryStrategy):
    """No retry - fail immediately."""

    def next_delay(self, attempt: int) -> float:
        """No delay needed."""
        return 0.0

    def should_retry(self, attempt: int) -> bool:
        """Never retry."""
        return False


@dataclass
class RetryPolicy:
    """A strategy plus an error classifier.

    Attributes:
        strategy: Bounds attempts and delays
        classifier: Returns True for errors worth another attempt
        on_retry: Callback called before each retry (attempt, error, delay)
    """

    strategy: RetryStrategy = field(default_factory=ConstantBackoff)
    classifier: Callable[[BaseException], bool] = is_transient_disconnect
    on_retry: Callable[[int, Exception, float], None] | None = None

    @classmethod
    def immediate(cls, max_attempts: int = 3) -> RetryPolicy:
        """Retry transient disconnects immediately, *max_attempts* calls in total."""
        return cls(strategy=ConstantBackoff(max_attempts=max_attempts, delay=0.0))

    def run(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Execute *func*, retrying only errors accepted by the classifier.

        Raises:
            The last error once the strategy refuses another attempt, or the
            first error the classifier rejects.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                return func(*args, **kwargs)
            except Exception as e:
                if not self.classifier(e) or not self.strategy.should_retry(attempt):
                    raise

                delay = self.strategy.next_delay(attempt - 1)
                logger.warning(
                    "retrying_operation",
                    operation=getattr(func, "__name__", repr(func)),
                    attempt=attempt,
                    error=str(e),
                    delay=delay,
                )
                if self.on_retry:
                    self.on_retry(attempt, e, delay)
                if delay > 0:
                    time.sleep(delay)


def with_retry(method: Callable[..., T]) -> Callable[..., T]:
    """Method decorator running the call under ``self.retry_policy``.

    Example:
        >>> class VocabularyRegistry:
        ...     def __init__(self, session_factory, retry_policy):
        ...         self.retry_policy = retry_policy
        ...
        ...     @with_retry
        ...     def find(self, string_key): ...
    """

    @functools.wraps(method)
    def wrapper(self: Any, *args: Any, **kwargs: Any) -> T:
        return self.retry_policy.run(method, self, *args, **kwargs)

    return wrapper


__all__ = [
    "RetryStrategy",
    "ConstantBackoff",
    "NoRetry",
    "RetryPolicy",
    "with_retry",
]
