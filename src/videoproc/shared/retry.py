"""Retry utilities with exponential backoff."""

import time
import random
from typing import Callable, Optional, TypeVar, Type, Tuple

from videoproc.domain.exceptions import TransientError
from videoproc.shared.logging import get_logger

T = TypeVar('T')

logger = get_logger(__name__)


class RetryStrategy:
    """
    Retries a callable when it raises one of ``retry_on``.

    Anything else propagates on the first attempt, so terminal failures
    such as a missing object are never retried.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        backoff_seconds: float = 1.0,
        exponential: bool = True,
        jitter: bool = True,
        max_backoff: float = 60.0,
        retry_on: Tuple[Type[Exception], ...] = (TransientError,),
        sleep: Callable[[float], None] = time.sleep
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.exponential = exponential
        self.jitter = jitter
        self.max_backoff = max_backoff
        self.retry_on = retry_on
        self._sleep = sleep

    def execute(
        self,
        func: Callable[..., T],
        *args,
        on_retry: Optional[Callable[[int, Exception], None]] = None,
        **kwargs
    ) -> T:
        """
        Execute a function with retry logic.

        Args:
            func: Function to execute
            *args: Positional arguments for the function
            on_retry: Called with the attempt number and error before each retry
            **kwargs: Keyword arguments for the function

        Returns:
            Function result

        Raises:
            The last retryable exception once attempts run out, or the
            first non-retryable one immediately
        """
        name = getattr(func, '__name__', repr(func))

        for attempt in range(1, self.max_attempts + 1):
            try:
                return func(*args, **kwargs)
            except self.retry_on as e:
                if attempt == self.max_attempts:
                    logger.error(f"{name} failed after {attempt} attempt(s): {e}")
                    raise

                wait_time = self._calculate_backoff(attempt)
                logger.warning(
                    f"{name} attempt {attempt}/{self.max_attempts} failed: {e}; "
                    f"retrying in {wait_time:.2f}s"
                )
                if on_retry is not None:
                    on_retry(attempt, e)
                self._sleep(wait_time)

        raise RuntimeError("Retry logic failed unexpectedly")

    def _calculate_backoff(self, attempt: int) -> float:
        """Calculate backoff time for given attempt number."""
        if self.exponential:
            wait_time = self.backoff_seconds * (2 ** (attempt - 1))
        else:
            wait_time = self.backoff_seconds * attempt

        wait_time = min(wait_time, self.max_backoff)

        if self.jitter:
            wait_time = wait_time * (0.5 + random.random())

        return wait_time
