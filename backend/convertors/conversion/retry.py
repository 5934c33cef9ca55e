"""Bounded retry policy shared by file deletion and tool start-up."""
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Tuple, Type, TypeVar

logger = logging.getLogger("converter.retry")

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    delay: float = 1.0
    retry_on: Tuple[Type[BaseException], ...] = (PermissionError,)
    never_retry: Tuple[Type[BaseException], ...] = ()
    backoff: Callable[[int, float], float] = field(default=lambda attempt, delay: delay)
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def should_retry(self, exc: BaseException) -> bool:
        return isinstance(exc, self.retry_on) and not isinstance(exc, self.never_retry)

    def call(self, fn: Callable[[], T], description: str = "operation") -> T:
        """Run fn, retrying retryable errors. The last error propagates once attempts run out."""
        attempt = 0
        while True:
            attempt += 1
            try:
                return fn()
            except Exception as e:
                if not self.should_retry(e) or attempt >= self.max_attempts:
                    raise
                wait = self.backoff(attempt, self.delay)
                logger.warning(
                    "%s failed on attempt %s/%s (%s); retrying in %.2fs",
                    description, attempt, self.max_attempts, e, wait,
                )
                self.sleep(wait)


# File deletion: hosts may keep a handle locked briefly after a subprocess exits
DELETE_RETRY = RetryPolicy(max_attempts=3, delay=1.0, retry_on=(PermissionError,))
