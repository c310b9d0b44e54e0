from enum import Enum
from typing import Callable, TypeVar

from pydantic import Field
from pydantic.dataclasses import dataclass

from .context import UploadContext
from .logger import logger
from .metrics import PART_ATTEMPTS, PART_RETRIES

T = TypeVar("T")


class BackoffStrategy(Enum):
    NONE = "none"
    CONSTANT = "constant"
    EXPONENTIAL = "exponential"


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = Field(default=3, ge=1)
    backoff: BackoffStrategy = BackoffStrategy.NONE
    backoff_sec: float = Field(default=0.0, ge=0)
    max_backoff_sec: float = Field(default=30.0, ge=0)

    def delay_before(self, attempt: int) -> float:
        """Delay in seconds to wait before the given (1-based) retry attempt."""
        if self.backoff is BackoffStrategy.NONE or attempt <= 1:
            return 0.0
        if self.backoff is BackoffStrategy.CONSTANT:
            return self.backoff_sec
        return min(self.backoff_sec * 2 ** (attempt - 2), self.max_backoff_sec)


def run_with_retry(
    operation: Callable[[], T],
    policy: RetryPolicy,
    ctx: UploadContext,
    extra: dict | None = None,
) -> T:
    """
    Run `operation` until it succeeds or the attempt budget is spent.

    Every attempt repeats the identical request, so it is only safe for
    operations the store treats as overwrites (part uploads). The exception
    of the final attempt is re-raised unchanged.
    """
    extra = extra or {}
    for attempt in range(1, policy.max_attempts + 1):
        ctx.wait(policy.delay_before(attempt))
        PART_ATTEMPTS.inc()
        try:
            return operation()
        except Exception as exception:  # pylint: disable=broad-exception-caught
            if attempt == policy.max_attempts:
                logger.exception(
                    "Failed after %d attempts",
                    policy.max_attempts,
                    extra=extra,
                )
                raise exception
            PART_RETRIES.inc()
            logger.warning(
                "Attempt %d/%d failed, retrying...",
                attempt,
                policy.max_attempts,
                extra={**extra, "error": str(exception)},
            )
    raise NotImplementedError("This should never be reached")
