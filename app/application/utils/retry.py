from __future__ import annotations

import logging
import time
from typing import Callable, TypeVar


logger = logging.getLogger(__name__)

R = TypeVar("R")


def call_with_backoff(
    func: Callable[[], R],
    *,
    retry_on: type[Exception] | tuple[type[Exception], ...],
    max_attempts: int = 3,
    backoff_seconds: float = 0.5,
    max_backoff_seconds: float = 4.0,
    sleep: Callable[[float], None] = time.sleep,
    operation: str = "operation",
) -> R:
    """
    Call func, retrying with capped exponential backoff while it raises `retry_on`.

    Any other exception propagates immediately. The last `retry_on` exception
    is re-raised once attempts are exhausted.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return func()
        except retry_on as e:
            if attempt >= max_attempts:
                logger.error(
                    "All %s attempts failed for %s",
                    max_attempts,
                    operation,
                    extra={"attempt": attempt, "error": str(e)},
                )
                raise
            wait_time = min(backoff_seconds * (2 ** (attempt - 1)), max_backoff_seconds)
            logger.warning(
                "Attempt %s/%s failed for %s, retrying in %.2fs",
                attempt,
                max_attempts,
                operation,
                wait_time,
                extra={"attempt": attempt, "error": str(e)},
            )
            sleep(wait_time)
