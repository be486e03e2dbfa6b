"""Rate-limit retry for GitHub API calls.

A call that fails with GitHubRateLimitError is suspended until the quota
reset time and then repeated with identical arguments.
"""

import logging
import time
from typing import Callable, Optional, TypeVar

from release_pipeline.remote.exceptions import GitHubRateLimitError

logger = logging.getLogger("release_pipeline.retry")

T = TypeVar("T")


def seconds_until_reset(reset_epoch: int, now: float) -> float:
    """Seconds left before the quota resets, never negative."""
    return max(0.0, reset_epoch - now)


def retry_on_rate_limit(
    func: Callable[..., T],
    *args,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.time,
    max_retries: Optional[int] = None,
    **kwargs
) -> T:
    """
    Call func, waiting out rate limits and retrying.

    Args:
        func: Callable to invoke
        *args: Positional arguments for func
        sleep: Blocking sleep function
        clock: Returns the current UNIX time
        max_retries: Retry bound (None retries until the call gets through)
        **kwargs: Keyword arguments for func

    Returns:
        Whatever func returns

    Raises:
        GitHubRateLimitError: If max_retries is exceeded
    """
    attempts = 0
    while True:
        try:
            return func(*args, **kwargs)
        except GitHubRateLimitError as e:
            if max_retries is not None and attempts >= max_retries:
                logger.error(f"Rate limit retries exhausted after {attempts} attempts")
                raise
            attempts += 1
            wait = seconds_until_reset(e.reset_epoch, clock())
            logger.warning(f"Rate limit exceeded. Waiting for {wait:.0f} seconds...")
            sleep(wait)

