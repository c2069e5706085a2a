"""Retry decorator for handling GitHub API rate limits.

This module provides a decorator that retries blocking GitHub API calls when the
tracker reports a rate limit, respecting the rate limit headers and falling back
to exponential backoff.
"""

import functools
import time
from typing import Any, Callable, TypeVar

import structlog
from githubkit.exception import PrimaryRateLimitExceeded, RequestFailed, SecondaryRateLimitExceeded

logger = structlog.get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def _wait_time_from_headers(exc: RequestFailed, default: float, function_name: str) -> float:
    """Derive a wait time from the retry-after or x-ratelimit-reset response headers."""
    retry_after = exc.response.headers.get("retry-after")
    if retry_after:
        try:
            return float(retry_after)
        except ValueError:
            logger.warning("Invalid retry-after header value", retry_after=retry_after, function=function_name)
            return default

    rate_limit_reset = exc.response.headers.get("x-ratelimit-reset")
    if rate_limit_reset:
        try:
            reset_timestamp = int(rate_limit_reset)
        except ValueError:
            logger.warning("Invalid x-ratelimit-reset header value", rate_limit_reset=rate_limit_reset, function=function_name)
            return default
        current_timestamp = int(time.time())
        if reset_timestamp > current_timestamp:
            return float(reset_timestamp - current_timestamp + 1)
    return default


def response_message(exc: RequestFailed) -> str:
    """Return the error message from the response body, falling back to the exception text."""
    try:
        error_data = exc.response.json()
    except ValueError:
        return str(exc)
    if isinstance(error_data, dict) and error_data.get("message"):
        return str(error_data["message"])
    return str(exc)


def is_rate_limit_failure(exc: RequestFailed) -> bool:
    """Return True when a failed request was rejected because of a rate limit."""
    if isinstance(exc, (PrimaryRateLimitExceeded, SecondaryRateLimitExceeded)):
        return True
    status_code = exc.response.status_code
    if status_code == 429:
        return True
    if status_code == 403:
        if exc.response.headers.get("x-ratelimit-remaining") == "0":
            return True
        return "rate limit" in response_message(exc).lower()
    return False


def retry_on_rate_limit(
    max_retries: int = 5,
    initial_delay: float = 10.0,
    max_delay: float = 300.0,
    exponential_base: float = 2.0,
) -> Callable[[F], F]:
    """Decorator for retrying blocking functions when they encounter GitHub rate limits.

    Only rate limit rejections are retried. Every other failure propagates
    immediately so that callers can classify it.

    Args:
        max_retries: Maximum number of retry attempts (default: 5)
        initial_delay: Initial delay in seconds between retries (default: 10.0)
        max_delay: Maximum delay in seconds between retries (default: 300.0)
        exponential_base: Base for exponential backoff calculation (default: 2.0)

    Returns:
        Decorated function with retry logic

    Example:
        @retry_on_rate_limit()
        def list_issues(owner: str, repo: str):
            return github.rest.issues.list_for_repo(owner, repo)
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            delay = initial_delay

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except RequestFailed as e:
                    if not is_rate_limit_failure(e):
                        raise

                    if attempt == max_retries:
                        logger.error(
                            "Max retries reached for GitHub rate limit error",
                            function=func.__name__,
                            attempt=attempt + 1,
                            status_code=e.response.status_code,
                            error_type=type(e).__name__,
                        )
                        raise

                    retry_after = getattr(e, "retry_after", None)
                    if retry_after:
                        wait_time = retry_after.total_seconds()
                    else:
                        wait_time = _wait_time_from_headers(e, delay, func.__name__)
                    wait_time = min(wait_time, max_delay)

                    logger.warning(
                        f"GitHub rate limit exceeded, waiting {wait_time} seconds",
                        function=func.__name__,
                        attempt=attempt + 1,
                        max_retries=max_retries,
                        wait_time=wait_time,
                        status_code=e.response.status_code,
                    )
                    time.sleep(wait_time)

                    delay = min(delay * exponential_base, max_delay)

            raise RuntimeError(f"Retry loop for {func.__name__} exited without a result")

        return wrapper  # type: ignore

    return decorator
