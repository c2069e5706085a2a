"""Unit tests for the rate limit retry decorator."""

from typing import Callable
from unittest.mock import MagicMock, patch

import pytest
from githubkit.exception import RequestFailed

from pivot_sync.utils.retry import is_rate_limit_failure, retry_on_rate_limit


@pytest.mark.parametrize(
    "status_code, message, headers, expected",
    [
        pytest.param(429, "Too many requests", {}, True, id="429"),
        pytest.param(403, "Forbidden", {"x-ratelimit-remaining": "0"}, True, id="403 with exhausted quota"),
        pytest.param(403, "API rate limit exceeded", {}, True, id="403 with rate limit message"),
        pytest.param(403, "Resource not accessible", {}, False, id="plain 403"),
        pytest.param(500, "Server error", {}, False, id="500"),
    ],
)
def test_is_rate_limit_failure(
    status_code: int,
    message: str,
    headers: dict[str, str],
    expected: bool,
    make_request_failed: Callable[..., Exception],
) -> None:
    """Rate limit rejections are recognized from status, headers, and message."""
    exc = make_request_failed(status_code, message, headers=headers)

    assert is_rate_limit_failure(exc) is expected  # type: ignore[arg-type]


def test_retry_waits_for_retry_after_then_succeeds(make_request_failed: Callable[..., Exception]) -> None:
    """A rate limited call is retried after the advertised delay."""
    func = MagicMock(side_effect=[make_request_failed(429, "slow down", headers={"retry-after": "3"}), "done"])
    func.__name__ = "list_issues"

    with patch("pivot_sync.utils.retry.time.sleep") as sleep:
        assert retry_on_rate_limit()(func)() == "done"

    sleep.assert_called_once_with(3.0)
    assert func.call_count == 2


def test_retry_caps_wait_and_gives_up(make_request_failed: Callable[..., Exception]) -> None:
    """Waits are capped and the last rate limit failure propagates."""
    func = MagicMock(side_effect=make_request_failed(429, "slow down", headers={"retry-after": "900"}))
    func.__name__ = "list_issues"

    with patch("pivot_sync.utils.retry.time.sleep") as sleep, pytest.raises(RequestFailed):
        retry_on_rate_limit(max_retries=2, max_delay=60.0)(func)()

    assert func.call_count == 3
    assert [call.args[0] for call in sleep.call_args_list] == [60.0, 60.0]


def test_retry_does_not_retry_other_failures(make_request_failed: Callable[..., Exception]) -> None:
    """Failures other than rate limits propagate immediately."""
    func = MagicMock(side_effect=make_request_failed(404, "Not Found"))
    func.__name__ = "get_repository"

    with patch("pivot_sync.utils.retry.time.sleep") as sleep, pytest.raises(RequestFailed):
        retry_on_rate_limit()(func)()

    assert func.call_count == 1
    sleep.assert_not_called()
