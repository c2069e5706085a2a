"""Fixtures for unit tests."""

import sqlite3
from typing import Any, Callable, Generator
from unittest.mock import MagicMock

import pytest
import structlog

from pivot_sync.store.connection import MEMORY_STORE, open_store
from pivot_sync.store.migration import initialize_store


@pytest.fixture(autouse=True)
def configure_structlog_for_caplog() -> Generator[None, None, None]:
    """Configure structlog for use with caplog."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    yield
    structlog.reset_defaults()


@pytest.fixture
def store() -> Generator[sqlite3.Connection, None, None]:
    """An initialized in-memory store."""
    conn = open_store(MEMORY_STORE)
    initialize_store(conn)
    yield conn
    conn.close()


def build_request_failed(
    status_code: int,
    message: str = "",
    headers: dict[str, str] | None = None,
    json_body: Any = None,
    exc_type: type[Exception] | None = None,
) -> Exception:
    """Build a githubkit RequestFailed carrying a mocked response."""
    from githubkit.exception import RequestFailed

    exc_type = exc_type or RequestFailed
    response = MagicMock()
    response.status_code = status_code
    response.headers = headers or {}
    response.json.return_value = json_body if json_body is not None else {"message": message}
    exc = exc_type.__new__(exc_type)
    Exception.__init__(exc, message or f"HTTP {status_code}")
    exc.response = response  # type: ignore[attr-defined]
    exc.request = MagicMock()  # type: ignore[attr-defined]
    return exc


@pytest.fixture
def make_request_failed() -> Callable[..., Exception]:
    """Factory for githubkit RequestFailed errors with a mocked response."""
    return build_request_failed
