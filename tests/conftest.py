"""
Pytest configuration and shared fixtures.
"""

import json

import pytest
from unittest.mock import MagicMock, Mock
from typing import Any, Dict, List, Optional

import requests

from fm_data.core.client import FileMakerClient
from fm_data.core.config import ClientConfig
from fm_data.core.context import OperationContext
from fm_data.core.retry import RetryPolicy


class RecordingContext(OperationContext):
    """OperationContext that records backoff waits instead of sleeping."""

    def __init__(self, timeout: Optional[float] = None, cancel_after_waits: Optional[int] = None) -> None:
        super().__init__(timeout)
        self.waits: List[float] = []
        self.cancel_after_waits = cancel_after_waits

    def wait(self, seconds: float) -> bool:
        if self.done():
            return True
        self.waits.append(seconds)
        if self.cancel_after_waits is not None and len(self.waits) >= self.cancel_after_waits:
            self.cancel()
            return True
        return False


def _envelope(response: Optional[Dict[str, Any]] = None, code: str = "0", message: str = "OK") -> Dict[str, Any]:
    return {"response": response or {}, "messages": [{"code": code, "message": message}]}


def _response(status: int = 200, body: Any = None, content: Optional[bytes] = None) -> Mock:
    r = Mock(spec=requests.Response)
    r.status_code = status
    if content is None:
        content = b"" if body is None else json.dumps(body).encode()
    r.content = content
    return r


@pytest.fixture
def envelope():
    """Factory for Data API envelopes."""
    return _envelope


@pytest.fixture
def make_response():
    """Factory for mock ``requests.Response`` objects."""
    return _response


@pytest.fixture
def ok_response():
    def build(**response: Any) -> Mock:
        return _response(200, _envelope(response))
    return build


@pytest.fixture
def login_response():
    def build(token: str = "tok-123") -> Mock:
        return _response(200, _envelope({"token": token}))
    return build


@pytest.fixture
def fake_http():
    """Mock ``requests.Session``; set ``request.side_effect`` per test."""
    http = MagicMock(spec=requests.Session)
    return http


@pytest.fixture
def no_wait_retry():
    return RetryPolicy(max_attempts=3, min_delay=0.0, max_delay=0.0, jitter=False)


@pytest.fixture
def config(no_wait_retry):
    return ClientConfig(
        base_url="https://fms.test/",
        username="admin",
        password="secret",
        retry=no_wait_retry,
    )


@pytest.fixture
def client(config, fake_http):
    c = FileMakerClient(config, http_session=fake_http)
    yield c
    c.close()


@pytest.fixture
def recording_ctx():
    return RecordingContext()


def calls(fake_http) -> List[Dict[str, Any]]:
    """Keyword arguments of every ``request`` call on ``fake_http``."""
    return [c.kwargs for c in fake_http.request.call_args_list]


@pytest.fixture
def request_calls():
    return calls


@pytest.fixture
def recording_context():
    """The RecordingContext class, for tests that need custom arguments."""
    return RecordingContext
