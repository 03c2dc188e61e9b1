"""Global pytest configuration and fake upstream transports."""

from __future__ import annotations

import json
import pathlib
import sys
import threading
from typing import Any, Dict, List, Optional, Tuple

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
import requests

from ideagate.pipeline import IdeaGateway
from ideagate.upstream import UpstreamInvoker


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers used throughout the suite."""

    config.addinivalue_line(
        "markers",
        "requires_real_tcp: mark test as exercising real TCP sockets",
    )


class FakeTransport:
    """Stand-in for :class:`ideagate.upstream.HttpTransport`."""

    def __init__(
        self,
        status: int = 200,
        body: Any = "",
        *,
        error: Optional[BaseException] = None,
        hang: bool = False,
    ) -> None:
        self.status = status
        self.body = body if isinstance(body, str) else json.dumps(body)
        self.error = error
        self.hang = hang
        self.calls: List[Dict[str, Any]] = []
        self.closed = threading.Event()

    def send(self, endpoint: str, body: Any, *, headers: Dict[str, str], timeout: float) -> Tuple[int, str]:
        self.calls.append({"endpoint": endpoint, "body": body, "headers": headers, "timeout": timeout})
        if self.hang:
            # never answers on its own; only closing the transport releases it
            self.closed.wait(timeout=10)
            raise requests.ConnectionError("connection closed")
        if self.error is not None:
            raise self.error
        return self.status, self.body

    def close(self) -> None:
        self.closed.set()


@pytest.fixture
def fake_upstream():
    """Return a builder producing ``(transport, invoker)`` pairs."""

    def _build(status: int = 200, body: Any = "", **kwargs: Any) -> Tuple[FakeTransport, UpstreamInvoker]:
        transport = FakeTransport(status, body, **kwargs)
        return transport, UpstreamInvoker(transport_factory=lambda: transport)

    return _build


@pytest.fixture
def gateway_for(fake_upstream, tmp_path):
    """Return a builder producing ``(transport, gateway)`` pairs logging to tmp_path."""

    def _build(status: int = 200, body: Any = "", **kwargs: Any) -> Tuple[FakeTransport, IdeaGateway]:
        transport, invoker = fake_upstream(status, body, **kwargs)
        gateway = IdeaGateway(invoker=invoker, log_path=str(tmp_path / "events.jsonl"))
        return transport, gateway

    return _build
