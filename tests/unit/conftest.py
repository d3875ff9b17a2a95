"""Shared fixtures for unit tests.

Provides:
- membership_service: in-memory Patroni REST stand-in served through
  ``httpx.MockTransport``
- fake_connection / connector: asyncpg doubles for the session runner
- router_config: a `RouterConfig` with fixed endpoints
"""

from __future__ import annotations

from types import SimpleNamespace
from typing import TYPE_CHECKING, Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from pgrouter.config import RouterConfig
from pgrouter.topology.models import Endpoint

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable


# =============================================================================
# MEMBERSHIP SERVICE
# =============================================================================


class FakeMembershipService:
    """Routes ``GET http://host:port/`` to canned responses.

    Endpoints without a canned response behave as unreachable.
    """

    def __init__(self) -> None:
        self.responses: dict[str, Callable[[], httpx.Response] | Exception] = {}
        self.calls: list[str] = []

    def respond(self, netloc: str, *, status: int = 200, json: Any = None, content: bytes | None = None) -> None:
        # fresh response per request
        if content is not None:
            self.responses[netloc] = lambda: httpx.Response(status, content=content)
        else:
            self.responses[netloc] = lambda: httpx.Response(status, json=json)

    def members(self, netloc: str, *members: tuple[str, str]) -> None:
        self.respond(netloc, json={"members": [{"name": name, "role": role} for name, role in members]})

    def fail(self, netloc: str, error: Exception) -> None:
        self.responses[netloc] = error

    def _handle(self, request: httpx.Request) -> httpx.Response:
        netloc = f"{request.url.host}:{request.url.port}"
        self.calls.append(netloc)
        outcome = self.responses.get(netloc)
        if outcome is None:
            raise httpx.ConnectError("connection refused", request=request)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome()

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)


@pytest.fixture
def membership_service() -> FakeMembershipService:
    return FakeMembershipService()


@pytest.fixture
def api_endpoints() -> tuple[Endpoint, ...]:
    return (
        Endpoint(host="node1", port=8008),
        Endpoint(host="node2", port=8008),
        Endpoint(host="node3", port=8008),
    )


# =============================================================================
# ASYNCPG DOUBLES
# =============================================================================


def make_prepared(columns: Iterable[str], rows: Iterable[Iterable[Any]], status: str) -> MagicMock:
    """Create a prepared-statement double returning dict records."""
    column_names = tuple(columns)
    prepared = MagicMock()
    prepared.fetch = AsyncMock(return_value=[dict(zip(column_names, row, strict=True)) for row in rows])
    prepared.get_attributes.return_value = [SimpleNamespace(name=name) for name in column_names]
    prepared.get_statusmsg.return_value = status
    return prepared


@pytest.fixture
def fake_connection() -> MagicMock:
    """Create an asyncpg connection double answering ``SELECT 1``."""
    conn = MagicMock()
    conn.prepare = AsyncMock(return_value=make_prepared(["?column?"], [[1]], "SELECT 1"))
    conn.execute = AsyncMock(return_value="COMMIT")
    conn.close = AsyncMock()
    return conn


@pytest.fixture
def connector(fake_connection: MagicMock) -> AsyncMock:
    """Create an ``asyncpg.connect`` double that always succeeds."""
    return AsyncMock(return_value=fake_connection)


def scripted_input(lines: Iterable[str | BaseException]) -> Callable[[str], str]:
    """Return a line reader replaying ``lines`` then signalling end of input."""
    remaining = iter(lines)
    prompts: list[str] = []

    def read_line(prompt: str) -> str:
        prompts.append(prompt)
        try:
            item = next(remaining)
        except StopIteration:
            raise EOFError from None
        if isinstance(item, BaseException):
            raise item
        return item

    read_line.prompts = prompts  # type: ignore[attr-defined]
    return read_line


# =============================================================================
# CONFIG
# =============================================================================


@pytest.fixture
def router_config() -> RouterConfig:
    return RouterConfig(
        database="orders",
        rw_endpoint=Endpoint(host="haproxy", port=5000),
        ro_endpoint=Endpoint(host="haproxy", port=5001),
        membership_endpoints=(Endpoint(host="node1", port=8008), Endpoint(host="node2", port=8008)),
        membership_timeout=1.0,
        connect_timeout=2.0,
    )


@pytest.fixture
def prepared_factory() -> Callable[..., MagicMock]:
    return make_prepared


@pytest.fixture
def line_reader() -> Callable[[Iterable[str | BaseException]], Callable[[str], str]]:
    return scripted_input
