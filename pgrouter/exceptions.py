"""Error taxonomy for the connection router.

Every error carries the phase that failed so the front-end can report
``"<phase> failed: <detail>"`` without inspecting the exception type.
None of these messages may contain credentials.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .topology.models import Endpoint


class RouterPhase(StrEnum):
    DISCOVERY = "discovery"
    RESOLUTION = "resolution"
    CONNECT = "connect"
    STATEMENT = "statement"
    SESSION = "session"


class RouterError(Exception):
    """Base class for all router failures."""

    phase: RouterPhase = RouterPhase.SESSION

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail

    def __str__(self) -> str:
        return f"{self.phase} failed: {self.detail}"


class DiscoveryUnavailableError(RouterError):
    """No membership endpoint answered with a usable response."""

    phase = RouterPhase.DISCOVERY

    def __init__(self, endpoints: Sequence[Endpoint]) -> None:
        self.endpoints = tuple(endpoints)
        tried = ", ".join(endpoint.netloc for endpoint in self.endpoints) or "<none>"
        super().__init__(f"no membership endpoint reachable (tried {tried})")


class NoCandidatesError(RouterError):
    phase = RouterPhase.RESOLUTION


class InvalidEndpointError(RouterError, ValueError):
    phase = RouterPhase.RESOLUTION


class ConnectFailedError(RouterError):
    """Every candidate was exhausted without an attribute-satisfying session."""

    phase = RouterPhase.CONNECT

    def __init__(self, detail: str, endpoints: Sequence[Endpoint] = ()) -> None:
        super().__init__(detail)
        self.endpoints = tuple(endpoints)


class StatementFailedError(RouterError):
    """The session opened but the statement errored. Never retried."""

    phase = RouterPhase.STATEMENT

    def __init__(self, detail: str, sqlstate: str | None = None) -> None:
        super().__init__(detail)
        self.sqlstate = sqlstate


class SessionAbortedError(RouterError):
    phase = RouterPhase.SESSION
