"""Topology models: endpoints, cluster nodes, topology sources and candidates.

All models are frozen and built fresh per invocation; nothing here is
cached across invocations.
"""

from __future__ import annotations

from typing import Annotated, Literal, Self, TypeAlias

from pydantic import BaseModel, ConfigDict, Field

from ..exceptions import InvalidEndpointError
from .enums import NodeRole, TargetSessionAttrs

DEFAULT_PORT = 5432


def _parse_port(port_text: str, entry: str) -> int:
    if not port_text.isdigit():
        raise InvalidEndpointError(f"invalid port in host entry {entry!r}")
    port = int(port_text)
    if not 1 <= port <= 65535:
        raise InvalidEndpointError(f"port out of range in host entry {entry!r}")
    return port


class Endpoint(BaseModel):
    """A ``(host, port)`` pair."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    host: str = Field(min_length=1)
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)

    @classmethod
    def parse(cls, text: str, default_port: int = DEFAULT_PORT) -> Self:
        """Parse ``host``, ``host:port``, ``[v6]`` or ``[v6]:port``.

        A bare IPv6 address (several colons, no brackets) is taken as a
        host with the default port.

        Raises
        ------
        InvalidEndpointError
            If the entry is empty or the port is not a valid TCP port.
        """
        entry = text.strip()
        if not entry:
            raise InvalidEndpointError("empty host entry")

        port_text: str | None = None
        if entry.startswith("["):
            host, closed, rest = entry[1:].partition("]")
            if not closed:
                raise InvalidEndpointError(f"unterminated IPv6 address in host entry {entry!r}")
            if rest:
                if not rest.startswith(":"):
                    raise InvalidEndpointError(f"unexpected text after IPv6 address in host entry {entry!r}")
                port_text = rest[1:]
        elif entry.count(":") == 1:
            host, port_text = entry.split(":")
        else:
            host = entry

        if not host:
            raise InvalidEndpointError(f"missing host in host entry {entry!r}")

        port = default_port if port_text is None else _parse_port(port_text, entry)
        return cls(host=host, port=port)

    @property
    def netloc(self) -> str:
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"

    def __str__(self) -> str:
        return self.netloc


class ClusterNode(BaseModel):
    """A cluster member with its role, valid for the current invocation only."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    identity: str = Field(min_length=1)
    role: NodeRole
    address: Endpoint


class StaticEndpoint(BaseModel):
    """A single fixed endpoint, typically a proxy port.

    ``fallback`` is the alternate endpoint tried once by a best-effort run
    when the primary endpoint cannot be connected to.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["static"] = "static"
    endpoint: Endpoint
    fallback: Endpoint | None = None


class ExplicitHostList(BaseModel):
    """Caller-supplied ``host[:port]`` entries; order is failover priority only."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["explicit"] = "explicit"
    entries: tuple[str, ...] = Field(default_factory=tuple)

    @classmethod
    def from_csv(cls, text: str) -> Self:
        """Split a comma-separated host list, dropping empty segments.

        Examples
        --------
        >>> ExplicitHostList.from_csv("a, b:5433,").entries
        ('a', 'b:5433')
        """
        return cls(entries=tuple(part.strip() for part in text.split(",") if part.strip()))


class Discovered(BaseModel):
    """Topology obtained from the cluster-membership service."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["discovered"] = "discovered"
    api_endpoints: tuple[Endpoint, ...] = Field(min_length=1)


TopologySource: TypeAlias = Annotated[StaticEndpoint | ExplicitHostList | Discovered, Field(discriminator="kind")]


class CandidateList(BaseModel):
    """Ordered connection candidates plus the session attribute they must satisfy."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    endpoints: tuple[Endpoint, ...] = Field(min_length=1)
    session_attrs: TargetSessionAttrs

    def __len__(self) -> int:
        return len(self.endpoints)

    @property
    def hosts(self) -> tuple[str, ...]:
        return tuple(endpoint.host for endpoint in self.endpoints)
