"""Topology-aware PostgreSQL connection router.

Resolve a connection intent (read-write, read-only, best-effort) against a
static proxy endpoint, an explicit host list, or the Patroni membership
service, and open a session with client-side failover and
``target_session_attrs`` enforcement.

Usage
-----
>>> router = ConnectionRouter(RouterSettings.load().to_config())
>>> await router.aconnect(
...     ConnectionIntent.READ_ONLY,
...     router.discovered_source(),
...     Credentials(user="app", password=SecretStr("secret")),
...     "SELECT pg_is_in_recovery()",
... )
"""

from __future__ import annotations

from .config import RouterConfig, RouterSettings
from .credentials import Credentials, PgpassFile, resolve_password
from .exceptions import (
    ConnectFailedError,
    DiscoveryUnavailableError,
    InvalidEndpointError,
    NoCandidatesError,
    RouterError,
    RouterPhase,
    SessionAbortedError,
    StatementFailedError,
)
from .router import ConnectionRouter
from .session import ConnectionDescriptor, SessionRunner, StatementResult, build_descriptor
from .topology import (
    CandidateList,
    ClusterNode,
    ConnectionIntent,
    Discovered,
    Endpoint,
    EndpointResolver,
    ExplicitHostList,
    MembershipClient,
    NodeRole,
    StaticEndpoint,
    TargetSessionAttrs,
)

__version__ = "0.1.0"

__all__ = [
    "CandidateList",
    "ClusterNode",
    "ConnectFailedError",
    "ConnectionDescriptor",
    "ConnectionIntent",
    "ConnectionRouter",
    "Credentials",
    "Discovered",
    "DiscoveryUnavailableError",
    "Endpoint",
    "EndpointResolver",
    "ExplicitHostList",
    "InvalidEndpointError",
    "MembershipClient",
    "NoCandidatesError",
    "NodeRole",
    "PgpassFile",
    "RouterConfig",
    "RouterError",
    "RouterPhase",
    "RouterSettings",
    "SessionAbortedError",
    "SessionRunner",
    "StatementFailedError",
    "StatementResult",
    "StaticEndpoint",
    "TargetSessionAttrs",
    "build_descriptor",
    "resolve_password",
]
