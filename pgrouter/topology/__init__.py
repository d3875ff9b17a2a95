"""Cluster topology: intents, membership discovery and candidate resolution."""

from __future__ import annotations

from .enums import ConnectionIntent, NodeRole, TargetSessionAttrs
from .membership import MembershipClient
from .models import (
    DEFAULT_PORT,
    CandidateList,
    ClusterNode,
    Discovered,
    Endpoint,
    ExplicitHostList,
    StaticEndpoint,
    TopologySource,
)
from .resolver import EndpointResolver

__all__ = [
    "DEFAULT_PORT",
    "CandidateList",
    "ClusterNode",
    "ConnectionIntent",
    "Discovered",
    "Endpoint",
    "EndpointResolver",
    "ExplicitHostList",
    "MembershipClient",
    "NodeRole",
    "StaticEndpoint",
    "TargetSessionAttrs",
    "TopologySource",
]
