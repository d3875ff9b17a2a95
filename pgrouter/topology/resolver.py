"""Resolve a connection intent against a topology source.

Ordering policy for discovered topologies
-----------------------------------------
- ``READ_WRITE``: the leader only.
- ``READ_ONLY``: every replica in reported order; when no replica is
  reported, the leader.
- ``BEST_EFFORT``: the leader first, then every replica, so the session
  lands on the writable node when it is reachable and on a replica
  otherwise.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..exceptions import DiscoveryUnavailableError, NoCandidatesError
from ..logger import get_logger
from .enums import ConnectionIntent, NodeRole
from .membership import MembershipClient
from .models import DEFAULT_PORT, CandidateList, Discovered, Endpoint, ExplicitHostList, StaticEndpoint

if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger

    from .models import TopologySource

logger: BoundLogger = get_logger(__name__)


class EndpointResolver:
    """Turn ``(intent, topology source)`` into an ordered ``CandidateList``."""

    __slots__ = ("_default_port", "_membership")

    def __init__(self, membership: MembershipClient | None = None, *, default_port: int = DEFAULT_PORT) -> None:
        self._membership = membership or MembershipClient(default_port=default_port)
        self._default_port = default_port

    async def aresolve(self, intent: ConnectionIntent, source: TopologySource) -> CandidateList:
        """Resolve candidates for ``intent``.

        Raises
        ------
        DiscoveryUnavailableError
            If the topology is discovered and no membership endpoint answered.
        NoCandidatesError
            If resolution produced no endpoint and no fallback applies.
        InvalidEndpointError
            If an explicit host entry cannot be parsed.
        """
        match source:
            case StaticEndpoint():
                endpoints: tuple[Endpoint, ...] = (source.endpoint,)
            case ExplicitHostList():
                endpoints = tuple(Endpoint.parse(entry, self._default_port) for entry in source.entries)
            case Discovered():
                endpoints = await self._aresolve_discovered(intent, source)
            case _:
                raise TypeError(f"Unsupported topology source: {type(source).__name__}")

        if not endpoints:
            raise NoCandidatesError(f"no {intent.name.lower().replace('_', '-')} candidates in {source.kind} topology")

        candidates = CandidateList(endpoints=endpoints, session_attrs=intent.session_attrs)
        logger.info(
            "Resolved connection candidates",
            intent=str(intent),
            topology=source.kind,
            candidates=[endpoint.netloc for endpoint in candidates.endpoints],
            target_session_attrs=str(candidates.session_attrs),
        )
        return candidates

    async def _aresolve_discovered(self, intent: ConnectionIntent, source: Discovered) -> tuple[Endpoint, ...]:
        apis = source.api_endpoints

        if intent is ConnectionIntent.READ_WRITE:
            leaders = await self._membership.adiscover(apis, NodeRole.LEADER)
            return tuple(node.address for node in leaders)

        if intent is ConnectionIntent.READ_ONLY:
            replicas = await self._membership.adiscover(apis, NodeRole.REPLICA)
            if replicas:
                return tuple(node.address for node in replicas)
            logger.warning("No replicas reported, falling back to the leader")
            leaders = await self._membership.adiscover(apis, NodeRole.LEADER)
            return tuple(node.address for node in leaders)

        leaders = await self._membership.adiscover(apis, NodeRole.LEADER)
        try:
            replicas = await self._membership.adiscover(apis, NodeRole.REPLICA)
        except DiscoveryUnavailableError:
            if not leaders:
                raise
            logger.warning("Replica discovery failed, continuing with the leader only")
            replicas = ()
        return tuple(node.address for node in (*leaders, *replicas))
