"""Client for the cluster-membership service (Patroni REST API).

One ``GET /`` per API endpoint, tried in order until one answers with a
JSON object carrying a ``members`` array. An endpoint is never retried.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..exceptions import DiscoveryUnavailableError
from ..logger import get_logger
from .enums import NodeRole
from .models import DEFAULT_PORT, ClusterNode, Endpoint

if TYPE_CHECKING:
    from collections.abc import Sequence

    from structlog.stdlib import BoundLogger

logger: BoundLogger = get_logger(__name__)


class MemberRecord(BaseModel):
    """One entry of the ``members`` array; unknown keys are ignored."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str = Field(min_length=1)
    role: str
    host: str | None = None
    port: int | None = Field(default=None, ge=1, le=65535)


class MembershipResponse(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    members: tuple[MemberRecord, ...]


class MembershipClient:
    """Query the membership service and extract role-tagged nodes.

    Examples
    --------
    >>> client = MembershipClient(timeout=2.0)
    >>> leaders = await client.adiscover(
    ...     [Endpoint(host="pg-node1", port=8008)],
    ...     NodeRole.LEADER,
    ... )
    """

    __slots__ = ("_default_port", "_timeout", "_transport")

    def __init__(
        self,
        *,
        timeout: float = 3.0,
        default_port: int = DEFAULT_PORT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = timeout
        self._default_port = default_port
        self._transport = transport

    def _to_node(self, record: MemberRecord) -> ClusterNode:
        address = Endpoint(
            host=record.host or record.name,
            port=record.port or self._default_port,
        )
        return ClusterNode(identity=record.name, role=NodeRole.from_reported(record.role), address=address)

    async def afetch_members(self, api_endpoints: Sequence[Endpoint]) -> tuple[ClusterNode, ...]:
        """Return the members reported by the first endpoint that answers.

        Parameters
        ----------
        api_endpoints
            Membership service endpoints, tried strictly in order.

        Returns
        -------
        tuple[ClusterNode, ...]
            Every reported member, in reported order.

        Raises
        ------
        DiscoveryUnavailableError
            If every endpoint is unreachable or answers with a malformed body.
        """
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            for endpoint in api_endpoints:
                url = f"http://{endpoint.netloc}/"
                logger.debug("Querying membership service", url=url)
                try:
                    response = await client.get(url)
                    response.raise_for_status()
                    payload = MembershipResponse.model_validate(response.json())
                except (httpx.HTTPError, httpx.InvalidURL) as e:
                    logger.warning("Membership endpoint unavailable", endpoint=endpoint.netloc, error=str(e))
                    continue
                except ValueError as e:
                    # json decode and pydantic ValidationError both land here
                    reason = "invalid members payload" if isinstance(e, ValidationError) else "invalid JSON"
                    logger.warning(
                        "Membership endpoint returned malformed response", endpoint=endpoint.netloc, reason=reason
                    )
                    continue

                nodes = tuple(self._to_node(record) for record in payload.members)
                logger.debug("Membership service answered", endpoint=endpoint.netloc, member_count=len(nodes))
                return nodes

        raise DiscoveryUnavailableError(api_endpoints)

    async def adiscover(self, api_endpoints: Sequence[Endpoint], want_role: NodeRole) -> tuple[ClusterNode, ...]:
        """Return the members holding ``want_role``.

        For ``LEADER`` at most one node is returned (the first reported).
        For ``REPLICA`` all matches are returned in reported order. An empty
        tuple means the service answered but no member had the role.

        Raises
        ------
        DiscoveryUnavailableError
            If no membership endpoint answered.
        ValueError
            If ``want_role`` is ``UNKNOWN``.
        """
        if want_role is NodeRole.UNKNOWN:
            raise ValueError("want_role must be LEADER or REPLICA")

        members = await self.afetch_members(api_endpoints)
        matches = tuple(node for node in members if node.role is want_role)

        if want_role is NodeRole.LEADER and len(matches) > 1:
            logger.warning(
                "Membership service reported more than one leader, using the first",
                leaders=[node.identity for node in matches],
            )
            matches = matches[:1]

        logger.info("Discovered cluster members", role=str(want_role), nodes=[node.identity for node in matches])
        return matches
