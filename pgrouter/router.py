"""Connection router: intent + topology source -> session.

Composes the resolver, the descriptor builder and the session runner for a
single invocation. Everything it needs arrives through `RouterConfig` and
method arguments; it holds no state between invocations.

Usage
-----
>>> router = ConnectionRouter(RouterSettings.load().to_config())
>>> source = router.discovered_source()
>>> result = await router.aconnect(
...     ConnectionIntent.READ_WRITE,
...     source,
...     Credentials(user="app", password=SecretStr("...")),
...     "SELECT now()",
... )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .logger import get_logger
from .session.descriptor import ConnectionDescriptor, build_descriptor
from .session.runner import SessionRunner
from .topology.enums import ConnectionIntent
from .topology.membership import MembershipClient
from .topology.models import CandidateList, Discovered, StaticEndpoint
from .topology.resolver import EndpointResolver

if TYPE_CHECKING:
    from collections.abc import Sequence

    from structlog.stdlib import BoundLogger

    from .config import RouterConfig
    from .credentials import Credentials, PgpassFile
    from .session.output import StatementResult
    from .topology.models import Endpoint, TopologySource

logger: BoundLogger = get_logger(__name__)


class ConnectionRouter:
    """Resolve, build and run for one connection intent."""

    __slots__ = ("_config", "_resolver", "_runner")

    def __init__(
        self,
        config: RouterConfig,
        *,
        resolver: EndpointResolver | None = None,
        runner: SessionRunner | None = None,
    ) -> None:
        self._config = config
        self._resolver = resolver or EndpointResolver(
            MembershipClient(timeout=config.membership_timeout, default_port=config.default_port),
            default_port=config.default_port,
        )
        self._runner = runner or SessionRunner(connect_timeout=config.connect_timeout)

    @property
    def config(self) -> RouterConfig:
        return self._config

    @property
    def runner(self) -> SessionRunner:
        return self._runner

    def static_source(self, intent: ConnectionIntent) -> StaticEndpoint:
        """Static proxy topology for ``intent``.

        Read-only goes to the RO endpoint. Read-write and best-effort go to
        the RW endpoint; best-effort also carries the RO endpoint as its
        one-shot fallback.
        """
        if intent is ConnectionIntent.READ_ONLY:
            return StaticEndpoint(endpoint=self._config.ro_endpoint)
        fallback = self._config.ro_endpoint if intent is ConnectionIntent.BEST_EFFORT else None
        return StaticEndpoint(endpoint=self._config.rw_endpoint, fallback=fallback)

    def discovered_source(self, api_endpoints: Sequence[Endpoint] | None = None) -> Discovered:
        return Discovered(api_endpoints=tuple(api_endpoints or self._config.membership_endpoints))

    async def aresolve(self, intent: ConnectionIntent, source: TopologySource) -> CandidateList:
        return await self._resolver.aresolve(intent, source)

    def build(
        self,
        candidates: CandidateList,
        intent: ConnectionIntent,
        credentials: Credentials,
    ) -> ConnectionDescriptor:
        return build_descriptor(
            candidates,
            intent,
            self._config.database,
            credentials.user,
            credentials.password,
            scheme=self._config.scheme,
        )

    def fallback_for(
        self,
        intent: ConnectionIntent,
        source: TopologySource,
        credentials: Credentials,
    ) -> ConnectionDescriptor | None:
        """Descriptor for the best-effort retry, if one applies.

        Only a best-effort intent over a static topology with an alternate
        endpoint gets one. It reuses the same credentials and asks for any
        session, so it may land on a read-only node.
        """
        if intent is not ConnectionIntent.BEST_EFFORT:
            return None
        if not isinstance(source, StaticEndpoint) or source.fallback is None:
            return None
        candidates = CandidateList(
            endpoints=(source.fallback,),
            session_attrs=ConnectionIntent.READ_ONLY.session_attrs,
        )
        return self.build(candidates, ConnectionIntent.READ_ONLY, credentials)

    def pgpass_endpoints(self, source: TopologySource, candidates: CandidateList) -> tuple[Endpoint, ...]:
        """Endpoints worth a ``~/.pgpass`` line: both proxies, or the resolved hosts."""
        if isinstance(source, StaticEndpoint):
            return (self._config.rw_endpoint, self._config.ro_endpoint)
        return candidates.endpoints

    def record_credentials(
        self,
        pgpass: PgpassFile,
        source: TopologySource,
        candidates: CandidateList,
        credentials: Credentials,
    ) -> int:
        """Write pgpass entries; a write failure is logged and skipped."""
        if credentials.password is None:
            return 0
        endpoints = self.pgpass_endpoints(source, candidates)
        try:
            return pgpass.add_many(endpoints, self._config.database, credentials.user, credentials.password)
        except OSError as e:
            logger.warning(
                "Could not record pgpass entries",
                path=str(pgpass.path),
                endpoints=[endpoint.netloc for endpoint in endpoints],
                user=credentials.user,
                error=e.strerror or type(e).__name__,
            )
            return 0

    async def aconnect(
        self,
        intent: ConnectionIntent,
        source: TopologySource,
        credentials: Credentials,
        statement: str | None = None,
        *,
        pgpass: PgpassFile | None = None,
    ) -> StatementResult | None:
        """Resolve candidates, build the descriptor and run.

        When ``pgpass`` is given the credentials are recorded for the
        resolved targets before connecting.

        Raises
        ------
        RouterError
            Any phase failure: discovery, resolution, connect, statement or
            session.
        """
        candidates = await self.aresolve(intent, source)
        descriptor = self.build(candidates, intent, credentials)
        fallback = self.fallback_for(intent, source, credentials)
        if pgpass is not None:
            self.record_credentials(pgpass, source, candidates, credentials)
        logger.info(
            "Running session",
            intent=str(intent),
            dsn=descriptor.to_keyword_dsn(),
            has_fallback=fallback is not None,
            interactive=statement is None,
        )
        return await self._runner.arun(descriptor, statement, fallback=fallback)
