"""Open a session from a descriptor and run a statement or an interactive loop.

Failover between candidate addresses inside one descriptor is the driver's
job (asyncpg walks ``host``/``port`` lists and enforces
``target_session_attrs``). This module adds exactly one thing on top: the
intent-level fallback, a single extra attempt against an alternate
descriptor when the first one cannot connect at all.
"""

from __future__ import annotations

from functools import partial
from typing import TYPE_CHECKING, Any, TypeAlias

import asyncpg
from rich.console import Console

from ..exceptions import ConnectFailedError, SessionAbortedError, StatementFailedError
from ..logger import get_logger
from .output import StatementResult, render_result

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from structlog.stdlib import BoundLogger

    from .descriptor import ConnectionDescriptor

    Connector: TypeAlias = Callable[..., Awaitable[Any]]
    LineReader: TypeAlias = Callable[[str], str]

logger: BoundLogger = get_logger(__name__)

_CONNECT_ERRORS: tuple[type[BaseException], ...] = (
    OSError,
    TimeoutError,
    asyncpg.exceptions.PostgresError,
    asyncpg.exceptions.InterfaceError,
    asyncpg.exceptions.InternalClientError,
)
_STATEMENT_ERRORS: tuple[type[BaseException], ...] = (
    OSError,
    asyncpg.exceptions.PostgresError,
    asyncpg.exceptions.InterfaceError,
)
_MULTI_COMMAND_MARKER = "cannot insert multiple commands into a prepared statement"
_QUIT_COMMANDS = frozenset({"\\q", "quit", "exit"})


def _scrub(text: str, descriptor: ConnectionDescriptor) -> str:
    if descriptor.password is None:
        return text
    secret = descriptor.password.get_secret_value()
    return text.replace(secret, "***") if secret else text


class SessionRunner:
    """Run one statement or an interactive session against a descriptor.

    Examples
    --------
    >>> runner = SessionRunner(connect_timeout=5.0)
    >>> result = await runner.arun(descriptor, "SELECT pg_is_in_recovery()")
    >>> result.rows
    ((False,),)
    """

    __slots__ = ("_connect_timeout", "_connector", "_console", "_read_line")

    def __init__(
        self,
        *,
        connect_timeout: float = 10.0,
        connector: Connector | None = None,
        console: Console | None = None,
        read_line: LineReader | None = None,
    ) -> None:
        self._connect_timeout = connect_timeout
        self._connector = connector or asyncpg.connect
        self._console = console or Console()
        self._read_line = read_line or partial(self._console.input, markup=False)

    async def arun(
        self,
        descriptor: ConnectionDescriptor,
        statement: str | None = None,
        *,
        fallback: ConnectionDescriptor | None = None,
    ) -> StatementResult | None:
        """Run ``statement`` (or an interactive session when ``None``).

        Parameters
        ----------
        descriptor
            Primary descriptor.
        statement
            SQL to execute once. ``None`` opens an interactive session.
        fallback
            Alternate descriptor tried exactly once if ``descriptor`` cannot
            connect. A statement failure never triggers it.

        Returns
        -------
        StatementResult | None
            The statement result, or ``None`` after an interactive session.

        Raises
        ------
        ConnectFailedError
            No candidate connected with the required session attribute.
        StatementFailedError
            The statement errored.
        SessionAbortedError
            The interactive session was interrupted.
        """
        try:
            return await self._arun_once(descriptor, statement)
        except ConnectFailedError as e:
            if fallback is None:
                raise
            logger.warning(
                "Primary descriptor failed to connect, retrying once against fallback",
                error=e.detail,
                fallback=fallback.to_keyword_dsn(),
            )

        return await self._arun_once(fallback, statement)

    async def _arun_once(self, descriptor: ConnectionDescriptor, statement: str | None) -> StatementResult | None:
        conn = await self._aopen(descriptor)
        try:
            if statement is not None:
                return await self._aexecute(conn, statement, descriptor)
            await self._ainteractive(conn, descriptor)
            return None
        finally:
            await self._aclose(conn, descriptor)

    async def _aopen(self, descriptor: ConnectionDescriptor) -> Any:
        netlocs = [endpoint.netloc for endpoint in descriptor.endpoints]
        logger.debug("Connecting", dsn=descriptor.to_keyword_dsn(), timeout=self._connect_timeout)
        try:
            conn = await self._connector(**descriptor.to_connect_params(), timeout=self._connect_timeout)
        except _CONNECT_ERRORS as e:
            detail = (
                f"no candidate in [{', '.join(netlocs)}] accepted a "
                f"target_session_attrs={descriptor.session_attrs} session: {_scrub(str(e), descriptor)}"
            )
            raise ConnectFailedError(detail, descriptor.endpoints) from e

        logger.info("Session opened", candidates=netlocs, target_session_attrs=str(descriptor.session_attrs))
        return conn

    async def _aclose(self, conn: Any, descriptor: ConnectionDescriptor) -> None:
        # a broken transport must not replace the result or the statement error
        try:
            await conn.close()
        except _CONNECT_ERRORS as e:
            logger.warning(
                "Closing session failed",
                candidates=[endpoint.netloc for endpoint in descriptor.endpoints],
                error=_scrub(str(e), descriptor) or type(e).__name__,
            )

    async def _aexecute(self, conn: Any, statement: str, descriptor: ConnectionDescriptor) -> StatementResult:
        try:
            try:
                prepared = await conn.prepare(statement)
                records = await prepared.fetch()
                result = StatementResult(
                    columns=tuple(attribute.name for attribute in prepared.get_attributes()),
                    rows=tuple(tuple(record.values()) for record in records),
                    status=prepared.get_statusmsg() or "",
                )
            except asyncpg.exceptions.PostgresSyntaxError as e:
                if _MULTI_COMMAND_MARKER not in str(e):
                    raise
                result = StatementResult(status=await conn.execute(statement))
        except _STATEMENT_ERRORS as e:
            raise StatementFailedError(_scrub(str(e), descriptor), sqlstate=getattr(e, "sqlstate", None)) from e

        logger.debug("Statement executed", status=result.status, row_count=result.row_count)
        return result

    async def _ainteractive(self, conn: Any, descriptor: ConnectionDescriptor) -> None:
        database = descriptor.database
        self._console.print(
            f"Connected to {database} via {descriptor.to_keyword_dsn()}. Type \\q to quit.",
            markup=False,
            highlight=False,
        )
        buffer: list[str] = []
        while True:
            prompt = f"{database}-> " if buffer else f"{database}=> "
            try:
                line = self._read_line(prompt)
            except EOFError:
                break
            except KeyboardInterrupt as e:
                raise SessionAbortedError("interactive session interrupted") from e

            stripped = line.strip()
            if not buffer and stripped in _QUIT_COMMANDS:
                break
            if not stripped:
                continue

            buffer.append(line)
            if not stripped.endswith(";"):
                continue

            statement = "\n".join(buffer)
            buffer.clear()
            try:
                result = await self._aexecute(conn, statement, descriptor)
            except StatementFailedError as e:
                self._console.print(f"ERROR: {e.detail}", style="red", markup=False, highlight=False)
                continue
            render_result(self._console, result)

        logger.info("Interactive session ended")
