"""Typer-based command line front-end for the connection router."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Optional

import typer
from pydantic import ValidationError
from rich.console import Console

from .config import RouterSettings
from .credentials import Credentials, PgpassFile, resolve_password
from .exceptions import RouterError
from .logger import LoggingConfig, bind_invocation, configure_logging, get_logger
from .router import ConnectionRouter
from .session.output import render_result
from .session.runner import SessionRunner
from .topology.enums import ConnectionIntent
from .topology.models import ExplicitHostList

if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger

    from .topology.models import TopologySource

logger: BoundLogger = get_logger(__name__)

console = Console()
err_console = Console(stderr=True)
app = typer.Typer(
    help="Connect to a Patroni/HAProxy PostgreSQL cluster by intent.",
    add_completion=False,
    pretty_exceptions_enable=False,
)


def _select_source(
    router: ConnectionRouter,
    intent: ConnectionIntent,
    *,
    discover: bool,
    direct: bool,
    hosts: str | None,
) -> TopologySource:
    if discover:
        return router.discovered_source()
    if direct:
        if not hosts:
            raise typer.BadParameter("--direct requires --hosts or --discover", param_hint="--hosts")
        return ExplicitHostList.from_csv(hosts)
    return router.static_source(intent)


@app.command()
def connect(
    mode: Annotated[
        ConnectionIntent,
        typer.Option("--mode", help="Connection intent: rw (leader), ro (replicas), auto (leader, else replicas)."),
    ] = ConnectionIntent.READ_WRITE,
    query: Annotated[
        Optional[str], typer.Option("--query", "-q", help="Execute a single SQL statement then exit.")
    ] = None,
    direct: Annotated[bool, typer.Option("--direct", help="Bypass the proxy tier; use a multi-host list.")] = False,
    hosts: Annotated[
        Optional[str], typer.Option("--hosts", help="Comma-separated hosts for --direct (port defaults to 5432).")
    ] = None,
    hosts_with_ports: Annotated[
        Optional[str], typer.Option("--hosts-with-ports", help="Comma-separated host:port entries for --direct.")
    ] = None,
    discover: Annotated[
        bool, typer.Option("--discover", help="Ask the Patroni REST API for the leader/replicas (implies --direct).")
    ] = False,
    patroni_apis: Annotated[
        Optional[str], typer.Option("--patroni-apis", help="Comma-separated Patroni REST endpoints (host:port).")
    ] = None,
    db: Annotated[Optional[str], typer.Option("--db", help="Database name.")] = None,
    user: Annotated[Optional[str], typer.Option("--user", "-U", help="Database user.")] = None,
    password: Annotated[
        Optional[str], typer.Option("--password", "-W", help="Password (discouraged; prefer env or file).")
    ] = None,
    password_file: Annotated[
        Optional[Path],
        typer.Option("--password-file", exists=True, dir_okay=False, readable=True, help="Read password from FILE."),
    ] = None,
    env_file: Annotated[
        Optional[Path],
        typer.Option(
            "--env-file", exists=True, dir_okay=False, readable=True, help="Load variable overrides from FILE."
        ),
    ] = None,
    pgpass: Annotated[
        bool, typer.Option("--pgpass/--no-pgpass", help="Record the credentials in ~/.pgpass for the target hosts.")
    ] = False,
    connect_timeout: Annotated[
        Optional[float], typer.Option("--connect-timeout", min=0.1, help="Seconds allowed per connection attempt.")
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Verbose logging.")] = False,
) -> None:
    """Open an interactive session, or run one statement, against the right cluster member."""
    configure_logging(LoggingConfig().for_verbosity(verbose))

    try:
        settings = RouterSettings.load(str(env_file) if env_file is not None else None)
        config = settings.to_config(database=db, patroni_api_nodes=patroni_apis, connect_timeout=connect_timeout)
    except (ValidationError, RouterError) as e:
        err_console.print(f"ERROR: invalid configuration: {e}", markup=False, highlight=False)
        raise typer.Exit(1) from e

    router = ConnectionRouter(config, runner=SessionRunner(connect_timeout=config.connect_timeout, console=console))
    source = _select_source(
        router,
        mode,
        discover=discover,
        direct=direct or discover,
        hosts=hosts_with_ports or hosts,
    )

    login = user or settings.user
    secret = resolve_password(
        inline=password,
        password_file=password_file,
        configured=settings.password,
        environ=os.environ,
        prompt=lambda: typer.prompt(f"Password for user {login}", hide_input=True, default="", show_default=False),
    )
    credentials = Credentials(user=login, password=secret)
    bind_invocation(intent=mode.value, topology=source.kind, database=config.database, interactive=query is None)
    logger.debug("Invocation configured", user=login, has_password=secret is not None, pgpass=pgpass)

    try:
        result = asyncio.run(
            router.aconnect(mode, source, credentials, query, pgpass=PgpassFile() if pgpass else None),
        )
    except RouterError as e:
        err_console.print(f"ERROR: {e}", markup=False, highlight=False)
        raise typer.Exit(1) from e
    except KeyboardInterrupt as e:
        err_console.print("ERROR: session failed: interrupted", markup=False, highlight=False)
        raise typer.Exit(1) from e

    if result is not None:
        render_result(console, result)


def main() -> None:
    app(prog_name="pgrouter")
