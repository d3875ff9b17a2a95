"""Credential sources and the optional ``~/.pgpass`` side channel.

Password resolution order: inline value, password file, configured value
(``PG_APP_PASSWORD`` from the environment or an env file),
``PGPASSWORD``, then an interactive prompt.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from .logger import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from structlog.stdlib import BoundLogger

    from .topology.models import Endpoint

logger: BoundLogger = get_logger(__name__)


class Credentials(BaseModel):
    """Role and password for one invocation; the password never leaves memory."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    user: str = Field(min_length=1)
    password: SecretStr | None = None


def read_password_file(path: Path) -> str:
    """Return the first line of ``path`` without its line terminator."""
    with path.open(encoding="utf-8") as fh:
        return fh.readline().rstrip("\r\n")


def resolve_password(
    *,
    inline: str | None = None,
    password_file: Path | None = None,
    configured: SecretStr | None = None,
    environ: Mapping[str, str] | None = None,
    prompt: Callable[[], str] | None = None,
) -> SecretStr | None:
    """Pick the password from the first source that provides one.

    Parameters
    ----------
    inline
        Password given directly (discouraged on a command line).
    password_file
        File whose first line is the password.
    configured
        Password from settings.
    environ
        Environment mapping consulted for ``PGPASSWORD``.
    prompt
        Called last to ask the user; ``None`` disables prompting.

    Returns
    -------
    SecretStr | None
        The password, or ``None`` when no source provided one.
    """
    if inline is not None:
        return SecretStr(inline)
    if password_file is not None:
        return SecretStr(read_password_file(password_file))
    if configured is not None and configured.get_secret_value():
        return configured
    env_password = (environ or {}).get("PGPASSWORD")
    if env_password:
        return SecretStr(env_password)
    if prompt is None:
        return None
    return SecretStr(prompt())


def _escape_field(value: str) -> str:
    return value.replace("\\", "\\\\").replace(":", "\\:")


class PgpassFile:
    """Append-only, idempotent writer for a libpq password file.

    One line per ``host:port:database:user:password``. A line is only added
    when no entry for the same ``host:port:database:user`` exists.
    """

    __slots__ = ("_path",)

    def __init__(self, path: Path | None = None) -> None:
        self._path = path if path is not None else Path.home() / ".pgpass"

    @property
    def path(self) -> Path:
        return self._path

    @staticmethod
    def _entry_prefix(endpoint: Endpoint, database: str, user: str) -> str:
        fields = (endpoint.host, str(endpoint.port), database, user)
        return ":".join(_escape_field(field) for field in fields) + ":"

    def _read(self) -> str:
        if not self._path.exists():
            return ""
        return self._path.read_text(encoding="utf-8")

    def has_entry(self, endpoint: Endpoint, database: str, user: str) -> bool:
        prefix = self._entry_prefix(endpoint, database, user)
        return any(line.startswith(prefix) for line in self._read().splitlines())

    def add(self, endpoint: Endpoint, database: str, user: str, password: SecretStr) -> bool:
        """Add an entry unless one already exists.

        Returns
        -------
        bool
            ``True`` when a line was written.
        """
        self._path.touch(mode=0o600, exist_ok=True)
        self._path.chmod(0o600)

        content = self._read()
        prefix = self._entry_prefix(endpoint, database, user)
        if any(line.startswith(prefix) for line in content.splitlines()):
            logger.debug("pgpass entry already present", host=endpoint.host, port=endpoint.port, user=user)
            return False

        separator = "\n" if content and not content.endswith("\n") else ""
        with self._path.open("a", encoding="utf-8") as fh:
            fh.write(f"{separator}{prefix}{_escape_field(password.get_secret_value())}\n")

        logger.info("Added pgpass entry", path=str(self._path), host=endpoint.host, port=endpoint.port, user=user)
        return True

    def add_many(self, endpoints: Iterable[Endpoint], database: str, user: str, password: SecretStr) -> int:
        """Add entries for every endpoint; return how many lines were written."""
        return sum(self.add(endpoint, database, user, password) for endpoint in endpoints)
