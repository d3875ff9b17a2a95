"""Connection descriptors and their wire-form serializers.

A descriptor carries every candidate address in order; the driver walks
them until one both connects and satisfies ``target_session_attrs``.

Two serialized forms are supported:

- URL form for a single address::

    postgresql://app@pg-proxy:5000/postgres?target_session_attrs=read-write

- libpq keyword form, required for real multi-host failover::

    host=pg-node1,pg-node2 port=5432,5432 user=app dbname=postgres target_session_attrs=any

The password is omitted from both unless explicitly requested, so the
default output is safe to log.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from urllib.parse import quote, urlencode

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from ..topology.enums import TargetSessionAttrs
from ..topology.models import Endpoint

if TYPE_CHECKING:
    from ..topology.enums import ConnectionIntent
    from ..topology.models import CandidateList

_KEYWORD_SPECIALS = frozenset(" \t\n\r'\\")


def _quote_keyword_value(value: str) -> str:
    if value and not _KEYWORD_SPECIALS.intersection(value):
        return value
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


class ConnectionDescriptor(BaseModel):
    """Everything a client needs to open one session against the cluster."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    endpoints: tuple[Endpoint, ...] = Field(min_length=1)
    database: str = Field(min_length=1)
    user: str = Field(min_length=1)
    password: SecretStr | None = None
    session_attrs: TargetSessionAttrs
    scheme: str = Field(default="postgresql", pattern=r"^[a-z][a-z0-9+.-]*$")

    @property
    def is_multi_host(self) -> bool:
        return len(self.endpoints) > 1

    def _password_text(self) -> str:
        return self.password.get_secret_value() if self.password is not None else ""

    def to_url(self, *, include_password: bool = False) -> str:
        """Serialize a single-address descriptor as a connection URL.

        Raises
        ------
        ValueError
            If the descriptor carries more than one address.
        """
        if self.is_multi_host:
            raise ValueError("URL form supports a single address; use to_keyword_dsn() for multi-host failover")

        auth = quote(self.user, safe="")
        password = self._password_text()
        if include_password and password:
            auth = f"{auth}:{quote(password, safe='')}"

        query = urlencode({"target_session_attrs": self.session_attrs.value})
        return f"{self.scheme}://{auth}@{self.endpoints[0].netloc}/{quote(self.database, safe='')}?{query}"

    def to_keyword_dsn(self, *, include_password: bool = False) -> str:
        """Serialize as a libpq keyword/value string with aligned host and port lists."""
        pairs: list[tuple[str, str]] = [
            ("host", ",".join(endpoint.host for endpoint in self.endpoints)),
            ("port", ",".join(str(endpoint.port) for endpoint in self.endpoints)),
            ("user", self.user),
        ]
        password = self._password_text()
        if include_password and password:
            pairs.append(("password", password))
        pairs.extend(
            [
                ("dbname", self.database),
                ("target_session_attrs", self.session_attrs.value),
            ]
        )
        return " ".join(f"{key}={_quote_keyword_value(value)}" for key, value in pairs)

    def render(self, *, include_password: bool = False) -> str:
        """URL form for one address, keyword form otherwise."""
        if self.is_multi_host:
            return self.to_keyword_dsn(include_password=include_password)
        return self.to_url(include_password=include_password)

    def to_connect_params(self) -> dict[str, Any]:
        """Keyword arguments for ``asyncpg.connect()``."""
        return {
            "host": [endpoint.host for endpoint in self.endpoints],
            "port": [endpoint.port for endpoint in self.endpoints],
            "user": self.user,
            "password": self.password.get_secret_value() if self.password is not None else None,
            "database": self.database,
            "target_session_attrs": self.session_attrs.value,
        }


def build_descriptor(
    candidates: CandidateList,
    intent: ConnectionIntent,
    database: str,
    user: str,
    password: SecretStr | str | None,
    *,
    scheme: str = "postgresql",
) -> ConnectionDescriptor:
    """Build a descriptor carrying all candidates in order.

    Pure: no I/O and no logging. Identical inputs yield equal descriptors.

    Parameters
    ----------
    candidates
        Resolved candidates; their order is the failover order.
    intent
        Connection intent; selects ``target_session_attrs``.
    database
        Database name.
    user
        Role to connect as.
    password
        Password, or ``None`` to let the driver fall back to its own sources.

    Returns
    -------
    ConnectionDescriptor
        A frozen descriptor.
    """
    secret = SecretStr(password) if isinstance(password, str) else password
    return ConnectionDescriptor(
        endpoints=candidates.endpoints,
        database=database,
        user=user,
        password=secret,
        session_attrs=intent.session_attrs,
        scheme=scheme,
    )
