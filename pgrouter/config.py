"""Router configuration.

- `RouterSettings`: environment / ``.env`` sourced defaults, read once at the
  entry boundary.
- `RouterConfig`: the frozen configuration passed explicitly into the
  router. Nothing below the entry point reads the environment.
"""

from __future__ import annotations

from typing import Self

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .topology.models import DEFAULT_PORT, Endpoint

PATRONI_API_PORT = 8008


def parse_endpoint_list(text: str, default_port: int) -> tuple[Endpoint, ...]:
    """Parse a comma-separated ``host[:port]`` list, dropping empty segments.

    Raises
    ------
    InvalidEndpointError
        If any entry is malformed.
    """
    return tuple(Endpoint.parse(part, default_port) for part in text.split(",") if part.strip())


class RouterConfig(BaseModel):
    """Explicit configuration for one router invocation.

    Examples
    --------
    >>> config = RouterConfig(
    ...     database="orders",
    ...     rw_endpoint=Endpoint(host="haproxy", port=5000),
    ...     ro_endpoint=Endpoint(host="haproxy", port=5001),
    ... )
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    database: str = Field(default="postgres", min_length=1)
    default_port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    rw_endpoint: Endpoint = Field(default_factory=lambda: Endpoint(host="localhost", port=5438))
    ro_endpoint: Endpoint = Field(default_factory=lambda: Endpoint(host="localhost", port=5001))
    membership_endpoints: tuple[Endpoint, ...] = Field(
        default_factory=lambda: tuple(
            Endpoint(host=f"pg-node{i}", port=PATRONI_API_PORT) for i in range(1, 4)
        ),
        min_length=1,
    )
    membership_timeout: float = Field(default=3.0, gt=0.0, le=60.0)
    connect_timeout: float = Field(default=10.0, gt=0.0, le=300.0)
    scheme: str = Field(default="postgresql")


class RouterSettings(BaseSettings):
    """Defaults sourced from the environment and an optional dotenv file.

    Variable names match the cluster's deployment environment
    (``PG_APP_USER``, ``PG_RW_ENDPOINT``, ``PATRONI_API_NODES``, ...).

    Examples
    --------
    >>> settings = RouterSettings(_env_file="cluster.env")
    >>> config = settings.to_config(database="orders")
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        frozen=True,
    )

    user: str = Field(default="app", min_length=1, validation_alias="PG_APP_USER")
    password: SecretStr | None = Field(default=None, validation_alias="PG_APP_PASSWORD")
    database: str = Field(default="postgres", min_length=1, validation_alias="PG_DB")
    rw_endpoint: str = Field(default="localhost:5438", validation_alias="PG_RW_ENDPOINT")
    ro_endpoint: str = Field(default="localhost:5001", validation_alias="PG_RO_ENDPOINT")
    patroni_api_nodes: str = Field(
        default="pg-node1:8008,pg-node2:8008,pg-node3:8008",
        validation_alias="PATRONI_API_NODES",
    )
    default_port: int = Field(default=DEFAULT_PORT, ge=1, le=65535, validation_alias="PG_DEFAULT_PORT")
    membership_timeout: float = Field(default=3.0, gt=0.0, le=60.0, validation_alias="PG_MEMBERSHIP_TIMEOUT")
    connect_timeout: float = Field(default=10.0, gt=0.0, le=300.0, validation_alias="PG_CONNECT_TIMEOUT")

    @field_validator("rw_endpoint", "ro_endpoint")
    @classmethod
    def _check_endpoint(cls, value: str) -> str:
        Endpoint.parse(value)
        return value.strip()

    @field_validator("patroni_api_nodes")
    @classmethod
    def _check_api_nodes(cls, value: str) -> str:
        if not parse_endpoint_list(value, PATRONI_API_PORT):
            raise ValueError("at least one membership endpoint is required")
        return value

    def to_config(
        self,
        *,
        database: str | None = None,
        patroni_api_nodes: str | None = None,
        connect_timeout: float | None = None,
    ) -> RouterConfig:
        """Freeze these settings, plus command-line overrides, into a `RouterConfig`."""
        return RouterConfig(
            database=database or self.database,
            default_port=self.default_port,
            rw_endpoint=Endpoint.parse(self.rw_endpoint, self.default_port),
            ro_endpoint=Endpoint.parse(self.ro_endpoint, self.default_port),
            membership_endpoints=parse_endpoint_list(patroni_api_nodes or self.patroni_api_nodes, PATRONI_API_PORT),
            membership_timeout=self.membership_timeout,
            connect_timeout=connect_timeout if connect_timeout is not None else self.connect_timeout,
        )

    @classmethod
    def load(cls, env_file: str | None = None) -> Self:
        """Load settings, reading ``env_file`` on top of ``.env`` when given."""
        if env_file is None:
            return cls()
        return cls(_env_file=(".env", env_file))  # type: ignore[call-arg]
