"""Unit tests for password resolution and the pgpass writer."""

from __future__ import annotations

import stat
from typing import TYPE_CHECKING

import pytest
from pydantic import SecretStr, ValidationError

from pgrouter.credentials import Credentials, PgpassFile, read_password_file, resolve_password
from pgrouter.topology.models import Endpoint

if TYPE_CHECKING:
    from pathlib import Path


class TestCredentials:
    def test_password_hidden_in_repr(self) -> None:
        credentials = Credentials(user="app", password=SecretStr("hunter2"))

        assert "hunter2" not in repr(credentials)

    def test_user_required(self) -> None:
        with pytest.raises(ValidationError):
            Credentials(user="")


class TestResolvePassword:
    def test_inline_wins(self, tmp_path: Path) -> None:
        password_file = tmp_path / "pw"
        password_file.write_text("from-file\n")

        password = resolve_password(
            inline="inline",
            password_file=password_file,
            configured=SecretStr("configured"),
            environ={"PGPASSWORD": "env"},
            prompt=lambda: "prompted",
        )

        assert password is not None
        assert password.get_secret_value() == "inline"

    def test_file_before_configured(self, tmp_path: Path) -> None:
        password_file = tmp_path / "pw"
        password_file.write_text("from-file\nsecond line\n")

        password = resolve_password(password_file=password_file, configured=SecretStr("configured"))

        assert password is not None
        assert password.get_secret_value() == "from-file"

    def test_configured_before_environment(self) -> None:
        password = resolve_password(configured=SecretStr("configured"), environ={"PGPASSWORD": "env"})

        assert password is not None
        assert password.get_secret_value() == "configured"

    def test_empty_configured_falls_through_to_environment(self) -> None:
        password = resolve_password(configured=SecretStr(""), environ={"PGPASSWORD": "env"})

        assert password is not None
        assert password.get_secret_value() == "env"

    def test_prompt_is_last_resort(self) -> None:
        calls: list[int] = []

        def prompt() -> str:
            calls.append(1)
            return "prompted"

        password = resolve_password(environ={}, prompt=prompt)

        assert password is not None
        assert password.get_secret_value() == "prompted"
        assert calls == [1]

    def test_no_source_yields_none(self) -> None:
        assert resolve_password(environ={}) is None


class TestReadPasswordFile:
    @pytest.mark.parametrize("content", ["secret\n", "secret\r\n", "secret"])
    def test_strips_line_terminator_only(self, tmp_path: Path, content: str) -> None:
        path = tmp_path / "pw"
        path.write_bytes(content.encode())

        assert read_password_file(path) == "secret"

    def test_keeps_surrounding_spaces(self, tmp_path: Path) -> None:
        path = tmp_path / "pw"
        path.write_text(" pass word \n")

        assert read_password_file(path) == " pass word "


class TestPgpassFile:
    ENDPOINT = Endpoint(host="haproxy", port=5000)

    def test_creates_file_with_owner_only_permissions(self, tmp_path: Path) -> None:
        pgpass = PgpassFile(tmp_path / ".pgpass")

        assert pgpass.add(self.ENDPOINT, "orders", "app", SecretStr("pw")) is True

        assert pgpass.path.read_text() == "haproxy:5000:orders:app:pw\n"
        assert stat.S_IMODE(pgpass.path.stat().st_mode) == 0o600

    def test_add_is_idempotent(self, tmp_path: Path) -> None:
        pgpass = PgpassFile(tmp_path / ".pgpass")

        pgpass.add(self.ENDPOINT, "orders", "app", SecretStr("pw"))
        assert pgpass.add(self.ENDPOINT, "orders", "app", SecretStr("changed")) is False

        assert pgpass.path.read_text() == "haproxy:5000:orders:app:pw\n"
        assert pgpass.has_entry(self.ENDPOINT, "orders", "app")

    def test_appends_after_existing_line_without_newline(self, tmp_path: Path) -> None:
        path = tmp_path / ".pgpass"
        path.write_text("other:5432:*:admin:x")
        pgpass = PgpassFile(path)

        pgpass.add(self.ENDPOINT, "orders", "app", SecretStr("pw"))

        assert path.read_text().splitlines() == ["other:5432:*:admin:x", "haproxy:5000:orders:app:pw"]

    def test_escapes_colons_and_backslashes(self, tmp_path: Path) -> None:
        pgpass = PgpassFile(tmp_path / ".pgpass")

        pgpass.add(Endpoint(host="::1", port=5432), "orders", "app", SecretStr(r"a:b\c"))

        assert pgpass.path.read_text() == "\\:\\:1:5432:orders:app:a\\:b\\\\c\n"

    def test_add_many_counts_new_lines(self, tmp_path: Path) -> None:
        pgpass = PgpassFile(tmp_path / ".pgpass")
        endpoints = [self.ENDPOINT, Endpoint(host="haproxy", port=5001), self.ENDPOINT]

        assert pgpass.add_many(endpoints, "orders", "app", SecretStr("pw")) == 2

    def test_default_location_is_home(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("HOME", str(tmp_path))

        assert PgpassFile().path == tmp_path / ".pgpass"
