from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from rich.console import Console
from rich.table import Table
from rich.text import Text


class StatementResult(BaseModel):
    """Rows and command status returned by one statement."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    columns: tuple[str, ...] = Field(default_factory=tuple)
    rows: tuple[tuple[Any, ...], ...] = Field(default_factory=tuple)
    status: str = ""

    @property
    def row_count(self) -> int:
        return len(self.rows)


def _cell(value: Any) -> Text:
    # psql prints NULL as an empty cell
    return Text("" if value is None else str(value))


def render_result(console: Console, result: StatementResult) -> None:
    """Print a result as a table, or its command status when it has no columns."""
    if not result.columns:
        console.print(result.status, markup=False, highlight=False)
        return

    noun = "row" if result.row_count == 1 else "rows"
    table = Table(caption=f"({result.row_count} {noun})")
    for column in result.columns:
        table.add_column(Text(column))
    for row in result.rows:
        table.add_row(*(_cell(value) for value in row))
    console.print(table)
