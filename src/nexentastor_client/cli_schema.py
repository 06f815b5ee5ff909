"""Schema describing important fields for CLI table rendering."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

Row = Mapping[str, Any]
ValueFormatter = Callable[[Any], str]
SortKey = Callable[[Row], Any]


@dataclass(frozen=True)
class Column:
    """Describe how to pull and format a column for Rich tables."""

    header: str
    key: str
    formatter: ValueFormatter | None = None
    justify: str = "left"

    def render(self, row: Row) -> str:
        value = row.get(self.key)
        if value is None:
            return ""
        if self.formatter:
            return self.formatter(value)
        return str(value)


@dataclass(frozen=True)
class TableView:
    """Describe a Rich table for a CLI command."""

    title: str
    columns: tuple[Column, ...]
    sort_key: SortKey | None = None


def _bytes_formatter(*, precision: int = 2) -> ValueFormatter:
    def _formatter(value: Any) -> str:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return ""
        if value == 0:
            return "none"
        gib_value = value / (1024**3)
        return f"{gib_value:.{precision}f}"

    return _formatter


def _bool_formatter(value: Any) -> str:
    return "Yes" if bool(value) else "No"


CLI_TABLE_VIEWS: dict[str, TableView] = {
    "pools.list": TableView(
        title="Storage Pools",
        columns=(
            Column("Name", "poolName"),
            Column("Health", "health"),
            Column("Status", "status"),
        ),
        sort_key=lambda row: str(row.get("poolName") or ""),
    ),
    "filesystems.list": TableView(
        title="Filesystems",
        columns=(
            Column("Path", "path"),
            Column("Mount Point", "mountPoint"),
            Column("NFS", "sharedOverNfs", formatter=_bool_formatter),
            Column("Quota (GiB)", "quotaSize", formatter=_bytes_formatter(), justify="right"),
        ),
        sort_key=lambda row: str(row.get("path") or ""),
    ),
}

__all__ = ["CLI_TABLE_VIEWS", "Column", "TableView"]
