import time
from collections.abc import Mapping, Sequence
from typing import Any

from rich.table import Table


def _empty(value: Any) -> bool:
    return value is None or value == ""


def assemble_table(
    columns: Mapping[str, str] | Sequence[str], rows: Sequence[Mapping[str, Any]]
) -> Table:
    """Builds a rich table from row dictionaries.

    Args:
        columns: Row keys in display order, either as a list (key is the label) or
                 as a mapping of key to label.
        rows: One mapping per row; missing keys render empty.

    Returns:
        Table: The table, with labels hidden on columns that are empty in every row.
    """
    if isinstance(columns, Mapping):
        keys, labels = list(columns.keys()), list(columns.values())
    else:
        keys, labels = list(columns), list(columns)

    cells = [
        ["" if _empty(row.get(k)) else str(row.get(k)) for k in keys] for row in rows
    ]

    table = Table(show_header=True, header_style="bold magenta")
    for i, label in enumerate(labels):
        blank = all(not row[i] for row in cells)
        table.add_column("" if blank else label)
    for row in cells:
        table.add_row(*row)
    return table


def time_ago(timestamp: float, now: float | None = None) -> str:
    """Formats a Unix timestamp relative to now (e.g. '3 hours ago')."""

    def output(count: float, label: str) -> str:
        n = int(count)
        return f"{n} {label}{'' if n == 1 else 's'} ago"

    seconds = (now if now is not None else time.time()) - timestamp
    if seconds < 10:
        return "just now"
    if seconds < 60:
        return output(seconds, "second")
    minutes = seconds / 60
    if minutes < 60:
        return output(minutes, "minute")
    hours = minutes / 60
    if hours < 24:
        return output(hours, "hour")
    days = hours / 24
    if days < 28:
        return output(days, "day")
    months = days / 30  # approximation
    if months < 24:
        return output(months, "month")
    return output(months / 12, "year")
