"""Tests for table rendering and relative time formatting."""

import pytest
from rich.console import Console

from jumpseller_cli.output import assemble_table, time_ago

NOW = 1_700_000_000


@pytest.mark.parametrize(
    ("delta", "expected"),
    [
        (3, "just now"),
        (42, "42 seconds ago"),
        (60, "1 minute ago"),
        (3 * 3600 + 5, "3 hours ago"),
        (86400, "1 day ago"),
        (40 * 86400, "1 month ago"),
        (400 * 86400, "13 months ago"),
        (800 * 86400, "2 years ago"),
    ],
)
def test_time_ago(delta: int, expected: str) -> None:
    """Verifies the unit thresholds and pluralization."""
    assert time_ago(NOW - delta, now=NOW) == expected


def render(table) -> str:
    console = Console(width=120, record=True)
    console.print(table)
    return console.export_text()


def test_assemble_table_with_labels() -> None:
    """Verifies mapping headers and blank cells for missing values."""
    table = assemble_table(
        {"store": "store", "error": "error"},
        [{"store": "simple.jumpseller.com"}, {"store": "test.localhost", "error": ""}],
    )

    assert table.row_count == 2
    assert [column.header for column in table.columns] == ["store", ""]
    assert "simple.jumpseller.com" in render(table)


def test_assemble_table_from_list() -> None:
    """Verifies that a plain list of keys doubles as the header labels."""
    table = assemble_table(["id", "name"], [{"id": 1, "name": "Simple"}])

    assert [column.header for column in table.columns] == ["id", "name"]
    output = render(table)
    assert "Simple" in output
