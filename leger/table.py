"""Plain-text table formatting."""

from __future__ import annotations

from collections.abc import Sequence


def format_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    """Format rows under headers in left-aligned columns.

    Cells beyond the number of headers are dropped.
    """
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row[: len(widths)]):
            widths[i] = max(widths[i], len(cell))

    def line(cells: Sequence[str]) -> str:
        return "".join(f"{cell:<{w}}  " for cell, w in zip(cells, widths)) + "\n"

    out = [line(headers), "".join("-" * w + "  " for w in widths) + "\n"]
    out.extend(line(row) for row in rows)
    return "".join(out)


def print_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
    """Print a formatted table to standard output."""
    print(format_table(headers, rows), end="")