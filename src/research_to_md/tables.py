"""
Converts a table subtree into a rectangular Markdown table.

The column count is fixed by the header row; body rows that disagree are
padded or truncated and a warning is reported for each repair.
"""

from typing import Callable, Iterator

from research_to_md.sanitize import sanitize_cell, sanitize_heading_cell
from research_to_md.tree import Node, NodeKind

SEPARATOR = "---"

# Sections whose rows count as table body, besides bare <tr> children
BODY_SECTIONS = ("tbody", "tfoot")

NESTED_TABLE_WARNING = "Nested table detected, skipping"


def _elements(node: Node) -> Iterator[Node]:
    return (c for c in node.children() if c.kind is NodeKind.ELEMENT)


def find_rows(section: Node, warn: Callable[[str], None]) -> list[Node]:
    """Rows belonging to ``section``, not descending into nested tables."""
    rows = []
    for child in _elements(section):
        if child.tag == "tr":
            rows.append(child)
        elif child.tag == "table":
            warn(NESTED_TABLE_WARNING)
        else:
            rows.extend(find_rows(child, warn))
    return rows


def find_cells(row: Node) -> list[Node]:
    """Direct header/data cells of a row."""
    return [c for c in _elements(row) if c.tag in ("th", "td")]


def split_table(table: Node, warn: Callable[[str], None]) -> tuple[Node | None, list[Node]]:
    """Resolve the header row and the body rows of a table."""
    header_row = None
    body_rows: list[Node] = []
    thead_seen = False

    for child in _elements(table):
        if child.tag == "thead":
            header_rows = find_rows(child, warn)
            if thead_seen:
                warn(f"Table has another header section ({len(header_rows)} rows), ignoring it")
                continue
            thead_seen = True
            if len(header_rows) > 1:
                warn(f"Table has {len(header_rows)} header rows, using only the first")
            if header_rows:
                header_row = header_rows[0]
        elif child.tag in BODY_SECTIONS:
            body_rows.extend(find_rows(child, warn))
        elif child.tag == "tr":
            body_rows.append(child)
        elif child.tag == "table":
            warn(NESTED_TABLE_WARNING)

    if header_row is None and body_rows:
        header_row = body_rows.pop(0)

    return header_row, body_rows


def format_row(cells: list[str]) -> str:
    """Render one table row."""
    return "| " + " | ".join(cells) + " |\n"


def fit_row(cells: list[str], column_count: int, warn: Callable[[str], None]) -> list[str]:
    """Pad or truncate ``cells`` to exactly ``column_count`` entries."""
    actual = len(cells)
    if actual < column_count:
        warn(f"Table row has fewer cells than header ({actual} vs {column_count}), padding with empty cells")
        return cells + [""] * (column_count - actual)
    if actual > column_count:
        warn(f"Table row has more cells than header ({actual} vs {column_count}), truncating")
        return cells[:column_count]
    return cells


def normalize_table(
    table: Node,
    render_cell: Callable[[Node], str],
    warn: Callable[[str], None],
) -> str:
    """
    Convert a table element into Markdown.

    Args:
        table: The table element.
        render_cell: Converts a cell's subtree into Markdown text.
        warn: Receives a message for every repaired anomaly.

    Returns:
        The Markdown table followed by a blank line, or an empty string
        when no header can be found.
    """
    header_row, body_rows = split_table(table, warn)
    if header_row is None:
        warn("Table has no rows, skipping")
        return ""

    header = [sanitize_heading_cell(render_cell(cell)) for cell in find_cells(header_row)]
    if not header:
        warn("Table has no header cells, skipping")
        return ""

    column_count = len(header)
    lines = [format_row(header), format_row([SEPARATOR] * column_count)]

    for row in body_rows:
        cells = [sanitize_cell(render_cell(cell)) for cell in find_cells(row)]
        lines.append(format_row(fit_row(cells, column_count, warn)))

    return "".join(lines) + "\n"
