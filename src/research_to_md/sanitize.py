"""
Character-level cleanup shared by the converter, the table normalizer
and the export layer.
"""

import re

# Emphasis delimiters stripped from table header cells, longest first
HEADING_EMPHASIS = ("**", "*", "_")

_UNESCAPED_DOLLAR = re.compile(r"(?<!\\)\$")
_UNESCAPED_PIPE = re.compile(r"(?<!\\)\|")
_LINE_BREAKS = re.compile(r"[ \t]*(?:\r\n|\r|\n)[\s]*")
_BLANK_LINES = re.compile(r"\n[ \t]*\n(?:[ \t]*\n)+")


def escape_inline(text: str) -> str:
    """Escape characters that Markdown math renderers would pick up."""
    return _UNESCAPED_DOLLAR.sub(r"\\$", text)


def sanitize_cell(text: str) -> str:
    """Make arbitrary content safe inside a single Markdown table cell."""
    text = _UNESCAPED_PIPE.sub(r"\\|", text)
    text = _LINE_BREAKS.sub(" ", text)
    return text.strip()


def sanitize_heading_cell(text: str) -> str:
    """
    Sanitize a table header cell and drop one layer of emphasis.

    ``**Title**`` becomes ``Title``; the renderer already shows header
    cells in bold. Only the outermost matching delimiter is removed.
    """
    text = sanitize_cell(text)
    for marker in HEADING_EMPHASIS:
        if len(text) <= 2 * len(marker):
            continue
        if not (text.startswith(marker) and text.endswith(marker)):
            continue
        inner = text[len(marker) : -len(marker)]
        # "**a** and **b**" is two spans, not one wrapped cell
        if marker in inner:
            continue
        return inner.strip()
    return text


def tidy_markdown(text: str) -> str:
    """Collapse runs of blank lines and trim the document."""
    text = _BLANK_LINES.sub("\n\n", text)
    text = text.strip()
    return text + "\n" if text else ""
