"""
Converts a rendered research document tree into Markdown.

Traversal is depth-first. Each element's children are converted first
and the element's fragment is composed from their concatenated output.
Tables are handed to the table normalizer as a whole, links and citation
markers to the citation registry.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable

from research_to_md.citations import Citation, CitationRegistry
from research_to_md.sanitize import escape_inline
from research_to_md.tables import NESTED_TABLE_WARNING, normalize_table
from research_to_md.tree import Node, NodeKind, get_class, is_citation_marker, is_link, is_tag

logger = logging.getLogger(__name__)

HEADING_LEVELS = {"h1": 1, "h2": 2, "h3": 3, "h4": 4, "h5": 5, "h6": 6}

# Structural and layout tags that pass their content through unchanged
# without being reported as unhandled
PASSTHROUGH_TAGS = {
    "[document]",
    "html",
    "body",
    "div",
    "section",
    "article",
    "main",
    "header",
    "footer",
    "span",
    "sup",
    "sub",
    "thead",
    "tbody",
    "tfoot",
    "tr",
    "th",
    "td",
}

_FENCE_LANGUAGE = re.compile(r"^(?:language|lang)-([A-Za-z0-9_+.#-]+)$")


@dataclass(frozen=True)
class ConvertOptions:
    """Settings for one conversion.

    dedupe_citations: number links by base form (scheme, host and path)
        instead of the exact target.
    max_depth: elements nested deeper than this are flattened to text.
    """
    dedupe_citations: bool = True
    max_depth: int = 200


@dataclass
class ConversionResult:
    """Markdown output plus everything reported along the way."""
    markdown: str
    warnings: list[str] = field(default_factory=list)
    citations: list[Citation] = field(default_factory=list)
    unhandled_tags: set[str] = field(default_factory=set)


class Converter:
    """Converts one tree. Create a new instance for every document."""

    def __init__(self, options: ConvertOptions | None = None) -> None:
        self.options = options or ConvertOptions()
        self.registry = CitationRegistry(dedupe=self.options.dedupe_citations)
        self.warnings: list[str] = []
        self.unhandled_tags: set[str] = set()
        self._used = False

        # Tags not listed here fall through to passthrough in _convert_element
        self._handlers: dict[str, Callable[[Node, str], str]] = {
            **{tag: self._heading for tag in HEADING_LEVELS},
            "p": self._paragraph,
            "strong": self._bold,
            "b": self._bold,
            "em": self._italic,
            "i": self._italic,
            "ul": self._list,
            "ol": self._list,
            "li": self._list_item,
            "blockquote": self._blockquote,
            "code": self._code,
            "pre": self._code_block,
            "br": self._line_break,
            "a": self._link,
        }

    def run(self, root: Node) -> ConversionResult:
        """Convert ``root`` and collect the result."""
        if self._used:
            raise RuntimeError("Converter instances convert a single document; create a new one")
        self._used = True

        markdown = self._convert(root, in_table=False, depth=0)
        return ConversionResult(
            markdown=markdown,
            warnings=list(self.warnings),
            citations=self.registry.citations(),
            unhandled_tags=set(self.unhandled_tags),
        )

    def warn(self, message: str) -> None:
        """Record a non-fatal anomaly."""
        logger.warning(message)
        self.warnings.append(message)

    # ------------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------------

    def _convert(self, node: Node, in_table: bool, depth: int) -> str:
        if node.kind is NodeKind.TEXT:
            return escape_inline(node.text)
        if node.kind is not NodeKind.ELEMENT:
            return ""

        if depth > self.options.max_depth:
            self.warn(f"Nesting deeper than {self.options.max_depth} levels at <{node.tag}>, flattening to text")
            return escape_inline(node.text_content())

        if node.tag == "table":
            if in_table:
                self.warn(NESTED_TABLE_WARNING)
                return ""
            return normalize_table(
                node,
                lambda cell: self._convert_children(cell, in_table=True, depth=depth + 1),
                self.warn,
            )

        if is_citation_marker(node):
            return self._citation_marker(node)

        content = self._convert_children(node, in_table, depth)

        handler = self._handlers.get(node.tag)
        if handler is None:
            # Default: unknown markup contributes its children unchanged
            if node.tag not in PASSTHROUGH_TAGS:
                self.unhandled_tags.add(node.tag)
            return content
        return handler(node, content)

    def _convert_children(self, node: Node, in_table: bool, depth: int) -> str:
        out = ""
        for child in node.children():
            fragment = self._convert(child, in_table, depth + 1)
            # Citations carry a leading space; avoid doubling an existing one
            if (
                child.kind is NodeKind.ELEMENT
                and fragment.startswith(" [[")
                and out[-1:].isspace()
            ):
                fragment = fragment[1:]
            out += fragment
        return out

    # ------------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------------

    def _heading(self, node: Node, content: str) -> str:
        return "#" * HEADING_LEVELS[node.tag] + f" {content.strip()}\n\n"

    def _paragraph(self, node: Node, content: str) -> str:
        return f"{content.strip()}\n\n"

    def _bold(self, node: Node, content: str) -> str:
        return f"**{content}**"

    def _italic(self, node: Node, content: str) -> str:
        return f"*{content}*"

    def _list(self, node: Node, content: str) -> str:
        return f"{content}\n"

    def _list_item(self, node: Node, content: str) -> str:
        return f"- {content.strip()}\n"

    def _blockquote(self, node: Node, content: str) -> str:
        return f"> {content.strip()}\n\n"

    def _code(self, node: Node, content: str) -> str:
        # Inside <pre> the fence already marks the code
        if node.find_ancestor(is_tag("pre")) is not None:
            return content
        return f"`{content}`"

    def _code_block(self, node: Node, content: str) -> str:
        language = fence_language(node)
        return f"```{language}\n{content}\n```\n\n"

    def _line_break(self, node: Node, content: str) -> str:
        return "\n"

    def _link(self, node: Node, content: str) -> str:
        target = node.get("href")
        if not target:
            return content
        # The enclosing marker already emitted this citation
        if node.find_ancestor(is_citation_marker) is not None:
            return ""
        return self.registry.render(target)

    def _citation_marker(self, node: Node) -> str:
        # Children are not rendered: only the first link counts, so the
        # targets of any further (or nested-marker) anchors are dropped
        link = node.find(is_link)
        if link is None:
            return ""
        return self.registry.render(link.get("href"))


def fence_language(pre: Node) -> str:
    """Language named by a ``language-xxx`` class on a ``pre`` or its ``code``."""
    candidates = [pre]
    code = pre.find(is_tag("code"))
    if code is not None:
        candidates.append(code)
    for node in candidates:
        for cls in get_class(node):
            if match := _FENCE_LANGUAGE.match(cls):
                return match.group(1)
    return ""


def convert_tree(root: Node, options: ConvertOptions | None = None) -> ConversionResult:
    """Convert a document tree to Markdown with a fresh citation registry."""
    return Converter(options).run(root)
