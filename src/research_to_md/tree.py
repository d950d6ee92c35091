"""
Read-only element tree views consumed by the converter.

The converter only talks to the ``Node`` protocol. Two adapters are
provided: ``SoupNode`` over a BeautifulSoup document (rendered HTML) and
``EtreeNode`` over ``xml.etree.ElementTree`` (XHTML or other XML).
"""

import xml.etree.ElementTree as ET
from enum import Enum
from typing import Callable, Iterator, Optional, Protocol
from xml.etree.ElementTree import Element

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString, Script, Stylesheet, TemplateString


class NodeKind(Enum):
    TEXT = "text"
    ELEMENT = "element"
    # comments, doctypes, processing instructions
    OTHER = "other"


class Node(Protocol):
    """Capabilities the converter needs from a tree node."""

    @property
    def kind(self) -> NodeKind: ...

    @property
    def tag(self) -> str:
        """Lower-case local tag name; empty for non-elements."""
        ...

    @property
    def text(self) -> str:
        """Payload of a text node; empty for other kinds."""
        ...

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]: ...

    def children(self) -> Iterator["Node"]: ...

    def find_ancestor(self, predicate: "Predicate") -> Optional["Node"]:
        """Nearest proper ancestor matching ``predicate``."""
        ...

    def find(self, predicate: "Predicate") -> Optional["Node"]:
        """First descendant, in document order, matching ``predicate``."""
        ...

    def find_all(self, predicate: "Predicate") -> list["Node"]: ...

    def text_content(self) -> str: ...


Predicate = Callable[[Node], bool]

# Elements whose character data is code or inert markup, never page text
UNRENDERED_TAGS = ("script", "style", "template")
UNRENDERED_STRINGS = (Script, Stylesheet, TemplateString)


# ============================================================================
# Predicates
# ============================================================================


def get_class(node: Node) -> list[str]:
    """Get CSS classes from the node's class attribute."""
    return (node.get("class") or "").split()


def has_class(node: Node, cls: str) -> bool:
    """Check if node has a specific class."""
    return cls in get_class(node)


def is_tag(*names: str) -> Predicate:
    """Build a predicate matching elements with any of ``names``."""
    wanted = set(names)
    return lambda node: node.kind is NodeKind.ELEMENT and node.tag in wanted


def is_link(node: Node) -> bool:
    """An anchor carrying a non-empty href."""
    return node.kind is NodeKind.ELEMENT and node.tag == "a" and bool(node.get("href"))


def is_citation_marker(node: Node) -> bool:
    """A span wrapping an already rendered, closed citation."""
    return node.kind is NodeKind.ELEMENT and node.tag == "span" and node.get("data-state") == "closed"


# ============================================================================
# BeautifulSoup adapter
# ============================================================================


class SoupNode:
    """Node view over a bs4 ``Tag`` or string."""

    __slots__ = ("_element",)

    def __init__(self, element) -> None:
        self._element = element

    def __repr__(self) -> str:
        return f"SoupNode({self.kind.value}:{self.tag or self.text[:20]!r})"

    @property
    def kind(self) -> NodeKind:
        if isinstance(self._element, Tag):
            return NodeKind.ELEMENT
        # Comment, Doctype, CData etc. are NavigableString subclasses too
        if isinstance(self._element, (PreformattedString,) + UNRENDERED_STRINGS):
            return NodeKind.OTHER
        if isinstance(self._element, NavigableString):
            return NodeKind.TEXT
        return NodeKind.OTHER

    @property
    def tag(self) -> str:
        if isinstance(self._element, Tag):
            return self._element.name.lower()
        return ""

    @property
    def text(self) -> str:
        if self.kind is NodeKind.TEXT:
            return str(self._element)
        return ""

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        if not isinstance(self._element, Tag):
            return default
        value = self._element.get(name)
        if value is None:
            return default
        # bs4 splits multi-valued attributes such as class
        if isinstance(value, list):
            return " ".join(value)
        return value

    def children(self) -> Iterator["SoupNode"]:
        if isinstance(self._element, Tag):
            for child in self._element.children:
                yield SoupNode(child)

    def find_ancestor(self, predicate: Predicate) -> Optional["SoupNode"]:
        for parent in self._element.parents:
            node = SoupNode(parent)
            if predicate(node):
                return node
        return None

    def find(self, predicate: Predicate) -> Optional["SoupNode"]:
        if not isinstance(self._element, Tag):
            return None
        for descendant in self._element.descendants:
            node = SoupNode(descendant)
            if predicate(node):
                return node
        return None

    def find_all(self, predicate: Predicate) -> list["SoupNode"]:
        if not isinstance(self._element, Tag):
            return []
        nodes = (SoupNode(d) for d in self._element.descendants)
        return [n for n in nodes if predicate(n)]

    def text_content(self) -> str:
        if isinstance(self._element, Tag):
            return self._element.get_text()
        return self.text


def load_html(markup: str) -> SoupNode:
    """Parse an HTML document or fragment."""
    return SoupNode(BeautifulSoup(markup, "html.parser"))


# ============================================================================
# ElementTree adapter
# ============================================================================


def local_name(tag: str) -> str:
    """Strip an ElementTree ``{namespace}`` prefix and lower-case."""
    if tag.startswith("{"):
        tag = tag.split("}", 1)[1]
    return tag.lower()


class EtreeText:
    """Text node synthesized from an element's ``text`` or ``tail``."""

    __slots__ = ("_text", "_parent")

    kind = NodeKind.TEXT
    tag = ""

    def __init__(self, text: str, parent: "EtreeNode") -> None:
        self._text = text
        self._parent = parent

    def __repr__(self) -> str:
        return f"EtreeText({self._text[:20]!r})"

    @property
    def text(self) -> str:
        return self._text

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return default

    def children(self) -> Iterator[Node]:
        return iter(())

    def find_ancestor(self, predicate: Predicate) -> Optional["EtreeNode"]:
        if predicate(self._parent):
            return self._parent
        return self._parent.find_ancestor(predicate)

    def find(self, predicate: Predicate) -> None:
        return None

    def find_all(self, predicate: Predicate) -> list[Node]:
        return []

    def text_content(self) -> str:
        return self._text


class EtreeNode:
    """Node view over an ElementTree ``Element``.

    ElementTree keeps character data on ``text``/``tail`` and has no
    parent links, so text nodes are synthesized and parents tracked
    while walking down.
    """

    __slots__ = ("_element", "_parent")

    def __init__(self, element: Element, parent: Optional["EtreeNode"] = None) -> None:
        self._element = element
        self._parent = parent

    def __repr__(self) -> str:
        return f"EtreeNode({self.tag!r})"

    @property
    def kind(self) -> NodeKind:
        # Comment and ProcessingInstruction use factory functions as tags
        if isinstance(self._element.tag, str):
            return NodeKind.ELEMENT
        return NodeKind.OTHER

    @property
    def tag(self) -> str:
        if isinstance(self._element.tag, str):
            return local_name(self._element.tag)
        return ""

    @property
    def text(self) -> str:
        return ""

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        if self.kind is not NodeKind.ELEMENT:
            return default
        value = self._element.get(name)
        if value is not None:
            return value
        # Namespaced attributes: match on local name
        for key, val in self._element.attrib.items():
            if local_name(key) == name:
                return val
        return default

    def children(self) -> Iterator[Node]:
        if self.kind is not NodeKind.ELEMENT:
            return
        if self._element.text and self.tag not in UNRENDERED_TAGS:
            yield EtreeText(self._element.text, self)
        for child in self._element:
            yield EtreeNode(child, self)
            if child.tail:
                yield EtreeText(child.tail, self)

    def find_ancestor(self, predicate: Predicate) -> Optional["EtreeNode"]:
        parent = self._parent
        while parent is not None:
            if predicate(parent):
                return parent
            parent = parent._parent
        return None

    def _descendants(self) -> Iterator[Node]:
        for child in self.children():
            yield child
            if isinstance(child, EtreeNode):
                yield from child._descendants()

    def find(self, predicate: Predicate) -> Optional[Node]:
        for node in self._descendants():
            if predicate(node):
                return node
        return None

    def find_all(self, predicate: Predicate) -> list[Node]:
        return [n for n in self._descendants() if predicate(n)]

    def text_content(self) -> str:
        if self.kind is not NodeKind.ELEMENT:
            return ""
        return "".join(self._element.itertext())


def load_xml(markup: str) -> EtreeNode:
    """Parse an XHTML/XML document. Raises ``ET.ParseError`` on bad input."""
    return EtreeNode(ET.fromstring(markup))
