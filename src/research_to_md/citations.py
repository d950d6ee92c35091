"""
Citation numbering for one conversion.

Links met during traversal are numbered in order of first appearance.
With deduplication on, targets that share a base form (scheme, host and
path) share one number; the rendered marker still points at the target
exactly as it appeared in the document.
"""

from typing import NamedTuple
from urllib.parse import urlsplit


class Citation(NamedTuple):
    """A numbered citation source."""
    number: int
    key: str
    target: str


def base_url(target: str) -> str:
    """
    Return the base form of a link target.

    Query string and fragment are dropped, scheme and host lower-cased.
    Targets without both a scheme and a host (relative links, ``mailto:``)
    are returned unchanged.
    """
    try:
        parts = urlsplit(target)
    except ValueError:
        return target
    if not parts.scheme or not parts.netloc:
        return target

    host = parts.netloc.rpartition("@")[2].lower()
    path = parts.path or "/"
    return f"{parts.scheme}://{host}{path}"


def render_citation(target: str, number: int) -> str:
    """Format a numbered citation marker linking to ``target``."""
    return f" [[{number}]]({target})"


class CitationRegistry:
    """Assigns 1-based sequence numbers to link targets.

    One registry belongs to one conversion call; never share it.
    """

    def __init__(self, dedupe: bool = True) -> None:
        self.dedupe = dedupe
        self._entries: dict[str, Citation] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def key_for(self, target: str) -> str:
        """Normalize a target according to the dedup strategy."""
        if self.dedupe:
            return base_url(target)
        return target

    def resolve(self, target: str) -> int:
        """Return the number for ``target``, assigning the next one if new."""
        key = self.key_for(target)
        entry = self._entries.get(key)
        if entry is None:
            entry = Citation(len(self._entries) + 1, key, target)
            self._entries[key] = entry
        return entry.number

    def render(self, target: str) -> str:
        """Resolve ``target`` and format its marker."""
        return render_citation(target, self.resolve(target))

    def citations(self) -> list[Citation]:
        """All sources seen so far, in numbering order."""
        return list(self._entries.values())
