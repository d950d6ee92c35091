#!/usr/bin/env python3
"""
Exports saved research pages to Markdown files.

Each research container found in an HTML (or XHTML) file is converted on
its own, with its own citation numbering, and written next to the input
as ``name.md`` (``name_2.md``, ``name_3.md``, ... for further containers).
"""

import argparse
import logging
import sys
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import NamedTuple

from research_to_md.convert import ConversionResult, ConvertOptions, convert_tree
from research_to_md.sanitize import tidy_markdown
from research_to_md.tree import Node, has_class, is_tag, load_html, load_xml

logger = logging.getLogger(__name__)

CONTAINER_CLASS = "deep-research-result"

HTML_SUFFIXES = (".html", ".htm")
XML_SUFFIXES = (".xhtml", ".xml")


class NoContentError(ValueError):
    """The document holds nothing to convert."""


class Export(NamedTuple):
    """A written Markdown file and the conversion that produced it."""
    path: Path
    result: ConversionResult


def find_research_roots(document: Node, css_class: str = CONTAINER_CLASS) -> list[Node]:
    """
    Locate the subtrees to convert.

    Outermost elements carrying ``css_class`` win; otherwise the ``body``,
    otherwise the whole document.
    """
    if not document.text_content().strip():
        raise NoContentError("No research content found")

    if has_class(document, css_class):
        return [document]

    def is_container(node: Node) -> bool:
        return has_class(node, css_class)

    containers = [
        node for node in document.find_all(is_container)
        if node.find_ancestor(is_container) is None
    ]
    if containers:
        return containers

    body = document.find(is_tag("body"))
    if body is not None:
        return [body]
    return [document]


def load_document(path: Path) -> Node:
    """Parse a file by suffix: XHTML/XML via ElementTree, anything else as HTML."""
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in XML_SUFFIXES:
        return load_xml(text)
    return load_html(text)


def convert_document(
    document: Node,
    options: ConvertOptions | None = None,
    css_class: str = CONTAINER_CLASS,
) -> list[ConversionResult]:
    """Convert every research root of a loaded document."""
    results = []
    for root in find_research_roots(document, css_class):
        result = convert_tree(root, options)
        result.markdown = tidy_markdown(result.markdown)
        results.append(result)
    return results


def html_to_markdown(
    markup: str,
    options: ConvertOptions | None = None,
    css_class: str = CONTAINER_CLASS,
) -> list[ConversionResult]:
    """Convert an HTML string; one result per research container."""
    return convert_document(load_html(markup), options, css_class)


def output_path(source: Path, index: int, taken: set[Path] | frozenset[Path] = frozenset()) -> Path:
    """
    ``name.md`` for the first container, ``name_N.md`` after that.

    When that name was already written in this run (``page.html`` and
    ``page.xhtml`` side by side), the source suffix is kept instead:
    ``page.xhtml.md``, ``page.xhtml_2.md``.
    """
    suffix = ".md" if index == 0 else f"_{index + 1}.md"
    candidate = source.with_name(source.stem + suffix)
    if candidate in taken:
        candidate = source.with_name(source.name + suffix)
    return candidate


def process_file(
    path: Path,
    options: ConvertOptions | None = None,
    css_class: str = CONTAINER_CLASS,
    written: set[Path] | None = None,
) -> list[Export]:
    """
    Convert a single file and write the Markdown next to it.

    ``written`` collects the output paths of the current run; a file is
    never written twice. Pass the same set for every file of a batch.
    """
    logger.debug("Converting %s", path)
    results = convert_document(load_document(path), options, css_class)
    if written is None:
        written = set()

    exports = []
    for index, result in enumerate(results):
        md_path = output_path(path, index, written)
        if md_path in written:
            logger.warning("Skipping container %d of %s: %s was already written", index + 1, path.name, md_path.name)
            continue
        md_path.write_text(result.markdown, encoding="utf-8")
        written.add(md_path)
        exports.append(Export(md_path, result))
    return exports


def process_directory(
    dir_path: Path,
    options: ConvertOptions | None = None,
    css_class: str = CONTAINER_CLASS,
) -> list[Export]:
    """Convert every HTML/XHTML file in a directory, reporting failures."""
    sources = sorted(
        p for p in dir_path.iterdir()
        if p.is_file() and p.suffix.lower() in HTML_SUFFIXES + XML_SUFFIXES
    )
    exports: list[Export] = []
    written: set[Path] = set()

    for source in sources:
        try:
            created = process_file(source, options, css_class, written)
        except ET.ParseError as e:
            print(f"Error parsing {source.name}: {e}", file=sys.stderr)
            continue
        except (NoContentError, OSError, UnicodeDecodeError) as e:
            print(f"Error processing {source.name}: {e}", file=sys.stderr)
            continue

        for export in created:
            print(f"Created: {export.path.name}")
        exports.extend(created)

    return exports


def report_unhandled(tags: set[str]) -> str:
    """Generate brief summary of tags that fell back to passthrough."""
    if not tags:
        return "All tags handled."
    return f"Unhandled tags ({len(tags)}): {sorted(tags)}"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="research-to-md",
        description="Convert saved research pages to Markdown with numbered citations.",
    )
    parser.add_argument("path", type=Path, help="HTML/XHTML file or directory of files")
    parser.add_argument(
        "--no-dedupe",
        dest="dedupe_citations",
        action="store_false",
        help="number every distinct link target, even when only the query or fragment differs",
    )
    parser.add_argument(
        "--container-class",
        default=CONTAINER_CLASS,
        help=f"CSS class marking research containers (default: {CONTAINER_CLASS})",
    )
    parser.add_argument(
        "--max-depth",
        type=int,
        default=ConvertOptions.max_depth,
        help="flatten elements nested deeper than this (default: %(default)s)",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-q", "--quiet", action="store_true", help="only log errors")
    verbosity.add_argument("-v", "--verbose", action="store_true", help="log debug output")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    level = logging.WARNING
    if args.quiet:
        level = logging.ERROR
    elif args.verbose:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    options = ConvertOptions(dedupe_citations=args.dedupe_citations, max_depth=args.max_depth)
    path: Path = args.path

    if path.is_dir():
        print(f"Processing files in {path}...")
        exports = process_directory(path, options, args.container_class)
    elif path.is_file():
        try:
            exports = process_file(path, options, args.container_class)
        except (ET.ParseError, NoContentError, OSError, UnicodeDecodeError) as e:
            print(f"Error processing {path.name}: {e}", file=sys.stderr)
            return 1
        for export in exports:
            print(f"Created: {export.path.name}")
    else:
        print(f"Error: No such file or directory: {path}", file=sys.stderr)
        return 1

    warning_count = sum(len(e.result.warnings) for e in exports)
    citation_count = sum(len(e.result.citations) for e in exports)
    unhandled: set[str] = set()
    for export in exports:
        unhandled |= export.result.unhandled_tags

    print(f"Done. Wrote {len(exports)} files, {citation_count} citations, {warning_count} warnings.")
    print()
    print("--- Unhandled Tag Summary ---")
    print(report_unhandled(unhandled))

    return 0


if __name__ == "__main__":
    sys.exit(main())
