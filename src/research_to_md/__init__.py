"""
research_to_md - Convert rendered research documents to Markdown.

This package provides tools for:
- Converting an HTML/XHTML element tree to Markdown (convert)
- Numbering and deduplicating citation links (citations)
- Repairing tables into rectangular Markdown tables (tables)
- Exporting saved pages to .md files from the command line (export)
"""

from research_to_md.sanitize import (
    escape_inline,
    sanitize_cell,
    sanitize_heading_cell,
    tidy_markdown,
)

from research_to_md.citations import (
    Citation,
    CitationRegistry,
    base_url,
    render_citation,
)

from research_to_md.tree import (
    Node,
    NodeKind,
    SoupNode,
    EtreeNode,
    get_class,
    has_class,
    is_tag,
    is_link,
    is_citation_marker,
    load_html,
    load_xml,
)

from research_to_md.tables import (
    normalize_table,
)

from research_to_md.convert import (
    ConvertOptions,
    ConversionResult,
    Converter,
    convert_tree,
)

from research_to_md.export import (
    Export,
    NoContentError,
    find_research_roots,
    html_to_markdown,
    process_file,
    process_directory,
    report_unhandled,
    main,
)

__version__ = "0.1.0"
