"""Shared pytest fixtures for research_to_md tests."""

import tempfile
from pathlib import Path

import pytest

from research_to_md import tree


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def research_page_html(fixtures_dir: Path) -> str:
    """Load research_page.html fixture."""
    return (fixtures_dir / "research_page.html").read_text(encoding="utf-8")


@pytest.fixture
def research_page_xhtml(fixtures_dir: Path) -> str:
    """Load page.xhtml fixture."""
    return (fixtures_dir / "page.xhtml").read_text(encoding="utf-8")


@pytest.fixture
def two_reports_html(fixtures_dir: Path) -> str:
    """Load two_reports.html fixture."""
    return (fixtures_dir / "two_reports.html").read_text(encoding="utf-8")


@pytest.fixture
def research_page_node(research_page_html: str) -> tree.SoupNode:
    """Parse research_page.html into a node."""
    return tree.load_html(research_page_html)


@pytest.fixture
def temp_output_dir():
    """Create a temporary directory for file output tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_html_file(temp_output_dir: Path, research_page_html: str) -> Path:
    """Create a temporary HTML file with the research page content."""
    html_path = temp_output_dir / "solar.html"
    html_path.write_text(research_page_html, encoding="utf-8")
    return html_path
