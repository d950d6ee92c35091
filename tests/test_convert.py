"""Tests for research_to_md.convert module."""

import logging

import pytest

import research_to_md
from research_to_md import convert, tree


def to_md(markup: str, **options) -> str:
    return convert.convert_tree(tree.load_html(markup), convert.ConvertOptions(**options)).markdown


def run(markup: str, **options) -> convert.ConversionResult:
    return convert.convert_tree(tree.load_html(markup), convert.ConvertOptions(**options))


# ============================================================================
# Block Element Tests
# ============================================================================


class TestBlockElements:
    """Tests for heading, paragraph, list and quote handlers."""

    @pytest.mark.parametrize("level", range(1, 7))
    def test_heading_levels(self, level):
        assert to_md(f"<h{level}>  Title </h{level}>") == "#" * level + " Title\n\n"

    def test_paragraph_trimmed(self):
        assert to_md("<p>  some text  </p>") == "some text\n\n"

    def test_unordered_list(self):
        assert to_md("<ul><li> one </li><li>two</li></ul>") == "- one\n- two\n\n"

    def test_ordered_list_uses_dashes(self):
        assert to_md("<ol><li>one</li><li>two</li></ol>") == "- one\n- two\n\n"

    def test_blockquote(self):
        assert to_md("<blockquote><p>quoted</p></blockquote>") == "> quoted\n\n"

    def test_line_break(self):
        assert to_md("<p>a<br>b</p>") == "a\nb\n\n"


# ============================================================================
# Inline Element Tests
# ============================================================================


class TestInlineElements:
    """Tests for emphasis and code handlers."""

    @pytest.mark.parametrize("tag", ["strong", "b"])
    def test_bold(self, tag):
        assert to_md(f"<{tag}>bold</{tag}>") == "**bold**"

    @pytest.mark.parametrize("tag", ["em", "i"])
    def test_italic(self, tag):
        assert to_md(f"<{tag}>it</{tag}>") == "*it*"

    def test_inline_content_not_trimmed(self):
        assert to_md("<strong> spaced </strong>") == "** spaced **"

    def test_inline_code(self):
        assert to_md("<p>run <code>ls -la</code></p>") == "run `ls -la`\n\n"

    def test_code_block(self):
        assert to_md("<pre>x = 1</pre>") == "```\nx = 1\n```\n\n"

    def test_code_block_with_inner_code_not_double_wrapped(self):
        assert to_md("<pre><code>x = 1</code></pre>") == "```\nx = 1\n```\n\n"

    def test_code_block_language(self):
        markup = '<pre><code class="language-python">x = 1</code></pre>'
        assert to_md(markup) == "```python\nx = 1\n```\n\n"

    def test_text_dollar_escaped(self):
        assert to_md("<p>costs $5</p>") == "costs \\$5\n\n"

    def test_unknown_tags_pass_through(self):
        assert to_md("<section><custom-tag>hello</custom-tag></section>") == "hello"

    def test_unknown_tags_reported(self):
        result = run("<div><custom-tag>hello</custom-tag><mark>x</mark></div>")
        assert result.unhandled_tags == {"custom-tag", "mark"}

    def test_known_layout_tags_not_reported(self):
        result = run("<div><span>a</span><table><tr><td>b</td></tr></table></div>")
        assert result.unhandled_tags == set()

    def test_comments_dropped(self):
        assert to_md("<p>a<!-- hidden -->b</p>") == "ab\n\n"

    def test_script_and_style_dropped(self):
        markup = "<p>a<style>.x{color:red}</style><script>var b = 1;</script>c</p>"
        assert to_md(markup) == "ac\n\n"
        node = tree.load_xml("<div><p>a<style>.x{color:red}</style>c</p></div>")
        assert convert.convert_tree(node).markdown == "ac\n\n"


# ============================================================================
# Citation Tests
# ============================================================================


class TestCitations:
    """Tests for link and citation marker handling."""

    def test_link_becomes_numbered_citation(self):
        assert to_md('<p>Hi <a href="http://e.com/a">cite</a></p>') == "Hi [[1]](http://e.com/a)\n\n"

    def test_space_inserted_before_citation(self):
        assert to_md('<p>Fact<a href="http://e.com/a">x</a>.</p>') == "Fact [[1]](http://e.com/a).\n\n"

    def test_link_without_href_keeps_content(self):
        assert to_md("<p><a>just *text*</a></p>") == "just *text*\n\n"

    def test_empty_href_keeps_content(self):
        assert to_md('<p><a href="">label</a></p>') == "label\n\n"

    def test_dedupe_on_shares_number(self):
        markup = '<p><a href="https://x.com/a?x=1#y">a</a> <a href="https://x.com/a?z=2">b</a></p>'
        result = run(markup, dedupe_citations=True)
        assert result.markdown == "[[1]](https://x.com/a?x=1#y) [[1]](https://x.com/a?z=2)\n\n"
        assert len(result.citations) == 1

    def test_dedupe_off_numbers_separately(self):
        markup = '<p><a href="https://x.com/a?x=1#y">a</a> <a href="https://x.com/a?z=2">b</a></p>'
        result = run(markup, dedupe_citations=False)
        assert result.markdown == "[[1]](https://x.com/a?x=1#y) [[2]](https://x.com/a?z=2)\n\n"
        assert [c.number for c in result.citations] == [1, 2]

    def test_marker_resolves_first_link(self):
        markup = (
            '<p>Claim <span data-state="closed"><button>'
            '<a href="https://a.com/1">a.com</a><a href="https://b.com/2">b.com</a>'
            "</button></span></p>"
        )
        result = run(markup)
        assert result.markdown == "Claim [[1]](https://a.com/1)\n\n"
        assert [c.target for c in result.citations] == ["https://a.com/1"]

    def test_marker_without_link_contributes_nothing(self):
        assert to_md('<p>Claim<span data-state="closed">label</span></p>') == "Claim\n\n"

    def test_open_span_passes_through(self):
        markup = '<p><span data-state="open">see <a href="https://a.com/">x</a></span></p>'
        assert to_md(markup) == "see [[1]](https://a.com/)\n\n"

    def test_nested_marker_inner_target_dropped(self):
        markup = (
            '<p><span data-state="closed"><a href="https://outer.com/">o</a>'
            '<span data-state="closed"><a href="https://inner.com/">i</a></span></span>'
            ' then <a href="https://next.com/">n</a></p>'
        )
        result = run(markup)
        assert result.markdown == "[[1]](https://outer.com/) then [[2]](https://next.com/)\n\n"
        assert [c.key for c in result.citations] == ["https://outer.com/", "https://next.com/"]

    def test_numbering_follows_document_order(self):
        markup = (
            '<h2>T <a href="https://a.com/">a</a></h2>'
            '<ul><li><a href="https://b.com/">b</a></li></ul>'
            '<p><a href="https://a.com/">a again</a></p>'
        )
        assert to_md(markup) == (
            "## T [[1]](https://a.com/)\n\n"
            "- [[2]](https://b.com/)\n\n"
            "[[1]](https://a.com/)\n\n"
        )

    def test_citation_inside_table_cell(self):
        markup = '<table><tr><th>Src</th></tr><tr><td>x <a href="https://a.com/">a</a></td></tr></table>'
        assert to_md(markup) == "| Src |\n| --- |\n| x [[1]](https://a.com/) |\n\n"


# ============================================================================
# Table Delegation Tests
# ============================================================================


class TestTables:
    """Tests for table handling inside the converter."""

    def test_table_repair_warning(self):
        markup = (
            "<table><thead><tr><th>A</th><th>B</th></tr></thead>"
            "<tbody><tr><td>1</td><td>2</td></tr><tr><td>3</td></tr></tbody></table>"
        )
        result = run(markup)
        assert result.markdown == "| A | B |\n| --- | --- |\n| 1 | 2 |\n| 3 |  |\n\n"
        assert result.warnings == [
            "Table row has fewer cells than header (1 vs 2), padding with empty cells"
        ]

    def test_header_stripping_only_in_tables(self):
        markup = "<h1>**Title**</h1><table><tr><th>**Title**</th></tr></table>"
        assert to_md(markup) == "# **Title**\n\n| Title |\n| --- |\n\n"

    def test_cell_formatting_flattened(self):
        markup = "<table><tr><th>H</th></tr><tr><td><p>one</p><p>two</p></td></tr></table>"
        assert to_md(markup) == "| H |\n| --- |\n| one two |\n\n"

    def test_nested_table_omitted(self):
        markup = (
            "<table><tr><th>A</th><th>B</th></tr>"
            "<tr><td>1</td><td>before<table><tr><td>inner</td></tr></table></td></tr>"
            "<tr><td>2</td><td>3</td></tr></table>"
        )
        result = run(markup)
        assert result.markdown == "| A | B |\n| --- | --- |\n| 1 | before |\n| 2 | 3 |\n\n"
        assert result.warnings == ["Nested table detected, skipping"]

    def test_table_outside_cells_reported(self):
        markup = (
            "<table><tr><th>A</th></tr><tr><td>1</td></tr>"
            "<table><tr><td>inner</td></tr></table></table><p>after</p>"
        )
        result = run(markup)
        assert result.markdown == "| A |\n| --- |\n| 1 |\n\nafter\n\n"
        assert result.warnings == ["Nested table detected, skipping"]

    def test_empty_table_warns(self):
        result = run("<p>x</p><table></table>")
        assert result.markdown == "x\n\n"
        assert result.warnings == ["Table has no rows, skipping"]

    def test_warnings_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="research_to_md.convert"):
            run("<table></table>")
        assert "Table has no rows, skipping" in caplog.text


# ============================================================================
# Whole Document Tests
# ============================================================================


class TestConvert:
    """Tests for convert_tree and Converter."""

    def test_package_exposes_module_and_function(self):
        assert research_to_md.convert is convert
        assert hasattr(convert, "ConversionResult")
        assert research_to_md.convert_tree is convert.convert_tree

    def test_end_to_end(self):
        markup = '<h1>R</h1><p>Hi <a href="http://e.com/a">cite</a></p>'
        assert to_md(markup) == "# R\n\nHi [[1]](http://e.com/a)\n\n"

    def test_etree_input(self):
        node = tree.load_xml('<div><h1>R</h1><p>Hi <a href="http://e.com/a">cite</a></p></div>')
        assert convert.convert_tree(node).markdown == "# R\n\nHi [[1]](http://e.com/a)\n\n"

    def test_deterministic(self, research_page_node):
        first = convert.convert_tree(research_page_node)
        second = convert.convert_tree(research_page_node)
        assert first.markdown == second.markdown
        assert first.citations == second.citations

    def test_calls_do_not_share_numbering(self):
        convert.convert_tree(tree.load_html('<a href="https://a.com/">a</a>'))
        result = convert.convert_tree(tree.load_html('<a href="https://b.com/">b</a>'))
        assert result.markdown == " [[1]](https://b.com/)"

    def test_converter_single_use(self):
        converter = convert.Converter()
        converter.run(tree.load_html("<p>x</p>"))
        with pytest.raises(RuntimeError):
            converter.run(tree.load_html("<p>y</p>"))

    def test_default_options(self):
        options = convert.ConvertOptions()
        assert options.dedupe_citations is True
        assert options.max_depth == 200

    def test_depth_guard_flattens(self):
        markup = "<div>" * 6 + "<b>deep $1</b>" + "</div>" * 6
        result = run(markup, max_depth=3)
        assert result.markdown == "deep \\$1"
        assert len(result.warnings) == 1
        assert "flattening" in result.warnings[0]

    def test_research_page(self, research_page_node):
        result = convert.convert_tree(research_page_node)
        md = result.markdown
        assert "# Solar Adoption\n\n" in md
        assert "Costs fell by 90% [[1]](https://example.org/report?utm=1#fig) over a decade.\n\n" in md
        assert "- Module prices [[1]](https://example.org/report?page=2)\n" in md
        assert "- **Policy** support\n" in md
        assert "> Prices cost \\$0.20/W now.\n\n" in md
        assert "| Year | Price |\n| --- | --- |\n| 2010 | 2\\|3 |\n| 2020 |  |\n" in md
        assert "See [[2]](https://data.example.com/set).\n\n" in md
        assert len(result.citations) == 2
        assert len(result.warnings) == 1
