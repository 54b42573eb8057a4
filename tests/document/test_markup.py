"""Tests for markdown body to HTML rendering."""

from __future__ import annotations

from pressroom.document.markup import separate_blocks, to_html


class TestBlocks:
    def test_headings_and_paragraphs(self):
        html = to_html("# Title\n\nFirst line\nsecond line.\n\n## Section")
        assert html == "<h1>Title</h1>\n<p>First line\nsecond line.</p>\n<h2>Section</h2>"

    def test_fenced_code_is_escaped(self):
        html = to_html("```python\nif a < b:\n    print('**not bold**')\n```")
        assert '<code class="language-python">' in html
        assert "if a &lt; b:" in html
        assert "<strong>" not in html

    def test_unordered_then_ordered_list(self):
        html = to_html("- one\n- two\n1. first\n2. second")
        assert "<li>one</li>" in html
        assert "<li>second</li>" in html
        assert html.index("</ul>") < html.index("<ol>")
        assert "<p>" not in html

    def test_list_directly_after_paragraph(self):
        html = to_html("Before you start:\n- a pen\n- a notebook")
        assert html.startswith("<p>Before you start:</p>")
        assert "<ul>\n<li>a pen</li>\n<li>a notebook</li>\n</ul>" in html

    def test_table(self):
        html = to_html("Prices:\n| Plan | Price |\n|---|---|\n| Basic | $5 |")
        assert "<th>Plan</th>" in html
        assert "<td>Basic</td>" in html
        assert "---" not in html

    def test_blockquote_merges_lines(self):
        html = to_html("> one\n> two")
        assert html.count("<blockquote>") == 1
        assert "one\ntwo" in html

    def test_horizontal_rule(self):
        assert to_html("Above\n\n---\n\nBelow") == "<p>Above</p>\n<hr>\n<p>Below</p>"

    def test_raw_html_passthrough(self):
        assert to_html('<div class="callout">Note</div>') == '<div class="callout">Note</div>'

    def test_prose_is_escaped(self):
        assert to_html("x < y & z") == "<p>x &lt; y &amp; z</p>"


class TestInline:
    def test_emphasis(self):
        html = to_html("***both*** **bold** *em*")
        assert "<strong><em>both</em></strong>" in html
        assert "<strong>bold</strong>" in html
        assert "<em>em</em>" in html

    def test_links_and_images(self):
        html = to_html('See [docs](/blog/docs "Docs") and ![chart](/img/c.png)')
        assert '<a href="/blog/docs" title="Docs">docs</a>' in html
        assert 'src="/img/c.png"' in html
        assert 'alt="chart"' in html

    def test_code_span_is_not_formatted(self):
        assert to_html("`**raw** <tag>`") == "<p><code>**raw** &lt;tag&gt;</code></p>"


class TestSeparateBlocks:
    def test_inserts_blank_line_on_kind_change(self):
        assert separate_blocks("Intro\n- a\n- b\n1. c") == "Intro\n\n- a\n- b\n\n1. c"

    def test_leaves_nested_items_alone(self):
        text = "1. step\n   - detail\n2. next"
        assert separate_blocks(text) == text

    def test_fenced_code_untouched(self):
        text = "```\nnotes\n- not a list\n```"
        assert separate_blocks(text) == text
