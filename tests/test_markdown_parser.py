import pytest

from mdloc.parsers.base_parser import NodeType
from mdloc.parsers.markdown_parser import MarkdownParser
from mdloc.renderers.markdown_renderer import MarkdownRenderer


@pytest.fixture
def parser() -> MarkdownParser:
    return MarkdownParser()


# ---------- Parsing ----------


def test_parse_inline_structure(parser: MarkdownParser) -> None:
    root = parser.parse_markdown_content("Hello *world*, visit [here](https://example.com).\n")
    assert root.type == NodeType.ROOT
    paragraph = root.children[0]
    assert paragraph.type == NodeType.PARAGRAPH
    assert [child.type for child in paragraph.children] == [
        NodeType.TEXT,
        NodeType.EMPHASIS,
        NodeType.TEXT,
        NodeType.LINK,
        NodeType.TEXT,
    ]
    link = paragraph.children[3]
    assert link.url == "https://example.com"
    assert link.children[0].value == "here"


def test_parse_reference_links_and_definitions(parser: MarkdownParser) -> None:
    text = "See [the docs][docs] and [docs].\n\n[docs]: https://example.com/docs \"Docs\"\n"
    root = parser.parse_markdown_content(text)
    paragraph, definition = root.children
    references = [child for child in paragraph.children if child.type == NodeType.LINK_REFERENCE]
    assert [(ref.reference_type, ref.label) for ref in references] == [("full", "docs"), ("shortcut", "docs")]
    assert definition.type == NodeType.DEFINITION
    assert definition.label == "docs"
    assert definition.url == "https://example.com/docs"
    assert definition.title == "Docs"


def test_parse_front_matter_and_footnotes(parser: MarkdownParser) -> None:
    text = "---\ntitle: Hi\n---\n\nSome text[^1].\n\n[^1]: The note\n"
    root = parser.parse_markdown_content(text)
    assert root.children[0].type == NodeType.YAML
    assert root.children[0].value == "title: Hi"
    assert root.children[1].children[1].type == NodeType.FOOTNOTE_REFERENCE
    footnote = root.children[-1]
    assert footnote.type == NodeType.FOOTNOTE_DEFINITION
    assert footnote.label == "1"


def test_inline_html_has_a_position(parser: MarkdownParser) -> None:
    root = parser.parse_markdown_content("Intro\n\nSome <b>bold</b> text\n")
    html = root.children[1].children[1]
    assert html.type == NodeType.HTML
    assert html.value == "<b>"
    assert (html.line, html.column) == (3, 6)


def test_nested_emphasis_has_no_empty_text(parser: MarkdownParser) -> None:
    paragraph = parser.parse_markdown_content("**_Everything in bold_**\n").children[0]
    assert [child.type for child in paragraph.children] == [NodeType.STRONG]
    emphasis = paragraph.children[0].children[0]
    assert [(child.type, child.value) for child in emphasis.children] == [(NodeType.TEXT, "Everything in bold")]


# ---------- Round trip ----------


@pytest.mark.parametrize(
    "text",
    [
        "# Heading\n\nSome *emphasis* and **strong** text.\n",
        "* one\n* two\n* three\n",
        "1. first\n2. second\n",
        "> quoted text\n",
        "```js\nvar a = 1;\n```\n",
        "Text with `code` and ~~strike~~.\n",
        "![alt text](image.png \"Title\")\n",
        "[link](https://example.com \"title\")\n",
        "<div>\nraw html\n</div>\n",
        "| a | b |\n| --- | --- |\n| 1 | 2 |\n",
        "Line one\nline two\n",
        "A [full][ref] reference.\n\n[ref]: https://example.com\n",
        "Escaped \\*stars\\* and 2 < 3\n",
    ],
)
def test_render_round_trip(parser: MarkdownParser, text: str) -> None:
    assert MarkdownRenderer().render(parser.parse_markdown_content(text)) == text


def test_render_is_idempotent(parser: MarkdownParser) -> None:
    renderer = MarkdownRenderer()
    text = "Some_snake_case and a_b *x*\n\n- [ ] item\n\n---\n\n#hash tag\n"
    once = renderer.render(parser.parse_markdown_content(text))
    twice = renderer.render(parser.parse_markdown_content(once))
    assert once == twice


def test_compact_renderer_joins_front_matter() -> None:
    root = MarkdownParser().parse_markdown_content("---\na: b\n---\n\nText\n")
    assert MarkdownRenderer(compact=True).render(root) == "---\na: b\n---\nText\n"


@pytest.mark.parametrize("rule", ["---", "***", "___"])
def test_thematic_break_keeps_its_length(parser: MarkdownParser, rule: str) -> None:
    text = f"A\n\n{rule}\n\nB\n"
    once = MarkdownRenderer().render(parser.parse_markdown_content(text))
    assert once == text
    assert MarkdownRenderer().render(parser.parse_markdown_content(once)) == text
