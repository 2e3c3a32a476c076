from typing import List, Tuple

import pytest

from mdloc.config import HtmlConfig
from mdloc.exceptions import ParsingError
from mdloc.localization.html_walker import HtmlWalker
from mdloc.parsers.base_parser import Node, NodeType, Position
from mdloc.parsers.markdown_parser import MarkdownParser


class BrokenMarkdownParser(MarkdownParser):
    def parse_markdown_content(self, markdown_text: str) -> Node:
        raise ParsingError("cannot parse")


def flow_html(value: str) -> Node:
    return Node(NodeType.HTML, value=value, position=Position(line=1))


def shape(nodes: List[Node]) -> List[Tuple[NodeType, str]]:
    return [(node.type, node.value or "") for node in nodes]


@pytest.fixture
def walker() -> HtmlWalker:
    return HtmlWalker(HtmlConfig(), path="a.md")


def test_elements_become_open_and_close_nodes(walker: HtmlWalker) -> None:
    nodes, error = walker.walk_html(flow_html('<div class="note">\nSee *this*\n</div>'))
    assert error is None
    assert nodes[0].value == '<div class="note">'
    assert nodes[0].name == "div"
    assert nodes[-1].value == "</div>"
    assert NodeType.EMPHASIS in [node.type for node in nodes]


def test_comments_are_kept(walker: HtmlWalker) -> None:
    nodes, _ = walker.walk_html(flow_html("<!-- a note -->"))
    assert shape(nodes) == [(NodeType.HTML, "<!-- a note -->")]


@pytest.mark.parametrize(
    "text",
    [
        # not a paragraph
        "\n# Not a heading\n",
        # a paragraph with a single child
        "plain words",
    ],
)
def test_text_without_inline_markup_stays_literal(walker: HtmlWalker, text: str) -> None:
    nodes, error = walker.walk_html(flow_html(f"<div>{text}</div>"))
    assert error is None
    assert shape(nodes) == [
        (NodeType.HTML, "<div>"),
        (NodeType.TEXT, text),
        (NodeType.HTML, "</div>"),
    ]


def test_unparsable_text_stays_literal() -> None:
    walker = HtmlWalker(HtmlConfig(), markdown_parser=BrokenMarkdownParser(), path="a.md")
    nodes, error = walker.walk_html(flow_html("<div>Some *text*</div>"))
    assert error is None
    assert shape(nodes) == [
        (NodeType.HTML, "<div>"),
        (NodeType.TEXT, "Some *text*"),
        (NodeType.HTML, "</div>"),
    ]
