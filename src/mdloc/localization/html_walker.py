"""Convert flow HTML embedded in Markdown into Markdown nodes.

Elements are unrolled into an opening ``html`` node, their converted children
and a closing ``html`` node, which is the shape inline HTML already has in a
Markdown tree. Text inside the HTML is parsed as Markdown again so that
emphasis, links and the like become proper nodes.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Tuple

from bs4.element import Comment, NavigableString, PageElement, Tag  # type: ignore[import-untyped]

from ..config import HtmlConfig
from ..exceptions import MarkdownSyntaxError, ParsingError
from ..parsers.base_parser import Node, NodeType, Position
from ..parsers.html_parser import HTMLParser
from ..parsers.markdown_parser import MarkdownParser

logger = logging.getLogger(__name__)

_LEADING_SPACE = re.compile(r"^\s+")
_TRAILING_SPACE = re.compile(r"\s+$")
_UNWRAPPED = {"html", "head", "body"}
_RAW_TEXT_ELEMENTS = {"script", "style"}


def _edge_space(pattern: "re.Pattern[str]", text: str, position: Optional[Position]) -> List[Node]:
    match = pattern.search(text)
    if match is None:
        return []
    return [Node(NodeType.TEXT, value=match.group(0), position=position)]


class HtmlWalker:
    """Sub-walker used by the extraction walker for flow HTML."""

    def __init__(
        self,
        config: HtmlConfig,
        *,
        markdown_parser: Optional[MarkdownParser] = None,
        html_parser: Optional[HTMLParser] = None,
        path: Optional[str] = None,
    ) -> None:
        self.config = config
        self.path = path
        self._markdown = markdown_parser or MarkdownParser()
        self._html = html_parser or HTMLParser()

    def walk_html(self, node: Node) -> Tuple[List[Node], Optional[MarkdownSyntaxError]]:
        """Return the Markdown nodes equivalent to the flow HTML in ``node``."""
        value = node.value or ""
        try:
            soup = self._html.parse_fragment(value.strip())
        except ParsingError as exc:
            return [], MarkdownSyntaxError(
                f"Syntax error in markdown file {self.path} line {node.line} "
                f"column {node.column}. Bad HTML tag: {exc}",
                path=self.path,
                line=node.line,
                column=node.column,
            )

        nodes = _edge_space(_LEADING_SPACE, value, node.position)
        for element in soup.contents:
            nodes.extend(self._convert(element, node.position))
        nodes.extend(_edge_space(_TRAILING_SPACE, value, node.position))
        return nodes, None

    def _convert(self, element: PageElement, position: Optional[Position]) -> List[Node]:
        if isinstance(element, Tag):
            return self._element(element, position)
        if isinstance(element, Comment):
            return [Node(NodeType.HTML, value=f"<!--{element}-->", position=position)]
        if type(element) is NavigableString:
            return self._text(str(element), position)
        # doctype, CDATA, processing instructions
        return [Node(NodeType.HTML, value=element.output_ready(), position=position)]

    def _element(self, element: Tag, position: Optional[Position]) -> List[Node]:
        name = element.name
        if name in _UNWRAPPED:
            nodes: List[Node] = []
            for child in element.contents:
                nodes.extend(self._convert(child, position))
            return nodes
        if name in _RAW_TEXT_ELEMENTS:
            return [Node(NodeType.HTML, value=str(element), position=position)]

        attributes = []
        for attribute, value in element.attrs.items():
            if isinstance(value, (list, tuple)):
                value = " ".join(value)
            if value == "":
                attributes.append(attribute)
            else:
                attributes.append(f'{attribute}="{str(value).replace(chr(34), "&quot;")}"')
        opening = f"<{name}{' ' if attributes else ''}{' '.join(attributes)}>"

        nodes = [Node(NodeType.HTML, value=opening, name=name, position=position)]
        for child in element.contents:
            nodes.extend(self._convert(child, position))
        if element.contents or not element.can_be_empty_element:
            nodes.append(Node(NodeType.HTML, value=f"</{name}>", name=name, position=position))
        return nodes

    def _text(self, text: str, position: Optional[Position]) -> List[Node]:
        try:
            root = self._markdown.parse_markdown_content(text)
        except ParsingError:
            logger.debug("Keeping unparsable HTML text as-is: %r", text)
            return [Node(NodeType.TEXT, value=text, position=position)]

        first = root.children[0] if root.children else None
        if first is not None and first.type == NodeType.PARAGRAPH and len(first.children) > 1:
            for child in first.children:
                for descendant in child.walk():
                    descendant.position = position
            nodes = _edge_space(_LEADING_SPACE, text, position)
            nodes.extend(first.children)
            nodes.extend(_edge_space(_TRAILING_SPACE, text, position))
            return nodes
        return [Node(NodeType.TEXT, value=text, position=position)]
