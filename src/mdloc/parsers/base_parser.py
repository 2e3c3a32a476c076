"""Data structures for parsed documents.

Parsers turn raw documents into a tree of typed `Node` objects. The node kinds
form a closed set (`NodeType`); the walkers dispatch on it with one handler
table each.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterator, List, Optional


class NodeType(str, Enum):
    """Every node kind the parsers can produce."""

    ROOT = "root"
    PARAGRAPH = "paragraph"
    HEADING = "heading"
    THEMATIC_BREAK = "thematicBreak"
    BLOCKQUOTE = "blockquote"
    LIST = "list"
    LIST_ITEM = "listItem"
    CODE = "code"
    HTML = "html"
    TEXT = "text"
    EMPHASIS = "emphasis"
    STRONG = "strong"
    DELETE = "delete"
    INLINE_CODE = "inlineCode"
    BREAK = "break"
    LINK = "link"
    IMAGE = "image"
    LINK_REFERENCE = "linkReference"
    IMAGE_REFERENCE = "imageReference"
    DEFINITION = "definition"
    FOOTNOTE_REFERENCE = "footnoteReference"
    FOOTNOTE_DEFINITION = "footnoteDefinition"
    YAML = "yaml"
    TABLE = "table"
    TABLE_ROW = "tableRow"
    TABLE_CELL = "tableCell"


@dataclass(slots=True)
class Position:
    """Source location of a node, 1-based."""

    line: int
    column: int = 1
    end_line: Optional[int] = None


@dataclass(slots=True)
class Node:
    """A single element of a parsed Markdown document.

    Attributes
    ----------
    type: NodeType
        The node kind.
    value: str | None
        Raw text or markup for text, html, inlineCode, code and yaml nodes.
    children: list[Node]
        Child nodes of container kinds.
    localizable: bool
        Set by the extraction walker when the node ended up inside a
        translatable run. A container is localizable only when all of its
        children are.
    use: str | None
        "start", "end" or "startend" on nodes that live in a flattened array.
    name: str | None
        Lower-cased tag name of html nodes that hold a single tag.
    """

    type: NodeType
    value: Optional[str] = None
    children: List["Node"] = field(default_factory=list)
    url: Optional[str] = None
    title: Optional[str] = None
    alt: Optional[str] = None
    label: Optional[str] = None
    reference_type: Optional[str] = None
    # serializer hints
    depth: Optional[int] = None
    ordered: bool = False
    start: Optional[int] = None
    spread: bool = False
    marker: Optional[str] = None
    lang: Optional[str] = None
    align: Optional[List[Optional[str]]] = None
    name: Optional[str] = None
    localizable: bool = False
    localized_link: bool = False
    use: Optional[str] = None
    position: Optional[Position] = None

    def clone(self) -> "Node":
        """Return a deep structural copy of this node and its subtree."""
        copied = replace(self, children=[child.clone() for child in self.children])
        if self.align is not None:
            copied.align = list(self.align)
        return copied

    def shallow_copy(self, use: Optional[str] = None) -> "Node":
        """Copy the node's own fields without its children."""
        return replace(self, children=[], use=use)

    def walk(self) -> Iterator["Node"]:
        """Yield this node and all descendants in pre-order."""
        yield self
        for child in self.children:
            yield from child.walk()

    @property
    def line(self) -> int:
        return self.position.line if self.position else 0

    @property
    def column(self) -> int:
        return self.position.column if self.position else 0

