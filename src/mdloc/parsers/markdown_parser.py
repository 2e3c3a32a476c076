"""Markdown parser that converts GitHub-flavoured Markdown into a `Node` tree.

Implementation note: markdown-it-py produces a flat token stream; this module
re-nests it into typed nodes. Reference links are recognised by wrapping the
inline ``link``/``image`` rules, and reference definitions, which markdown-it
only records in ``env["references"]``, are turned back into ``definition``
nodes so that they survive a round trip.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Dict, List, Optional

from markdown_it import MarkdownIt
from markdown_it.helpers import parseLinkLabel
from markdown_it.rules_inline import StateInline
from markdown_it.rules_inline.image import image as image_rule
from markdown_it.rules_inline.link import link as link_rule
from markdown_it.token import Token
from mdit_py_plugins.footnote import footnote_plugin
from mdit_py_plugins.front_matter import front_matter_plugin

from ..exceptions import ParsingError
from .base_parser import Node, NodeType, Position

logger = logging.getLogger(__name__)

MARKDOWN_EXTENSIONS = {".md", ".markdown", ".mdown", ".mkd", ".rst", ".rmd"}

_DEFINITION_LABEL = re.compile(r"^[ \t]{0,3}\[((?:[^\\\[\]]|\\.)+)\]:")

InlineRule = Callable[[StateInline, bool], bool]


def _keep_link(url: str) -> str:
    return url


def _reference_aware(rule: InlineRule, bracket_offset: int) -> InlineRule:
    """Wrap a link/image rule so the opening token records its reference style."""

    def wrapped(state: StateInline, silent: bool) -> bool:
        start = state.pos
        first_token = len(state.tokens)
        if not rule(state, silent):
            return False
        if silent:
            return True

        bracket = start + bracket_offset
        label_end = parseLinkLabel(state, bracket)
        if label_end < 0:
            return True
        rest = state.src[label_end + 1 : state.pos]
        if rest.startswith("("):
            return True

        if rest in ("", "[]"):
            reference_type = "shortcut" if rest == "" else "collapsed"
            label = state.src[bracket + 1 : label_end]
        else:
            reference_type = "full"
            label = rest[1:-1]

        for token in state.tokens[first_token:]:
            if token.type in ("link_open", "image"):
                token.meta["reference_type"] = reference_type
                token.meta["label"] = label
                break
        return True

    return wrapped


def build_markdown_it() -> MarkdownIt:
    """Create the markdown-it instance used for all documents."""
    md = MarkdownIt("commonmark")
    md.enable(["table", "strikethrough"])
    md.use(front_matter_plugin)
    md.use(footnote_plugin)
    # Keep URLs exactly as written; they may be translation units themselves
    md.normalizeLink = _keep_link  # type: ignore[method-assign]
    md.normalizeLinkText = _keep_link  # type: ignore[method-assign]
    md.validateLink = lambda url: True  # type: ignore[method-assign]
    md.inline.ruler.at("link", _reference_aware(link_rule, 0))
    md.inline.ruler.at("image", _reference_aware(image_rule, 1))
    return md


def _position(token: Token) -> Optional[Position]:
    if token.map:
        return Position(line=token.map[0] + 1, column=1, end_line=token.map[1])
    return None


def _plain_text(tokens: Optional[List[Token]]) -> str:
    parts: List[str] = []
    for token in tokens or []:
        if token.type in ("text", "text_special", "code_inline"):
            parts.append(token.content)
        elif token.type in ("softbreak", "hardbreak"):
            parts.append("\n")
        elif token.children:
            parts.append(_plain_text(token.children))
    return "".join(parts)


def _append_text(target: List[Node], text: str, position: Optional[Position]) -> None:
    # markdown-it leaves empty text tokens around emphasis delimiters
    if not text:
        return
    if target and target[-1].type == NodeType.TEXT and target[-1].value is not None:
        target[-1].value += text
        return
    target.append(Node(NodeType.TEXT, value=text, position=position))


class _TreeBuilder:
    """Re-nests one markdown-it token stream into nodes."""

    def __init__(self) -> None:
        self.root = Node(NodeType.ROOT, position=Position(line=1))
        self._stack: List[Node] = [self.root]
        self._table: Optional[Node] = None
        self._in_head = False

    def _open(self, node: Node) -> None:
        self._stack[-1].children.append(node)
        self._stack.append(node)

    def _close(self) -> None:
        if len(self._stack) > 1:
            self._stack.pop()

    def build(self, tokens: List[Token]) -> Node:
        for token in tokens:
            self._block(token)
        return self.root

    def _block(self, token: Token) -> None:
        kind = token.type
        position = _position(token)
        parent = self._stack[-1]

        if kind == "front_matter":
            parent.children.append(
                Node(NodeType.YAML, value=token.content.rstrip("\n"), position=position)
            )
        elif kind == "paragraph_open":
            if parent.type == NodeType.LIST_ITEM and not token.hidden and len(self._stack) > 2:
                self._stack[-2].spread = True
            self._open(Node(NodeType.PARAGRAPH, position=position))
        elif kind == "heading_open":
            depth = int(token.tag[1:]) if token.tag[1:].isdigit() else 1
            self._open(Node(NodeType.HEADING, depth=depth, marker=token.markup, position=position))
        elif kind == "blockquote_open":
            self._open(Node(NodeType.BLOCKQUOTE, position=position))
        elif kind == "bullet_list_open":
            self._open(Node(NodeType.LIST, marker=token.markup or "*", position=position))
        elif kind == "ordered_list_open":
            start = token.attrGet("start")
            self._open(
                Node(
                    NodeType.LIST,
                    ordered=True,
                    start=int(start) if start is not None else 1,
                    marker=token.markup or ".",
                    position=position,
                )
            )
        elif kind == "list_item_open":
            self._open(Node(NodeType.LIST_ITEM, position=position))
        elif kind == "footnote_open":
            label = token.meta.get("label")
            if label is None:
                label = str(token.meta.get("id", 0) + 1)
            self._open(Node(NodeType.FOOTNOTE_DEFINITION, label=label, position=position))
        elif kind == "table_open":
            self._table = Node(NodeType.TABLE, align=[], position=position)
            self._open(self._table)
        elif kind == "thead_open":
            self._in_head = True
        elif kind == "thead_close":
            self._in_head = False
        elif kind == "tr_open":
            self._open(Node(NodeType.TABLE_ROW, position=position))
        elif kind in ("th_open", "td_open"):
            style = str(token.attrGet("style") or "")
            align = style.split(":", 1)[1].strip() if style.startswith("text-align:") else None
            if self._in_head and self._table is not None and self._table.align is not None:
                self._table.align.append(align)
            self._open(Node(NodeType.TABLE_CELL, position=position))
        elif kind == "table_close":
            self._table = None
            self._close()
        elif kind in (
            "paragraph_close",
            "heading_close",
            "blockquote_close",
            "bullet_list_close",
            "ordered_list_close",
            "list_item_close",
            "footnote_close",
            "tr_close",
            "th_close",
            "td_close",
        ):
            self._close()
        elif kind == "hr":
            parent.children.append(
                Node(NodeType.THEMATIC_BREAK, marker=token.markup, position=position)
            )
        elif kind == "code_block":
            parent.children.append(Node(NodeType.CODE, value=token.content, position=position))
        elif kind == "fence":
            parent.children.append(
                Node(
                    NodeType.CODE,
                    value=token.content,
                    lang=token.info or None,
                    marker=token.markup,
                    position=position,
                )
            )
        elif kind == "html_block":
            parent.children.append(
                Node(NodeType.HTML, value=token.content.rstrip("\n"), position=position)
            )
        elif kind == "inline":
            parent.children.extend(self._inline(token))
        elif kind in ("footnote_block_open", "footnote_block_close", "footnote_anchor",
                      "tbody_open", "tbody_close"):
            pass
        else:
            logger.debug("Ignoring unsupported markdown token %s", kind)

    def _inline(self, token: Token) -> List[Node]:
        base = _position(token)
        base_line = base.line if base else 1
        source = token.content
        cursor = 0

        result: List[Node] = []
        stack: List[Node] = []

        def target() -> List[Node]:
            return stack[-1].children if stack else result

        def locate(fragment: str) -> Position:
            nonlocal cursor
            index = source.find(fragment, cursor)
            if index < 0:
                return Position(line=base_line)
            cursor = index + len(fragment)
            before = source[:index]
            newline = before.rfind("\n")
            return Position(line=base_line + before.count("\n"), column=index - newline)

        def push(node: Node) -> None:
            target().append(node)
            stack.append(node)

        for child in token.children or []:
            kind = child.type
            if kind in ("text", "text_special"):
                _append_text(target(), child.content, base)
            elif kind == "softbreak":
                _append_text(target(), "\n", base)
            elif kind == "hardbreak":
                target().append(Node(NodeType.BREAK, position=base))
            elif kind == "code_inline":
                target().append(
                    Node(NodeType.INLINE_CODE, value=child.content, marker=child.markup, position=base)
                )
            elif kind == "html_inline":
                target().append(Node(NodeType.HTML, value=child.content, position=locate(child.content)))
            elif kind == "em_open":
                push(Node(NodeType.EMPHASIS, marker=child.markup, position=base))
            elif kind == "strong_open":
                push(Node(NodeType.STRONG, marker=child.markup, position=base))
            elif kind == "s_open":
                push(Node(NodeType.DELETE, marker=child.markup, position=base))
            elif kind == "link_open":
                reference_type = child.meta.get("reference_type") if child.meta else None
                if reference_type:
                    node = Node(
                        NodeType.LINK_REFERENCE,
                        label=child.meta.get("label"),
                        reference_type=reference_type,
                        position=base,
                    )
                else:
                    node = Node(
                        NodeType.LINK,
                        url=str(child.attrGet("href") or ""),
                        title=child.attrGet("title"),  # type: ignore[arg-type]
                        marker="autolink" if child.markup == "autolink" else None,
                        position=base,
                    )
                push(node)
            elif kind in ("em_close", "strong_close", "s_close", "link_close"):
                if stack:
                    stack.pop()
            elif kind == "image":
                alt = _plain_text(child.children)
                reference_type = child.meta.get("reference_type") if child.meta else None
                if reference_type:
                    node = Node(
                        NodeType.IMAGE_REFERENCE,
                        alt=alt,
                        label=child.meta.get("label"),
                        reference_type=reference_type,
                        position=base,
                    )
                else:
                    node = Node(
                        NodeType.IMAGE,
                        url=str(child.attrGet("src") or ""),
                        title=child.attrGet("title"),  # type: ignore[arg-type]
                        alt=alt,
                        position=base,
                    )
                target().append(node)
            elif kind == "footnote_ref":
                label = child.meta.get("label")
                if label is None:
                    label = str(child.meta.get("id", 0) + 1)
                target().append(Node(NodeType.FOOTNOTE_REFERENCE, label=label, position=base))
            else:
                logger.debug("Treating inline token %s as text", kind)
                if child.content:
                    _append_text(target(), child.content, base)
        return result


class MarkdownParser:
    """Parser for Markdown content strings."""

    def __init__(self) -> None:
        self._md = build_markdown_it()

    def parse_markdown_content(self, markdown_text: str) -> Node:
        env: Dict[str, Any] = {}
        try:
            tokens = self._md.parse(markdown_text, env)
        except Exception as exc:
            raise ParsingError(f"Unable to parse markdown: {exc}") from exc
        root = _TreeBuilder().build(tokens)
        self._add_definitions(root, markdown_text, env.get("references") or {})
        return root

    def _add_definitions(self, root: Node, source: str, references: Dict[str, Any]) -> None:
        lines = source.split("\n")
        found = []
        for key, ref in references.items():
            line_index = None
            label = None
            ref_map = ref.get("map")
            if ref_map:
                line_index = ref_map[0]
                match = _DEFINITION_LABEL.match(lines[line_index]) if line_index < len(lines) else None
                if match:
                    label = match.group(1)
            if label is None:
                line_index, label = self._find_label(lines, key)
            found.append(
                Node(
                    NodeType.DEFINITION,
                    label=label,
                    url=ref.get("href", ""),
                    title=ref.get("title") or None,
                    position=Position(line=(line_index or 0) + 1),
                )
            )

        for definition in sorted(found, key=lambda node: node.line):
            index = len(root.children)
            for i, child in enumerate(root.children):
                if child.type == NodeType.FOOTNOTE_DEFINITION or (
                    child.position is not None and child.line > definition.line
                ):
                    index = i
                    break
            root.children.insert(index, definition)

    @staticmethod
    def _find_label(lines: List[str], key: str) -> Any:
        normalized = " ".join(key.split()).casefold()
        for index, line in enumerate(lines):
            for match in re.finditer(r"\[((?:[^\\\[\]]|\\.)+)\]:", line):
                if " ".join(match.group(1).split()).casefold() == normalized:
                    return index, match.group(1)
        return len(lines), key
