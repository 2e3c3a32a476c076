"""Serialize a `Node` tree back into Markdown text.

The output style follows what the parser records on the nodes (emphasis and
list markers, code fences) and falls back to ``_``, ``**``, ``~~``, ``*`` and
``---`` for synthesized nodes. Blocks are separated by a blank line, items of
tight lists by a single newline.
"""

from __future__ import annotations

import re
from typing import Callable, Dict, List, Optional

from ..parsers.base_parser import Node, NodeType

_LINE_START = re.compile(r"^([ \t]*)(#|>|[-+](?=[ \t]|$)|[=-]+[ \t]*$)")
_LINE_START_ORDERED = re.compile(r"^([ \t]*\d+)([.)])(?=[ \t]|$)")
_ENTITY_LIKE = re.compile(r"&(#?\w+;)")
_INLINE_HTML_LIKE = re.compile(r"<(?=[A-Za-z/!?])")
_ASCII_PUNCTUATION = set("!\"#$%&'()*+,-./:;<=>?@[\\]^_`{|}~")


class MarkdownRenderer:
    """Renderer for trees produced by `MarkdownParser`."""

    def __init__(
        self,
        *,
        bullet: str = "*",
        emphasis: str = "_",
        strong: str = "**",
        rule: str = "---",
        compact: bool = False,
    ) -> None:
        self.bullet = bullet
        self.emphasis = emphasis
        self.strong = strong
        self.rule = rule
        # single newline after front matter and "---" rules
        self.compact = compact
        self._in_table = False
        self._raw_text = False

        self._blocks_by_type: Dict[NodeType, Callable[[Node], str]] = {
            NodeType.PARAGRAPH: self._paragraph,
            NodeType.HEADING: self._heading,
            NodeType.THEMATIC_BREAK: self._thematic_break,
            NodeType.BLOCKQUOTE: self._blockquote,
            NodeType.LIST: self._list,
            NodeType.LIST_ITEM: lambda node: self._blocks(node.children),
            NodeType.CODE: self._code,
            NodeType.YAML: lambda node: f"---\n{node.value}\n---" if node.value else "---\n---",
            NodeType.DEFINITION: self._definition,
            NodeType.FOOTNOTE_DEFINITION: self._footnote_definition,
            NodeType.TABLE: self._table,
        }
        self._inlines_by_type: Dict[NodeType, Callable[[Node], str]] = {
            NodeType.TEXT: lambda node: self._escape(node.value or ""),
            NodeType.EMPHASIS: lambda node: self._wrap(node, self.emphasis),
            NodeType.STRONG: lambda node: self._wrap(node, self.strong),
            NodeType.DELETE: lambda node: self._wrap(node, "~~"),
            NodeType.INLINE_CODE: self._inline_code,
            NodeType.BREAK: lambda node: "\\\n",
            NodeType.LINK: self._link,
            NodeType.IMAGE: self._image,
            NodeType.LINK_REFERENCE: self._link_reference,
            NodeType.IMAGE_REFERENCE: self._image_reference,
            NodeType.FOOTNOTE_REFERENCE: lambda node: f"[^{node.label}]",
            NodeType.HTML: lambda node: (node.value or "") + self._inlines(node.children),
        }

    def render(self, node: Node) -> str:
        """Render a root node (or any other node) to Markdown."""
        if node.type == NodeType.ROOT:
            text = self._root_blocks(node.children)
            return text + "\n" if text else ""
        return self._node(node)

    # ---------- Blocks ----------

    def _node(self, node: Node) -> str:
        handler = self._blocks_by_type.get(node.type)
        if handler is not None:
            return handler(node)
        return self._inlines([node])

    def _root_blocks(self, nodes: List[Node]) -> str:
        if not self.compact:
            return self._blocks(nodes)
        text = ""
        previous: Optional[str] = None
        for index, child in enumerate(nodes):
            rendered = self._node(child)
            if index:
                compact = previous is not None and previous.endswith("---") and nodes[index - 1].type in (
                    NodeType.YAML,
                    NodeType.THEMATIC_BREAK,
                )
                text += "\n" if compact else "\n\n"
            text += rendered
            previous = rendered
        return text

    def _blocks(self, nodes: List[Node], *, tight: bool = False) -> str:
        separator = "\n" if tight else "\n\n"
        return separator.join(self._node(child) for child in nodes)

    def _paragraph(self, node: Node) -> str:
        if node.marker == "html":
            # paragraph synthesized from flow HTML; its text is not markdown-escaped
            self._raw_text = True
            try:
                return self._inlines(node.children)
            finally:
                self._raw_text = False
        return self._inlines(node.children)

    def _thematic_break(self, node: Node) -> str:
        # markdown-it reports one marker character more than the source had
        return node.marker[0] * 3 if node.marker else self.rule

    def _heading(self, node: Node) -> str:
        hashes = "#" * (node.depth or 1)
        content = self._inlines(node.children)
        return f"{hashes} {content}" if content else hashes

    def _blockquote(self, node: Node) -> str:
        content = self._blocks(node.children)
        return "\n".join(f"> {line}" if line else ">" for line in content.split("\n"))

    def _list(self, node: Node) -> str:
        items = []
        for index, item in enumerate(node.children):
            if node.ordered:
                marker = f"{(node.start or 1) + index}{node.marker or '.'}"
            else:
                marker = node.marker or self.bullet
            content = self._blocks(item.children, tight=not node.spread)
            items.append(self._hang(marker + " ", content, len(marker) + 1))
        return ("\n\n" if node.spread else "\n").join(items)

    @staticmethod
    def _hang(first_prefix: str, content: str, indent: int) -> str:
        if not content:
            return first_prefix.rstrip()
        lines = content.split("\n")
        pad = " " * indent
        rest = [pad + line if line else "" for line in lines[1:]]
        return "\n".join([first_prefix + lines[0]] + rest)

    def _code(self, node: Node) -> str:
        value = node.value or ""
        if not node.marker:
            lines = value.rstrip("\n").split("\n")
            return "\n".join("    " + line if line else "" for line in lines)
        fence = node.marker
        while fence in value:
            fence += fence[0]
        if value and not value.endswith("\n"):
            value += "\n"
        return f"{fence}{node.lang or ''}\n{value}{fence}"

    def _definition(self, node: Node) -> str:
        return f"[{node.label}]: {self._destination(node.url)}{self._title(node.title)}"

    def _footnote_definition(self, node: Node) -> str:
        return self._hang(f"[^{node.label}]: ", self._blocks(node.children), 4)

    def _table(self, node: Node) -> str:
        self._in_table = True
        try:
            rows = [
                [self._inlines(cell.children) for cell in row.children] for row in node.children
            ]
        finally:
            self._in_table = False
        if not rows:
            return ""
        width = max(len(row) for row in rows)
        align = list(node.align or []) + [None] * width
        delimiter = []
        for column in range(width):
            value = align[column]
            if value == "left":
                delimiter.append(":---")
            elif value == "right":
                delimiter.append("---:")
            elif value == "center":
                delimiter.append(":---:")
            else:
                delimiter.append("---")
        lines = [self._row(rows[0], width), self._row(delimiter, width)]
        lines.extend(self._row(row, width) for row in rows[1:])
        return "\n".join(lines)

    @staticmethod
    def _row(cells: List[str], width: int) -> str:
        padded = cells + [""] * (width - len(cells))
        return "| " + " | ".join(padded) + " |"

    # ---------- Inlines ----------

    def _inlines(self, nodes: List[Node]) -> str:
        parts: List[str] = []
        line_start = True
        for node in nodes:
            handler = self._inlines_by_type.get(node.type)
            if handler is None:
                text = self._node(node)
            elif node.type == NodeType.TEXT and not self._raw_text:
                text = self._escape(node.value or "", line_start=line_start)
            else:
                text = handler(node)
            parts.append(text)
            if text:
                line_start = text.endswith("\n")
        return "".join(parts)

    def _wrap(self, node: Node, default: str) -> str:
        marker = node.marker or default
        return f"{marker}{self._inlines(node.children)}{marker}"

    @staticmethod
    def _inline_code(node: Node) -> str:
        value = node.value or ""
        runs = [len(run) for run in re.findall(r"`+", value)]
        length = 1
        while length in runs:
            length += 1
        fence = "`" * length
        if value.startswith("`") or value.endswith("`") or (
            value.startswith(" ") and value.endswith(" ") and value.strip()
        ):
            value = f" {value} "
        return f"{fence}{value}{fence}"

    def _link(self, node: Node) -> str:
        if node.marker == "autolink":
            return f"<{node.url}>"
        content = self._inlines(node.children)
        return f"[{content}]({self._destination(node.url)}{self._title(node.title)})"

    def _image(self, node: Node) -> str:
        alt = self._escape_label(node.alt or "")
        return f"![{alt}]({self._destination(node.url)}{self._title(node.title)})"

    def _link_reference(self, node: Node) -> str:
        content = self._inlines(node.children)
        return self._reference(f"[{content}]", node)

    def _image_reference(self, node: Node) -> str:
        return self._reference(f"![{self._escape_label(node.alt or '')}]", node)

    @staticmethod
    def _reference(prefix: str, node: Node) -> str:
        if node.reference_type == "full":
            return f"{prefix}[{node.label}]"
        if node.reference_type == "collapsed":
            return f"{prefix}[]"
        return prefix

    @staticmethod
    def _destination(url: Optional[str]) -> str:
        url = url or ""
        if not url or re.search(r"[\s<>]", url) or url.count("(") != url.count(")"):
            return "<" + url.replace("<", "\\<").replace(">", "\\>") + ">"
        return url

    @staticmethod
    def _title(title: Optional[str]) -> str:
        if not title:
            return ""
        return ' "' + title.replace("\\", "\\\\").replace('"', '\\"') + '"'

    @staticmethod
    def _escape_label(text: str) -> str:
        return text.replace("\\", "\\\\").replace("[", "\\[").replace("]", "\\]")

    def _escape(self, text: str, *, line_start: bool = False) -> str:
        if self._raw_text:
            # text of flow HTML, where only entities and tags are special
            return _INLINE_HTML_LIKE.sub("&lt;", _ENTITY_LIKE.sub(r"&amp;\1", text))
        out: List[str] = []
        length = len(text)
        for index, char in enumerate(text):
            following = text[index + 1] if index + 1 < length else ""
            previous = text[index - 1] if index else ""
            if char == "\\":
                if not following or following in _ASCII_PUNCTUATION:
                    char = "\\\\"
            elif char in "*`[":
                char = "\\" + char
            elif char == "_":
                if not (previous.isalnum() and following.isalnum()):
                    char = "\\_"
            elif char == "~":
                if following == "~" or previous == "~":
                    char = "\\~"
            elif char == "|" and self._in_table:
                char = "\\|"
            out.append(char)
        escaped = "".join(out)
        escaped = _ENTITY_LIKE.sub(r"\\&\1", escaped)
        escaped = _INLINE_HTML_LIKE.sub(r"\\<", escaped)

        lines = escaped.split("\n")
        for index, line in enumerate(lines):
            if index == 0 and not line_start:
                continue
            line = _LINE_START.sub(r"\1\\\2", line, count=1)
            lines[index] = _LINE_START_ORDERED.sub(r"\1\\\2", line, count=1)
        return "\n".join(lines)
