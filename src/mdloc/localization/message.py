"""Accumulate a run of text and inline markup into a translatable message.

Inline markup becomes numbered components, so a run such as
``This is *very* important`` is sent for translation as
``This is <c0>very</c0> important``. Components that only wrap the whole
message, empty components at the edges and edge whitespace are kept out of
the minimal string (as the prefix and suffix) and spliced back around the
translation later.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

_WHITESPACE = "\\s\u2000-\u200d\u2028\u2029\u202f\u205f\u2060"
_WHITESPACE_START = re.compile(f"^[{_WHITESPACE}]+")
_WHITESPACE_END = re.compile(f"[{_WHITESPACE}]+$")
_WHITESPACE_ALL = re.compile(f"[{_WHITESPACE}]+")

_PAIRED_COMPONENT = re.compile(r"(<(c\d+)>.*?</\2>)", re.S)
_OPEN_COMPONENT = re.compile(r"^<c(\d+)>")
_SELF_CLOSING_COMPONENT = re.compile(r"(<c(\d+)/>)")


@dataclass(slots=True, eq=False)
class MessageNode:
    """One element of a message tree: the root, a text run or a component."""

    type: str
    value: str = ""
    index: int = -1
    extra: Any = None
    non_optimizable: bool = False
    use: Optional[str] = None
    children: List["MessageNode"] = field(default_factory=list)
    parent: Optional["MessageNode"] = field(default=None, repr=False)

    def add(self, child: "MessageNode") -> None:
        child.parent = self
        self.children.append(child)

    def copy(self, use: Optional[str]) -> "MessageNode":
        return replace(self, use=use, children=[], parent=None)

    def to_array(self) -> List["MessageNode"]:
        """Flatten into start/end copies for components with children."""
        if self.type == "text":
            return [self.copy(None)]
        if not self.children and self.type == "component":
            return [self.copy("startend")]
        nodes = [self.copy("start")]
        for child in self.children:
            nodes.extend(child.to_array())
        nodes.append(self.copy("end"))
        return nodes


class MessageAccumulator:
    """Builder for one translatable message."""

    def __init__(self) -> None:
        self.root = MessageNode("root")
        self._current = self.root
        self.component_index = 0
        # set by walkers when link localization makes any text translatable
        self.translatable = False
        self._text = ""
        self._mapping: Dict[str, Any] = {}
        self._prefixes: List[MessageNode] = []
        self._suffixes: List[MessageNode] = []
        self._minimized = False

    @classmethod
    def create(cls, translation: str, source: Optional["MessageAccumulator"] = None) -> "MessageAccumulator":
        """Build a message from a translated string.

        Components are matched to the source message by the index in their
        tag, so translators may reorder or repeat them. A component whose
        index the source does not know keeps ``extra=None``.
        """
        message = cls()
        if translation:
            mapping = source.get_mapping() if source is not None else {}
            message._parse(translation, mapping, message.root)
        return message

    def _parse(self, string: str, mapping: Dict[str, Any], parent: MessageNode) -> None:
        parts = _PAIRED_COMPONENT.split(string)
        i = 0
        while i < len(parts):
            part = parts[i]
            match = _OPEN_COMPONENT.match(part)
            if match and i % 3 == 1:
                index = match.group(1)
                length = len(match.group(0))
                component = MessageNode("component", index=int(index), extra=mapping.get(f"c{index}"))
                self._parse(part[length : len(part) - length - 1], mapping, component)
                parent.add(component)
                i += 2
                continue
            if part:
                subparts = _SELF_CLOSING_COMPONENT.split(part)
                j = 0
                while j < len(subparts):
                    subpart = subparts[j]
                    if j % 3 == 1:
                        index = subparts[j + 1]
                        parent.add(
                            MessageNode("component", index=int(index), extra=mapping.get(f"c{index}"))
                        )
                        j += 2
                        continue
                    if subpart:
                        parent.add(MessageNode("text", value=subpart))
                    j += 1
            i += 1

    # ---------- Building ----------

    def add_text(self, text: str) -> None:
        self._current.add(MessageNode("text", value=text))
        self._text += text

    def push(self, extra: Any, non_optimizable: bool = False) -> MessageNode:
        """Open a component for ``extra``; text added until `pop()` lands inside it."""
        node = MessageNode(
            "component",
            index=self.component_index,
            extra=extra,
            non_optimizable=non_optimizable,
        )
        self.component_index += 1
        self._current.add(node)
        self._current = node
        self._mapping[f"c{node.index}"] = extra
        return node

    def pop(self) -> Any:
        """Close the innermost component and return its ``extra``."""
        if self._current.parent is None:
            logger.debug("Unbalanced component pop ignored")
            return None
        extra = self._current.extra
        self._current = self._current.parent
        return extra

    # ---------- Queries ----------

    def get_text_length(self) -> int:
        return len(_WHITESPACE_ALL.sub("", self._text).strip())

    def get_current_level(self) -> int:
        level = 0
        node = self._current
        while node.parent is not None:
            level += 1
            node = node.parent
        return level

    def get_mapping(self) -> Dict[str, Any]:
        return self._mapping

    def get_extra(self, index: int) -> Any:
        return self._mapping.get(f"c{index}")

    def get_string(self) -> str:
        return self._get_string(self.root)

    def get_minimal_string(self) -> str:
        self._minimize()
        return self._get_string(self.root)

    def get_prefix(self) -> List[MessageNode]:
        self._minimize()
        return self._prefixes

    def get_suffix(self) -> List[MessageNode]:
        self._minimize()
        return self._suffixes

    def has_unknown_components(self) -> bool:
        return any(
            node.type == "component" and node.extra is None for node in self.root.to_array()
        )

    @staticmethod
    def _get_string(root: MessageNode) -> str:
        parts: List[str] = []
        for child in root.children:
            for node in child.to_array():
                if node.type == "text":
                    parts.append(node.value)
                elif node.use == "start":
                    parts.append(f"<c{node.index}>")
                elif node.use == "end":
                    parts.append(f"</c{node.index}>")
                else:
                    parts.append(f"<c{node.index}/>")
        return "".join(parts)

    # ---------- Minimisation ----------

    def _is_empty(self, node: MessageNode) -> bool:
        if node.type == "text":
            return not _WHITESPACE_ALL.sub("", node.value)
        if node.type == "component":
            if node.non_optimizable:
                return False
            return all(self._is_empty(child) for child in node.children)
        return True

    @staticmethod
    def _edge_nodes(node: MessageNode) -> List[MessageNode]:
        return [n for n in node.to_array() if n.type != "text" or n.value]

    def _minimize(self) -> None:
        if self._minimized:
            return

        changed = True
        while changed and self.root.children:
            changed = False

            # outer components wrap the whole message without adding text to it
            subroot = self.root
            while (
                len(subroot.children) == 1
                and subroot.children[0].type == "component"
                and not subroot.children[0].non_optimizable
            ):
                subroot = subroot.children[0]
                self._prefixes.append(subroot.copy("start"))
                self._suffixes.insert(0, subroot.copy("end"))
                changed = True

            children = list(subroot.children)

            start = 0
            while start < len(children) and self._is_empty(children[start]):
                self._prefixes.extend(self._edge_nodes(children[start]))
                start += 1
                changed = True
            children = children[start:]

            end = len(children) - 1
            while end > 0 and self._is_empty(children[end]):
                self._suffixes[0:0] = self._edge_nodes(children[end])
                end -= 1
                changed = True
            children = children[: end + 1]

            if children and children[0].type == "text":
                match = _WHITESPACE_START.match(children[0].value)
                if match:
                    children[0].value = children[0].value[match.end() :]
                    self._prefixes.append(MessageNode("text", value=match.group(0)))
                    changed = True
            if children and children[-1].type == "text":
                match = _WHITESPACE_END.search(children[-1].value)
                if match:
                    children[-1].value = children[-1].value[: match.start()]
                    self._suffixes.insert(0, MessageNode("text", value=match.group(0)))
                    changed = True

            self.root.children = []
            for child in children:
                self.root.add(child)

        self.component_index = 0
        self._mapping = {}
        self._renumber(self.root)
        self._minimized = True

    def _renumber(self, node: MessageNode) -> None:
        if node.type == "component":
            node.index = self.component_index
            self.component_index += 1
            self._mapping[f"c{node.index}"] = node.extra
        for child in node.children:
            self._renumber(child)
