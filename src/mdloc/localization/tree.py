"""Flatten node trees into arrays and rebuild them.

Localization replaces runs of nodes whose translated form may have a
different number of nodes, which is far simpler on a flat array. In the array
a container is represented by a ``start`` copy and an ``end`` copy around its
children; leaves appear once with ``use="startend"``.
"""

from __future__ import annotations

from typing import List, Optional

from ..parsers.base_parser import Node, NodeType


def to_array(node: Node) -> List[Node]:
    """Pre-order flatten ``node``. Leaves are not copied."""
    if not node.children:
        node.use = "startend"
        return [node]
    nodes = [node.shallow_copy("start")]
    for child in node.children:
        nodes.extend(to_array(child))
    nodes.append(node.shallow_copy("end"))
    return nodes


def from_array(nodes: List[Node]) -> Optional[Node]:
    """Rebuild the tree described by a flattened array."""
    root: Optional[Node] = None
    stack: List[Node] = []

    def attach(node: Node) -> None:
        nonlocal root
        if stack:
            stack[-1].children.append(node)
        elif root is None:
            root = node

    for entry in nodes:
        if entry.use == "start":
            container = entry.shallow_copy()
            attach(container)
            stack.append(container)
        elif entry.use == "end":
            if stack:
                stack.pop()
        else:
            entry.use = None
            attach(entry)
    return root


def unroll_html(node: Node) -> Node:
    """Turn html nodes that gained children back into open/body/close siblings.

    This happens when a translated run puts text inside a component that
    stands for an inline HTML tag.
    """
    children: List[Node] = []
    for child in node.children:
        unroll_html(child)
        if child.type == NodeType.HTML and child.children:
            body = child.children
            child.children = []
            children.append(child)
            children.extend(body)
            if child.name:
                children.append(
                    Node(NodeType.HTML, value=f"</{child.name}>", name=child.name, position=child.position)
                )
        else:
            children.append(child)
    node.children = children
    return node
