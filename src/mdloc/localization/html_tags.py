"""Classification of raw HTML snippets found in Markdown.

All patterns are compiled once and only used through ``match``/``finditer``,
so no scan state is shared between calls.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, List, Optional

from ..config import HtmlConfig

_ATTRIBUTE_VALUE = r"""(?:'(?:\\'|[^'])*'|"(?:\\"|[^"])*"|[^\s"'=<>`]+)"""

_TAG = re.compile(
    r"^<(/?)\s*(\w+)((?:\s+[\w:.-]+(?:\s*=\s*" + _ATTRIBUTE_VALUE + r")?)*)\s*(/?)>$"
)
_ATTRIBUTE = re.compile(
    r"""\s([\w:.-]+)(?:\s*=\s*(?:'((?:\\'|[^'])*)'|"((?:\\"|[^"])*)"|([^\s"'=<>`]+)))?"""
)
_TRANSLATOR_COMMENT = re.compile(r"<!--\s*[iI]18[nN]\s*(.*?)\s*-->", re.S)
_DIRECTIVE_COMMENT = re.compile(r"i18n-(en|dis)able\s+(\S*)")


@dataclass(frozen=True)
class HtmlTag:
    """A single opening, closing or self-closing tag."""

    name: str
    closing: bool = False
    self_closing: bool = False


@dataclass(frozen=True)
class HtmlAttribute:
    name: str
    value: str
    start: int
    end: int
    quote: str = ""


def parse_tag(value: str) -> Optional[HtmlTag]:
    """Return the tag in ``value`` if it holds exactly one tag, else None."""
    match = _TAG.match(value.strip())
    if match is None:
        return None
    return HtmlTag(
        name=match.group(2).lower(),
        closing=match.group(1) == "/",
        self_closing=match.group(4) == "/",
    )


def is_comment(value: str) -> bool:
    return value.strip().startswith("<!--")


def is_script_or_style(value: str) -> bool:
    trimmed = value.strip().lower()
    return trimmed.startswith("<script") or trimmed.startswith("<style")


def link_directive(value: str) -> Optional[bool]:
    """True/False for an ``i18n-enable/disable localize-links`` comment, else None."""
    match = _DIRECTIVE_COMMENT.search(value)
    if match is None or match.group(2) != "localize-links":
        return None
    return match.group(1) == "en"


def is_directive(value: str) -> bool:
    return _DIRECTIVE_COMMENT.search(value) is not None


def translator_comment(value: str) -> Optional[str]:
    """Text of an ``<!-- i18n ... -->`` comment meant for translators."""
    match = _TRANSLATOR_COMMENT.search(value)
    if match is None:
        return None
    text = match.group(1).strip()
    if text.startswith(":"):
        text = text[1:].strip()
    return text or None


def find_attributes(value: str) -> List[HtmlAttribute]:
    """Attributes of the first tag in ``value`` with the span of each value."""
    end = value.find(">")
    head = value if end < 0 else value[: end + 1]
    attributes = []
    for match in _ATTRIBUTE.finditer(head):
        for group, quote in ((2, "'"), (3, '"'), (4, "")):
            if match.group(group) is not None:
                attributes.append(
                    HtmlAttribute(
                        name=match.group(1),
                        value=match.group(group),
                        start=match.start(group),
                        end=match.end(group),
                        quote=quote,
                    )
                )
                break
        else:
            attributes.append(
                HtmlAttribute(name=match.group(1), value="", start=match.end(), end=match.end())
            )
    return attributes


def localizable_attribute_values(tag: str, value: str, config: HtmlConfig) -> List[str]:
    """Values of the attributes of ``value`` that carry translatable text."""
    return [
        attribute.value.strip()
        for attribute in find_attributes(value)
        if attribute.value.strip() and config.is_localizable_attribute(tag, attribute.name)
    ]


def localize_attributes(
    tag: str, value: str, config: HtmlConfig, translate: Callable[[str], Optional[str]]
) -> str:
    """Replace the translatable attribute values of the tag in ``value``.

    The rest of the tag text is left exactly as written.
    """
    pieces = []
    position = 0
    for attribute in find_attributes(value):
        source = attribute.value.strip()
        if not source or not config.is_localizable_attribute(tag, attribute.name):
            continue
        translation = translate(source)
        if not translation or translation == source:
            continue
        if attribute.quote == '"':
            translation = translation.replace('"', "&quot;")
        elif attribute.quote == "'":
            translation = translation.replace("'", "&#39;")
        else:
            translation = '"' + translation.replace('"', "&quot;") + '"'
        pieces.append(value[position : attribute.start])
        pieces.append(translation)
        position = attribute.end
    pieces.append(value[position:])
    return "".join(pieces)
