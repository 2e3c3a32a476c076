"""Extraction walker: collect translatable messages from a Markdown tree.

The walker visits the tree depth-first and accumulates text and inline markup
into a `MessageAccumulator`. Block-level nodes (paragraphs, headings, list
items, breaking HTML tags, ...) end the current message, which is then added
to the translation set if it contains actual text.

Besides collecting resources the walk annotates the tree for the localization
pass: nodes that ended up inside a message are marked ``localizable``, flow
HTML is replaced by the Markdown nodes it contains, and shortcut or collapsed
link references are made explicit so that their label survives translation.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Tuple

from ..config import HtmlConfig
from ..exceptions import MarkdownSyntaxError
from ..frontmatter import YamlFrontMatter
from ..parsers.base_parser import Node, NodeType
from ..storage.models import Resource
from ..storage.translation_set import TranslationSet
from ..utils import escape_invalid_chars, is_translatable, make_key
from .html_tags import (
    is_comment,
    is_directive,
    is_script_or_style,
    link_directive,
    localizable_attribute_values,
    parse_tag,
    translator_comment,
)
from .html_walker import HtmlWalker
from .message import MessageAccumulator, MessageNode

logger = logging.getLogger(__name__)

Handler = Callable[[Node], Optional[MarkdownSyntaxError]]


def unbalanced_tags_error(path: Optional[str], node: Node) -> MarkdownSyntaxError:
    return MarkdownSyntaxError(
        f"Syntax error in markdown file {path} line {node.line} column {node.column}. "
        "Unbalanced HTML tags.",
        path=path,
        line=node.line,
        column=node.column,
    )


class ExtractionWalker:
    """Collect the translatable strings of one parsed Markdown file.

    Parameters
    ----------
    project: str
        Project id stored on every resource.
    source_locale: str
        Locale of the source text.
    path: str | None
        Path of the file, used on resources and in error messages.
    html: HtmlConfig
        Tag tables used to classify inline HTML.
    localize_links: bool
        Initial state of link localization; ``i18n-enable/disable
        localize-links`` comments change it while walking.
    front_matter: YamlFrontMatter | None
        Handler for the front matter when the file's mapping extracts it.
    """

    def __init__(
        self,
        *,
        project: str,
        source_locale: str,
        path: Optional[str],
        html: HtmlConfig,
        localize_links: bool = False,
        translations: Optional[TranslationSet] = None,
        front_matter: Optional[YamlFrontMatter] = None,
        html_walker: Optional[HtmlWalker] = None,
    ) -> None:
        self.project = project
        self.source_locale = source_locale
        self.path = path
        self.html = html
        self.localize_links = localize_links
        self.set = translations if translations is not None else TranslationSet(source_locale)
        self.front_matter = front_matter
        self.html_walker = html_walker or HtmlWalker(html, path=path)

        self.message = MessageAccumulator()
        self.comment: Optional[str] = None
        # inline code components of the current message and their code
        self._code: List[Tuple[MessageNode, str]] = []
        self.resource_index = 0

        self._handlers: Dict[NodeType, Handler] = {
            NodeType.TEXT: self._text,
            NodeType.EMPHASIS: self._span,
            NodeType.STRONG: self._span,
            NodeType.DELETE: self._span,
            NodeType.LINK: self._span,
            NodeType.LINK_REFERENCE: self._link_reference,
            NodeType.IMAGE: self._image,
            NodeType.IMAGE_REFERENCE: self._image,
            NodeType.FOOTNOTE_REFERENCE: self._footnote_reference,
            NodeType.INLINE_CODE: self._inline_code,
            NodeType.DEFINITION: self._definition,
            NodeType.FOOTNOTE_DEFINITION: self._footnote_definition,
            NodeType.HTML: self._html,
            NodeType.YAML: self._yaml,
            # breaks, thematic breaks and code blocks end the message and hold nothing
            NodeType.BREAK: self._boundary,
            NodeType.THEMATIC_BREAK: self._boundary,
            NodeType.CODE: self._boundary,
        }

    def walk(self, ast: Node) -> Optional[MarkdownSyntaxError]:
        """Walk ``ast`` and add its messages to `set`.

        Returns the first syntax error instead of raising it so the caller
        decides whether to give up on the file.
        """
        self.message = MessageAccumulator()
        self.comment = None
        self._code = []
        error = self._walk(ast)
        if error is not None:
            return error
        self._emit_text()
        return None

    def extract(self, ast: Node) -> TranslationSet:
        """Like `walk()`, but raise on syntax errors and return the set."""
        error = self.walk(ast)
        if error is not None:
            raise error
        return self.set

    # ---------- Messages ----------

    def _add_trans_unit(self, text: str, comment: Optional[str] = None) -> None:
        if not text:
            return
        source = escape_invalid_chars(text)
        self.set.add(
            Resource(
                project=self.project,
                key=make_key(source),
                source=source,
                source_locale=self.source_locale,
                comment=comment,
                datatype="markdown",
                path=self.path,
                state="new",
                auto_key=True,
                index=self.resource_index,
            )
        )
        self.resource_index += 1

    def _add_attribute_text(self, text: Optional[str]) -> None:
        """Titles, alt texts and attributes become messages of their own."""
        if text and is_translatable(text, self.localize_links):
            self._add_trans_unit(text.strip())

    def _add_comment(self, comment: str) -> None:
        self.comment = f"{self.comment} {comment}" if self.comment else comment

    def _emit_text(self) -> None:
        message = self.message
        if message.get_text_length():
            text = message.get_minimal_string()
            if message.translatable or is_translatable(text, self.localize_links):
                # component numbers are final only after minimization
                for component, code in self._code:
                    self._add_comment(f"c{component.index} will be replaced with the inline code `{code}`.")
                self._add_trans_unit(text, self.comment)
                # markup outside the minimal string stays untranslated
                for entry in message.get_prefix() + message.get_suffix():
                    extra = entry.extra
                    if entry.type == "component" and isinstance(extra, Node) and extra.type != NodeType.HTML:
                        extra.localizable = False
            self.comment = None
        self.message = MessageAccumulator()
        self._code = []

    # ---------- Walking ----------

    def _walk(self, node: Node) -> Optional[MarkdownSyntaxError]:
        handler = self._handlers.get(node.type, self._container)
        return handler(node)

    def _walk_children(self, node: Node) -> Optional[MarkdownSyntaxError]:
        for child in list(node.children):
            error = self._walk(child)
            if error is not None:
                return error
        return None

    def _container(self, node: Node) -> Optional[MarkdownSyntaxError]:
        # root, paragraph, heading, blockquote, list, listItem, table parts
        self._emit_text()
        return self._walk_children(node)

    def _boundary(self, node: Node) -> Optional[MarkdownSyntaxError]:
        self._emit_text()
        return None

    def _text(self, node: Node) -> Optional[MarkdownSyntaxError]:
        self.message.add_text(node.value or "")
        if self.localize_links:
            self.message.translatable = True
        node.localizable = True
        return None

    def _span(self, node: Node) -> Optional[MarkdownSyntaxError]:
        """emphasis, strong, delete and link"""
        self._add_attribute_text(node.title)
        if self.localize_links and node.url and node.url.strip():
            self._add_trans_unit(node.url.strip())
            node.localized_link = True

        if not node.children:
            return None
        self.message.push(node)
        error = self._walk_children(node)
        if error is not None:
            return error
        self.message.pop()
        node.localizable = all(child.localizable for child in node.children)
        return None

    def _link_reference(self, node: Node) -> Optional[MarkdownSyntaxError]:
        if node.reference_type in (None, "shortcut", "collapsed"):
            if not node.children:
                node.children.append(Node(NodeType.TEXT, value=node.label or "", position=node.position))
            # the label has to survive a translated link text
            node.reference_type = "full"

        node.localizable = True
        self.message.push(node, True)
        error = self._walk_children(node)
        if error is not None:
            return error
        self.message.pop()
        return None

    def _image(self, node: Node) -> Optional[MarkdownSyntaxError]:
        self._add_attribute_text(node.title)
        self._add_attribute_text(node.alt)
        if self.message.get_text_length():
            node.localizable = True
            self.message.push(node)
            self.message.pop()
        return None

    def _footnote_reference(self, node: Node) -> Optional[MarkdownSyntaxError]:
        if self.message.get_text_length():
            node.localizable = True
            self.message.push(node, True)
            self.message.pop()
        return None

    def _inline_code(self, node: Node) -> Optional[MarkdownSyntaxError]:
        node.localizable = True
        self._code.append((self.message.push(node, True), node.value or ""))
        self.message.pop()
        return None

    def _definition(self, node: Node) -> Optional[MarkdownSyntaxError]:
        self._emit_text()
        if self.localize_links and node.url and node.url.strip():
            self._add_trans_unit(node.url.strip())
            node.localized_link = True
        self._add_attribute_text(node.title)
        return None

    def _footnote_definition(self, node: Node) -> Optional[MarkdownSyntaxError]:
        self._emit_text()
        error = self._walk_children(node)
        if error is not None:
            return error
        node.localizable = all(child.localizable for child in node.children)
        return None

    def _yaml(self, node: Node) -> Optional[MarkdownSyntaxError]:
        self._emit_text()
        if self.front_matter is not None:
            self.front_matter.parse(node.value or "")
            self.set.add_all(self.front_matter.get_all())
        return None

    # ---------- HTML ----------

    def _html(self, node: Node) -> Optional[MarkdownSyntaxError]:
        value = node.value or ""
        if not value.strip():
            return None

        if is_comment(value):
            directive = link_directive(value)
            if directive is not None:
                self.localize_links = directive
            elif not is_directive(value):
                comment = translator_comment(value)
                if comment:
                    self._add_comment(comment)
            return None

        if is_script_or_style(value):
            self._emit_text()
            return None

        tag = parse_tag(value)
        if tag is None:
            return self._flow_html(node)

        node.name = tag.name
        non_breaking = self.html.is_non_breaking(tag.name)

        if tag.self_closing:
            if non_breaking and self.message.get_text_length():
                node.localizable = True
                self.message.push(node)
                self.message.pop()
            elif not non_breaking:
                self._emit_text()
            self._add_attributes(tag.name, value)
            return None

        if not tag.closing:
            if self.message.get_text_length():
                if non_breaking:
                    node.localizable = True
                    self.message.push(node)
                    if self.html.is_self_closing(tag.name):
                        self.message.pop()
                else:
                    self._emit_text()
            self._add_attributes(tag.name, value)
            return None

        if self.message.get_text_length():
            if non_breaking and self.message.get_current_level() > 0:
                extra = self.message.pop()
                while self._tag_name(extra) != tag.name and self.message.get_current_level() > 0:
                    extra = self.message.pop()
                if self._tag_name(extra) != tag.name:
                    return unbalanced_tags_error(self.path, node)
                node.localizable = True
            else:
                self._emit_text()
        return None

    @staticmethod
    def _tag_name(extra: object) -> Optional[str]:
        if isinstance(extra, Node) and extra.type == NodeType.HTML:
            return extra.name
        return None

    def _add_attributes(self, tag: str, value: str) -> None:
        for text in localizable_attribute_values(tag, value, self.html):
            self._add_attribute_text(text)

    def _flow_html(self, node: Node) -> Optional[MarkdownSyntaxError]:
        """Replace a block of HTML with the Markdown nodes it holds and walk those."""
        children, error = self.html_walker.walk_html(node)
        if error is not None:
            return error
        logger.debug("Expanded flow HTML at line %d of %s into %d nodes", node.line, self.path, len(children))
        node.children = children
        node.value = None
        node.type = NodeType.PARAGRAPH
        node.marker = "html"
        return self._walk(node)
