"""Localization walker: produce a translated copy of a Markdown tree.

The tree is cloned and flattened with `to_array()`. Consecutive nodes that the
extraction walk marked ``localizable`` form a run; each run is rebuilt into the
same message that was extracted, looked up in the translations and replaced by
the nodes of the translated message. Components in the translation refer back
to the source nodes by index, so translators may reorder them.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Tuple

from ..config import HtmlConfig
from ..exceptions import MarkdownSyntaxError
from ..frontmatter import YamlFrontMatter
from ..parsers.base_parser import Node, NodeType
from ..pseudo import PseudoBundle
from ..storage.models import Resource
from ..storage.translation_set import TranslationSet
from ..utils import escape_invalid_chars, is_translatable, make_key
from .extract import unbalanced_tags_error
from .html_tags import (
    is_comment,
    is_script_or_style,
    link_directive,
    localize_attributes,
    parse_tag,
)
from .message import MessageAccumulator, MessageNode
from .tree import from_array, to_array, unroll_html

logger = logging.getLogger(__name__)

Handler = Callable[[Node, MessageAccumulator, str, TranslationSet], Optional[MarkdownSyntaxError]]


class LocalizationWalker:
    """Translate the tree of one Markdown file into target locales.

    ``translation_status`` maps each locale localized so far to whether every
    string of the file had a translation.
    """

    def __init__(
        self,
        *,
        project: str,
        source_locale: str,
        path: Optional[str],
        html: HtmlConfig,
        pseudo_locale: str = "zxx-XX",
        localize_links: bool = False,
        nopseudo: bool = False,
        identify: bool = False,
        mark_fully_translated: bool = False,
        front_matter: Optional[YamlFrontMatter] = None,
        pseudos: Optional[Dict[str, PseudoBundle]] = None,
        missing_pseudo: Optional[PseudoBundle] = None,
        new_resources: Optional[TranslationSet] = None,
        pseudo_resources: Optional[TranslationSet] = None,
    ) -> None:
        self.project = project
        self.source_locale = source_locale
        self.path = path
        self.html = html
        self.pseudo_locale = pseudo_locale
        self.initial_localize_links = localize_links
        self.localize_links = localize_links
        self.nopseudo = nopseudo
        self.identify = identify
        self.mark_fully_translated = mark_fully_translated
        self.front_matter = front_matter
        self.pseudos = pseudos or {}
        self.missing_pseudo = missing_pseudo
        self.new_resources = new_resources if new_resources is not None else TranslationSet(source_locale)
        self.pseudo_resources = pseudo_resources if pseudo_resources is not None else TranslationSet(source_locale)
        self.translation_status: Dict[str, bool] = {}

        self._handlers: Dict[NodeType, Handler] = {
            NodeType.TEXT: self._text,
            NodeType.EMPHASIS: self._span,
            NodeType.STRONG: self._span,
            NodeType.DELETE: self._span,
            NodeType.LINK: self._span,
            NodeType.LINK_REFERENCE: self._link_reference,
            NodeType.IMAGE: self._image,
            NodeType.IMAGE_REFERENCE: self._image,
            NodeType.FOOTNOTE_REFERENCE: self._self_closing,
            NodeType.INLINE_CODE: self._self_closing,
            NodeType.DEFINITION: self._definition,
            NodeType.HTML: self._html,
            NodeType.YAML: self._yaml,
        }

    # ---------- Public API ----------

    def try_localize(
        self, ast: Node, locale: str, translations: TranslationSet
    ) -> Tuple[Optional[Node], Optional[MarkdownSyntaxError]]:
        """Return the localized tree, or the syntax error that stopped the walk."""
        self.translation_status[locale] = True
        self.localize_links = self.initial_localize_links

        nodes = to_array(ast.clone())
        message = MessageAccumulator()
        start = -1
        end = -1
        i = 0
        while i < len(nodes):
            node = nodes[i]
            handler = self._handlers.get(node.type)
            if handler is not None:
                error = handler(node, message, locale, translations)
                if error is not None:
                    return None, error

            if node.localizable:
                if start < 0:
                    start = i
                end = i
            elif start > -1:
                nodes, delta = self._replace_run(nodes, start, end, message, locale, translations)
                i += delta
                start = -1
                message = MessageAccumulator()
            i += 1

        if start > -1:
            nodes, _ = self._replace_run(nodes, start, end, message, locale, translations)

        if self.mark_fully_translated and self.translation_status[locale]:
            self._mark_fully_translated(nodes)

        tree = from_array(nodes)
        if tree is None:
            tree = Node(NodeType.ROOT)
        return unroll_html(tree), None

    def localize(self, ast: Node, locale: str, translations: TranslationSet) -> Node:
        """Return a localized copy of ``ast``; the source tree is not modified."""
        tree, error = self.try_localize(ast, locale, translations)
        if error is not None:
            raise error
        assert tree is not None
        return tree

    # ---------- Runs ----------

    def _replace_run(
        self,
        nodes: List[Node],
        start: int,
        end: int,
        message: MessageAccumulator,
        locale: str,
        translations: TranslationSet,
    ) -> Tuple[List[Node], int]:
        """Splice the translation of ``nodes[start:end + 1]`` into the array.

        Returns the new array and the change in its length.
        """
        if not message.get_text_length():
            return nodes, 0
        if not (message.translatable or is_translatable(message.get_minimal_string(), self.localize_links)):
            return nodes, 0

        translated = self._get_translation_nodes(locale, translations, message)
        if translated is None:
            return nodes, 0

        replacement: List[Node] = []
        for entry in message.get_prefix():
            replacement.extend(self._document_nodes(entry))
        replacement.extend(translated)
        for entry in message.get_suffix():
            replacement.extend(self._document_nodes(entry))

        removed = end - start + 1
        return nodes[:start] + replacement + nodes[end + 1 :], len(replacement) - removed

    def _get_translation_nodes(
        self, locale: str, translations: TranslationSet, message: MessageAccumulator
    ) -> Optional[List[Node]]:
        text = message.get_minimal_string()
        key = make_key(escape_invalid_chars(text))
        translation = self._localize_string(text, locale, translations)
        if not translation:
            return None

        translated = MessageAccumulator.create(translation, message)
        nodes: List[Node] = []
        for entry in translated.root.to_array()[1:-1]:
            # components the source does not have are dropped, their text is kept
            if entry.type == "component" and entry.extra is None:
                continue
            nodes.extend(self._document_nodes(entry))
        if translated.has_unknown_components():
            logger.warning(
                "Translation for %s of %r (key %s) has more components in it than the source: %r",
                locale,
                text,
                key,
                translation,
            )

        if self.identify:
            span = Node(NodeType.HTML, value=f'<span x-locid="{key}">', name="span", use="start")
            nodes = [span] + nodes + [span.shallow_copy("end")]
        return nodes

    def _document_nodes(self, entry: MessageNode) -> List[Node]:
        if entry.type == "text":
            return [Node(NodeType.TEXT, value=entry.value, localizable=True, use="startend")]
        extra: Node = entry.extra
        use = entry.use or "startend"
        if use == "startend" and extra.type == NodeType.HTML and extra.name and not self._is_void(extra):
            # an empty element still needs its closing tag
            return [extra.shallow_copy("start"), extra.shallow_copy("end")]
        return [extra.shallow_copy(use)]

    def _is_void(self, node: Node) -> bool:
        tag = parse_tag(node.value or "")
        return tag is None or tag.self_closing or self.html.is_self_closing(tag.name)

    def _localize_string(
        self, source: str, locale: str, translations: TranslationSet, *, nopseudo: bool = False
    ) -> str:
        """Translation of ``source``, a pseudo translation or the source itself.

        Anything but a real translation marks the file as not fully
        translated for ``locale`` and, when no pseudo bundle covers the
        locale, records ``source`` as a new resource.
        """
        if not source:
            return source
        text = source
        key = make_key(escape_invalid_chars(source))

        if locale == self.pseudo_locale and self.nopseudo:
            return source

        translated = translations.get(Resource.make_hash_key(self.project, locale, key, "markdown"))
        if translated is not None and translated.target is not None:
            return translated.target

        pseudo = self.pseudos.get(locale)
        if pseudo is not None:
            pseudo_source = pseudo.get_pseudo_source_locale()
            if pseudo_source != self.source_locale:
                # derive the pseudo text from a translation, e.g. en-GB from en-US
                base = translations.get(Resource.make_hash_key(self.project, pseudo_source, key, "markdown"))
                if base is not None and base.target:
                    source = base.target
            translation = pseudo.get_string(source)
            self.pseudo_resources.add(
                Resource(
                    project=self.project,
                    key=key,
                    source=escape_invalid_chars(text),
                    source_locale=self.source_locale,
                    target=translation,
                    target_locale=locale,
                    datatype="markdown",
                    path=self.path,
                    state="new",
                    auto_key=True,
                )
            )
        else:
            logger.debug("New string found for %s: %r", locale, source)
            self.new_resources.add(
                Resource(
                    project=self.project,
                    key=key,
                    source=escape_invalid_chars(source),
                    source_locale=self.source_locale,
                    target=escape_invalid_chars(source),
                    target_locale=locale,
                    datatype="markdown",
                    path=self.path,
                    state="new",
                    auto_key=True,
                )
            )
            translation = source
            if self.missing_pseudo is not None and not nopseudo and not self.nopseudo:
                translation = self.missing_pseudo.get_string(source)

        self.translation_status[locale] = False
        return translation

    def _mark_fully_translated(self, nodes: List[Node]) -> None:
        flag = "fullyTranslated: true"
        if len(nodes) > 1 and nodes[1].type == NodeType.YAML:
            value = nodes[1].value
            nodes[1].value = f"{value}\n{flag}" if value else flag
        else:
            nodes.insert(1, Node(NodeType.YAML, value=flag, use="startend"))

    # ---------- Node handlers ----------

    def _text(
        self, node: Node, message: MessageAccumulator, locale: str, translations: TranslationSet
    ) -> Optional[MarkdownSyntaxError]:
        if node.localizable:
            message.add_text(node.value or "")
            if self.localize_links:
                message.translatable = True
        return None

    def _localize_link_fields(self, node: Node, locale: str, translations: TranslationSet) -> None:
        if node.use == "end":
            return
        if node.title and is_translatable(node.title, self.localize_links):
            node.title = self._localize_string(node.title.strip(), locale, translations)
        if node.localized_link and node.url and node.url.strip():
            node.url = self._localize_string(node.url.strip(), locale, translations, nopseudo=True)

    def _span(
        self, node: Node, message: MessageAccumulator, locale: str, translations: TranslationSet
    ) -> Optional[MarkdownSyntaxError]:
        self._localize_link_fields(node, locale, translations)
        if node.localizable:
            if node.use == "start":
                message.push(node)
            elif node.use == "end":
                message.pop()
        return None

    def _link_reference(
        self, node: Node, message: MessageAccumulator, locale: str, translations: TranslationSet
    ) -> Optional[MarkdownSyntaxError]:
        if node.localizable:
            if node.use in ("start", "startend"):
                message.push(node, True)
            if node.use in ("end", "startend"):
                message.pop()
        return None

    def _image(
        self, node: Node, message: MessageAccumulator, locale: str, translations: TranslationSet
    ) -> Optional[MarkdownSyntaxError]:
        if node.title and is_translatable(node.title, self.localize_links):
            node.title = self._localize_string(node.title.strip(), locale, translations)
        if node.alt and is_translatable(node.alt, self.localize_links):
            node.alt = self._localize_string(node.alt.strip(), locale, translations)
        if node.localizable:
            message.push(node)
            message.pop()
        return None

    def _self_closing(
        self, node: Node, message: MessageAccumulator, locale: str, translations: TranslationSet
    ) -> Optional[MarkdownSyntaxError]:
        """footnote references and inline code"""
        if node.localizable:
            message.push(node, True)
            message.pop()
        return None

    def _definition(
        self, node: Node, message: MessageAccumulator, locale: str, translations: TranslationSet
    ) -> Optional[MarkdownSyntaxError]:
        self._localize_link_fields(node, locale, translations)
        return None

    def _yaml(
        self, node: Node, message: MessageAccumulator, locale: str, translations: TranslationSet
    ) -> Optional[MarkdownSyntaxError]:
        if self.front_matter is not None:
            node.value = self.front_matter.localize_text(translations, locale)
        return None

    def _html(
        self, node: Node, message: MessageAccumulator, locale: str, translations: TranslationSet
    ) -> Optional[MarkdownSyntaxError]:
        value = node.value or ""
        if not value.strip() or node.use == "end":
            return None
        if is_comment(value):
            directive = link_directive(value)
            if directive is not None:
                self.localize_links = directive
            return None
        if is_script_or_style(value):
            return None

        tag = parse_tag(value)
        if tag is None:
            logger.debug("Leaving HTML as-is in %s: %r", self.path, value)
            return None

        node.name = tag.name
        if not tag.closing:
            node.value = localize_attributes(
                tag.name,
                value,
                self.html,
                lambda text: self._localize_string(text, locale, translations)
                if is_translatable(text, self.localize_links)
                else None,
            )

        if not node.localizable:
            return None
        if tag.self_closing:
            message.push(node)
            message.pop()
        elif not tag.closing:
            message.push(node)
            if self.html.is_self_closing(tag.name):
                message.pop()
        elif message.get_current_level() > 0:
            extra = message.pop()
            while self._tag_name(extra) != tag.name and message.get_current_level() > 0:
                extra = message.pop()
            if self._tag_name(extra) != tag.name:
                return unbalanced_tags_error(self.path, node)
        return None

    @staticmethod
    def _tag_name(extra: object) -> Optional[str]:
        if isinstance(extra, Node) and extra.type == NodeType.HTML:
            return extra.name
        return None
