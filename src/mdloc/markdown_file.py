"""One Markdown source file: parse, extract and localize it."""

from __future__ import annotations

import logging
import posixpath
import re
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Tuple

from .config import MappingConfig, Settings
from .frontmatter import YamlFrontMatter
from .localization.extract import ExtractionWalker
from .localization.html_walker import HtmlWalker
from .localization.localize import LocalizationWalker
from .parsers.base_parser import Node
from .parsers.markdown_parser import MarkdownParser
from .renderers.markdown_renderer import MarkdownRenderer
from .storage.translation_set import TranslationSet
from .utils import format_path

if TYPE_CHECKING:
    from .markdown_file_type import MarkdownFileType

logger = logging.getLogger(__name__)

# Rewrites applied to the source before parsing:
# readme.io style [block:...] widgets are fenced so they are not translated,
# outside of code "#Heading" gets its missing space and fences start at the
# beginning of a line after a blank one
_PREPROCESS: List[Tuple["re.Pattern[str]", str]] = [
    (re.compile(r"\[block:"), "```\n[block:"),
    (re.compile(r"\[/block\]"), "[/block]\n```"),
]

_HEADING_WITHOUT_SPACE = re.compile(r"^(#+)([^#\s])")
_FENCE = re.compile(r"^\s*(```|~~~)")


def _normalize_lines(data: str) -> str:
    lines: List[str] = []
    fence: Optional[str] = None
    for line in data.split("\n"):
        match = _FENCE.match(line)
        if match is not None and fence in (None, match.group(1)):
            line = line.lstrip()
            if fence is None:
                if lines and lines[-1].strip():
                    lines.append("")
                fence = match.group(1)
            else:
                fence = None
        elif fence is None:
            line = _HEADING_WITHOUT_SPACE.sub(r"\1 \2", line)
        lines.append(line)
    return "\n".join(lines)


def preprocess(data: str) -> str:
    """Normalize Markdown that common renderers accept but CommonMark does not."""
    for pattern, replacement in _PREPROCESS:
        data = pattern.sub(replacement, data)
    return _normalize_lines(data)


class MarkdownFile:
    """A Markdown file of a localization project.

    Parameters
    ----------
    path: str | None
        Path of the file relative to the project root.
    settings: Settings | None
        Project settings; defaults to those of ``file_type`` or the environment.
    file_type: MarkdownFileType | None
        Owning file type. It provides the path mappings and pseudo bundles and
        collects new strings and translation status across files.
    """

    def __init__(
        self,
        path: Optional[str] = None,
        *,
        settings: Optional[Settings] = None,
        file_type: Optional["MarkdownFileType"] = None,
    ) -> None:
        if settings is None:
            settings = file_type.settings if file_type is not None else Settings()
        self.settings = settings
        self.path = path
        self.type = file_type
        self.mapping: Optional[MappingConfig] = (
            file_type.get_mapping(path) if file_type is not None and path else None
        )
        self.ast: Optional[Node] = None
        self.translation_status: Dict[str, bool] = {}
        self.localize_links = settings.markdown.localize_links

        project = settings.project
        self.set = TranslationSet(project.source_locale)
        self.front_matter: Optional[YamlFrontMatter] = None
        frontmatter = self.mapping.frontmatter if self.mapping is not None else False
        if frontmatter:
            self.front_matter = YamlFrontMatter(
                project=project.id,
                path=path,
                source_locale=project.source_locale,
                fields=frontmatter if isinstance(frontmatter, list) else None,
            )

        self._parser = MarkdownParser()
        self._renderer = MarkdownRenderer(compact=True)

    # ---------- Extraction ----------

    def parse(self, data: str) -> None:
        """Parse Markdown text and extract its strings.

        Raises `MarkdownSyntaxError` when the file contains unbalanced inline
        HTML or HTML that cannot be parsed.
        """
        self.ast = self._parser.parse_markdown_content(preprocess(data))
        walker = ExtractionWalker(
            project=self.settings.project.id,
            source_locale=self.settings.project.source_locale,
            path=self.path,
            html=self.settings.html,
            localize_links=self.settings.markdown.localize_links,
            translations=self.set,
            front_matter=self.front_matter,
            html_walker=HtmlWalker(self.settings.html, markdown_parser=self._parser, path=self.path),
        )
        error = walker.walk(self.ast)
        if error is not None:
            raise error
        self.localize_links = walker.localize_links

    def extract(self) -> None:
        """Read the file from the project root and parse it."""
        if not self.path:
            logger.warning("Cannot extract a Markdown file without a path")
            return
        full_path = Path(self.settings.project.root) / self.path
        try:
            data = full_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Could not read file %s: %s", full_path, exc)
            return
        self.parse(data)

    def get_translation_set(self) -> TranslationSet:
        return self.set

    # ---------- Localization ----------

    def _walker(self) -> LocalizationWalker:
        project = self.settings.project
        file_type = self.type
        return LocalizationWalker(
            project=project.id,
            source_locale=project.source_locale,
            pseudo_locale=project.pseudo_locale,
            path=self.path,
            html=self.settings.html,
            localize_links=self.settings.markdown.localize_links,
            nopseudo=project.nopseudo,
            identify=project.identify,
            mark_fully_translated=self.settings.markdown.fully_translated,
            front_matter=self.front_matter,
            pseudos=file_type.pseudos if file_type is not None else None,
            missing_pseudo=file_type.missing_pseudo if file_type is not None else None,
            new_resources=file_type.new_resources if file_type is not None else None,
            pseudo_resources=file_type.pseudo if file_type is not None else None,
        )

    def localize_text(self, translations: TranslationSet, locale: str) -> str:
        """Return the text of this file translated into ``locale``.

        With ``markdown.fully_translated`` on, a file that is missing any
        translation is returned in the source language.
        """
        if self.ast is None:
            logger.warning("Localizing %s before it was parsed", self.path)
            return ""
        walker = self._walker()
        tree = walker.localize(self.ast, locale, translations)
        fully_translated = walker.translation_status.get(locale, True)
        self.translation_status[locale] = fully_translated
        if self.settings.markdown.fully_translated and not fully_translated:
            tree = self.ast
        return self._renderer.render(tree)

    def localize(self, translations: TranslationSet, locales: Iterable[str]) -> None:
        """Write one localized copy of the file per target locale."""
        target_dir = Path(self.settings.project.target_dir)
        for locale in locales:
            if locale == self.settings.project.source_locale:
                continue
            localized_path = self.get_localized_path(locale)
            text = self.localize_text(translations, locale)

            output = target_dir / localized_path
            logger.info("Writing file %s", output)
            output.parent.mkdir(parents=True, exist_ok=True)
            output.write_text(text, encoding="utf-8")

            if self.type is not None:
                self.type.add_translation_status(
                    path=localized_path,
                    locale=locale,
                    fully_translated=self.translation_status.get(locale, False),
                )

    def get_translation_status(self) -> Dict[str, bool]:
        return dict(self.translation_status)

    # ---------- Paths ----------

    def get_output_locale(self, mapping: MappingConfig, locale: str) -> str:
        """Locale spelling used in output paths, after the locale maps."""
        if locale in mapping.locale_map:
            return mapping.locale_map[locale].replace("_", "-")
        return self.settings.project.locale_map.get(locale, locale)

    def get_localized_path(self, locale: str) -> str:
        """Output path of this file for ``locale``, relative to the target dir."""
        path = self.path or ""
        mapping = self.mapping
        if mapping is None and self.type is not None:
            mapping = self.type.get_mapping(posixpath.normpath(path))
        if mapping is None:
            mapping = MappingConfig()

        return format_path(mapping.template, path, self.get_output_locale(mapping, locale))
