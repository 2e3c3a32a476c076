"""Project-wide handling of Markdown files.

`MarkdownFileType` decides which paths are Markdown sources, creates
`MarkdownFile` objects for them and collects what the files report while
they are localized: strings without a translation and whether each output
file was fully translated.
"""

from __future__ import annotations

import fnmatch
import json
import logging
import posixpath
from pathlib import Path
from typing import Dict, List, Optional

from .config import MappingConfig, Settings
from .markdown_file import MarkdownFile
from .parsers.markdown_parser import MARKDOWN_EXTENSIONS
from .pseudo import PseudoBundle
from .storage.translation_set import TranslationSet
from .utils import normalize_locale

logger = logging.getLogger(__name__)

DEFAULT_MAPPINGS: Dict[str, MappingConfig] = {"**/*.md": MappingConfig()}
TRANSLATION_STATUS_FILE = "translation-status.json"


def glob_match(pattern: str, path: str) -> bool:
    """fnmatch with ``**/`` also matching files at the top level."""
    if fnmatch.fnmatchcase(path, pattern):
        return True
    return pattern.startswith("**/") and fnmatch.fnmatchcase(path, pattern[3:])


class MarkdownFileType:
    """Factory and collector for the Markdown files of one project."""

    datatype = "markdown"

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        pseudos: Optional[Dict[str, PseudoBundle]] = None,
        missing_pseudo: Optional[PseudoBundle] = None,
    ) -> None:
        self.settings = settings or Settings()
        source_locale = self.settings.project.source_locale

        self.extracted = TranslationSet(source_locale)
        self.new_resources = TranslationSet(source_locale)
        self.pseudo = TranslationSet(source_locale)
        # locale -> bundle used instead of real translations
        self.pseudos: Dict[str, PseudoBundle] = dict(pseudos or {})
        # fills in strings that have no translation yet
        self.missing_pseudo = None if self.settings.project.nopseudo else missing_pseudo
        self.translation_status: Dict[str, List[str]] = {"translated": [], "untranslated": []}

    @property
    def mappings(self) -> Dict[str, MappingConfig]:
        return self.settings.markdown.mappings or DEFAULT_MAPPINGS

    def get_mapping(self, path: Optional[str]) -> Optional[MappingConfig]:
        """Mapping of the first glob that matches ``path``."""
        if path is None:
            return None
        for pattern, mapping in self.mappings.items():
            if glob_match(pattern, path):
                return mapping
        return None

    def get_default_mapping(self) -> MappingConfig:
        return DEFAULT_MAPPINGS["**/*.md"]

    def _in_other_locale_dir(self, path: str) -> bool:
        project = self.settings.project
        source_locale = normalize_locale(project.source_locale)
        targets = {normalize_locale(locale) for locale in project.locales + [project.pseudo_locale]}
        targets.discard(source_locale)
        for part in posixpath.dirname(path).split("/"):
            if part and normalize_locale(part) in targets:
                return True
        return False

    def handles(self, path: str) -> bool:
        """Whether ``path`` is a Markdown source file of this project.

        Files that already sit in the output directory of another locale are
        not sources.
        """
        root, extension = posixpath.splitext(path)
        if extension.lower() not in MARKDOWN_EXTENSIONS:
            logger.debug("Not handling %s: extension", path)
            return False
        if self._in_other_locale_dir(path):
            logger.debug("Not handling %s: already localized", path)
            return False
        normalized = root + ".md"
        handled = any(
            glob_match(pattern, path) or glob_match(pattern, normalized) for pattern in self.mappings
        )
        logger.debug("%s %s", "Handling" if handled else "Not handling", path)
        return handled

    def new_file(self, path: str) -> MarkdownFile:
        return MarkdownFile(path, settings=self.settings, file_type=self)

    # ---------- Collected resources ----------

    def get_extracted(self) -> TranslationSet:
        return self.extracted

    def add_set(self, translations: TranslationSet) -> None:
        self.extracted.add_set(translations)

    def get_new(self) -> TranslationSet:
        return self.new_resources

    def get_pseudo(self) -> TranslationSet:
        return self.pseudo

    def get_pseudo_bundle(self, locale: str) -> Optional[PseudoBundle]:
        return self.pseudos.get(locale)

    # ---------- Translation status ----------

    def add_translation_status(self, *, path: str, locale: str, fully_translated: bool) -> None:
        key = "translated" if fully_translated else "untranslated"
        self.translation_status[key].append(path)
        logger.debug("%s (%s) is %s", path, locale, key)

    def project_close(self) -> Optional[Path]:
        """Write the translation status report when fully-translated mode is on."""
        if not self.settings.markdown.fully_translated:
            return None
        report = Path(self.settings.project.root) / TRANSLATION_STATUS_FILE
        report.write_text(json.dumps(self.translation_status, indent=4), encoding="utf-8")
        logger.info("Wrote translation status to %s", report)
        return report
