"""YAML front-matter handling for Markdown files.

String values of the front matter become resources keyed by their dotted
path (``title``, ``meta.description``, ``tags.0``) prefixed with a hash of the
file path, so that equally named fields of different files stay distinct.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Iterator, List, Optional, Sequence, Tuple, Union

import yaml

from .storage.models import Resource
from .storage.translation_set import TranslationSet
from .utils import hash_key

logger = logging.getLogger(__name__)

YAML_DATATYPE = "x-yaml"

PathPart = Union[str, int]


def _string_leaves(data: Any, prefix: Tuple[PathPart, ...] = ()) -> Iterator[Tuple[Tuple[PathPart, ...], str]]:
    if isinstance(data, dict):
        for key, value in data.items():
            yield from _string_leaves(value, prefix + (str(key),))
    elif isinstance(data, list):
        for index, value in enumerate(data):
            yield from _string_leaves(value, prefix + (index,))
    elif isinstance(data, str):
        yield prefix, data


def _set_path(data: Any, path: Tuple[PathPart, ...], value: str) -> None:
    target = data
    for part in path[:-1]:
        target = target[part]
    target[path[-1]] = value


class YamlFrontMatter:
    """Front matter of one Markdown file."""

    def __init__(
        self,
        *,
        project: str,
        path: Optional[str],
        source_locale: str,
        fields: Optional[Sequence[str]] = None,
    ) -> None:
        self.project = project
        self.path = path
        self.source_locale = source_locale
        # None means every field
        self.fields = list(fields) if fields is not None else None
        self._prefix = (hash_key(path) + ".") if path else ""
        self._text = ""
        self._data: Any = None
        self._resources: List[Resource] = []

    def _wanted(self, dotted: str) -> bool:
        if self.fields is None:
            return True
        return any(dotted == name or dotted.startswith(name + ".") for name in self.fields)

    def _leaves(self) -> Iterator[Tuple[Tuple[PathPart, ...], str, str]]:
        for path, value in _string_leaves(self._data):
            dotted = ".".join(str(part) for part in path)
            if value.strip() and self._wanted(dotted):
                yield path, dotted, value

    def parse(self, text: str) -> None:
        """Parse the YAML between the ``---`` delimiters."""
        self._text = text
        self._resources = []
        try:
            self._data = yaml.safe_load(text) if text.strip() else None
        except yaml.YAMLError as exc:
            logger.warning("Could not parse front matter of %s: %s", self.path, exc)
            self._data = None
            return
        if not isinstance(self._data, dict):
            self._data = None
            return

        for _, dotted, value in self._leaves():
            self._resources.append(
                Resource(
                    project=self.project,
                    key=self._prefix + dotted,
                    source=value,
                    source_locale=self.source_locale,
                    datatype=YAML_DATATYPE,
                    path=self.path,
                    state="new",
                )
            )

    def get_all(self) -> List[Resource]:
        return list(self._resources)

    def localize_text(self, translations: TranslationSet, locale: str) -> str:
        """Return the front matter with every translated field replaced."""
        if self._data is None:
            return self._text

        data = copy.deepcopy(self._data)
        for path, dotted, _ in self._leaves():
            hashkey = Resource.make_hash_key(self.project, locale, self._prefix + dotted, YAML_DATATYPE)
            translated = translations.get(hashkey)
            if translated is not None and translated.target:
                _set_path(data, path, translated.target)

        return yaml.safe_dump(
            data, sort_keys=False, allow_unicode=True, default_flow_style=False
        ).rstrip("\n")
