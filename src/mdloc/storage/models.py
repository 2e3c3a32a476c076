"""Resource model for extracted and translated strings.

Defines the core entity: `Resource`, one translatable unit of a file.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(slots=True)
class Resource:
    """A source string, optionally paired with its translation."""

    project: str
    key: str
    source: str
    source_locale: str
    target: Optional[str] = None
    target_locale: Optional[str] = None
    comment: Optional[str] = None
    datatype: str = "markdown"
    path: Optional[str] = None
    state: Optional[str] = None
    # key derived from the source text rather than assigned by a developer
    auto_key: bool = False
    index: Optional[int] = None

    @staticmethod
    def make_hash_key(project: str, locale: str, key: str, datatype: str) -> str:
        return f"rs_{project}_{locale}_{key}_{datatype}"

    def hash_key(self) -> str:
        """Lookup key of this resource in a `TranslationSet`."""
        locale = self.target_locale or self.source_locale
        return self.make_hash_key(self.project, locale, self.key, self.datatype)
