"""In-memory collection of resources keyed by their hash key."""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional

from ..exceptions import TranslationSetError
from .models import Resource


class TranslationSet:
    """Append-only set of resources.

    Adding a resource whose hash key is already present is a no-op when the
    source text agrees or when the key was generated from the text; a
    developer-assigned key with a different source raises
    `TranslationSetError`.
    """

    def __init__(self, source_locale: str = "zxx-XX") -> None:
        self.source_locale = source_locale
        self._resources: Dict[str, Resource] = {}

    def add(self, resource: Resource) -> None:
        key = resource.hash_key()
        existing = self._resources.get(key)
        if existing is None:
            self._resources[key] = resource
            return
        if existing.source != resource.source and not (existing.auto_key or resource.auto_key):
            raise TranslationSetError(
                f"Resource {resource.key!r} already has source {existing.source!r}, "
                f"cannot add {resource.source!r}"
            )

    def add_all(self, resources: Iterable[Resource]) -> None:
        for resource in resources:
            self.add(resource)

    def add_set(self, other: Optional["TranslationSet"]) -> None:
        if other is not None:
            self.add_all(other.get_all())

    def get(self, hash_key: str) -> Optional[Resource]:
        return self._resources.get(hash_key)

    def get_by_source(self, source: str) -> Optional[Resource]:
        for resource in self._resources.values():
            if resource.source == source:
                return resource
        return None

    def get_all(self) -> List[Resource]:
        return list(self._resources.values())

    def is_empty(self) -> bool:
        return not self._resources

    def clear(self) -> None:
        self._resources.clear()

    def __len__(self) -> int:
        return len(self._resources)

    def __iter__(self) -> Iterator[Resource]:
        return iter(list(self._resources.values()))

    def __contains__(self, hash_key: object) -> bool:
        return hash_key in self._resources
