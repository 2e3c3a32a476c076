"""Interface of the pseudo-localization bundles the localizer can use."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class PseudoBundle(Protocol):
    """Turns source text into pseudo-localized text for one locale."""

    def get_string(self, source: str) -> str:
        ...

    def get_pseudo_source_locale(self) -> str:
        """Locale whose text the pseudo strings are derived from."""
        ...
