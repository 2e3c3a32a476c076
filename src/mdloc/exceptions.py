"""Custom exception hierarchy for mdloc.

These exceptions allow callers to discriminate error categories
and handle them appropriately while preserving the original context.
"""

from __future__ import annotations

from typing import Optional


class MdlocError(Exception):
    """Base class for all mdloc exceptions."""


class ConfigError(MdlocError):
    """Raised when configuration loading or validation fails."""


class ParsingError(MdlocError):
    """Raised when a document fails to parse."""


class MarkdownSyntaxError(ParsingError):
    """Raised for structural problems in a Markdown file (unbalanced HTML tags etc.).

    The walkers return instances of this class instead of raising them; the
    file-level API raises it so that a batch driver can skip the file.
    """

    def __init__(
        self,
        message: str,
        *,
        path: Optional[str] = None,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.path = path
        self.line = line
        self.column = column


class TranslationSetError(MdlocError):
    """Raised when a resource conflicts with one already in a translation set."""
