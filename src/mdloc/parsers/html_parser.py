"""HTML parser used for raw HTML embedded in Markdown.

Fragments are parsed with BeautifulSoup's lenient ``html.parser`` builder;
the HTML sub-walker turns the resulting elements into Markdown nodes.
"""

from __future__ import annotations

from bs4 import BeautifulSoup  # type: ignore[import-untyped]
from bs4.builder import ParserRejectedMarkup  # type: ignore[import-untyped]

from ..exceptions import ParsingError


class HTMLParser:
    """Parser for HTML fragments."""

    def parse_fragment(self, html: str) -> BeautifulSoup:
        """Parse an HTML fragment without adding html/head/body wrappers."""
        try:
            return BeautifulSoup(html, "html.parser")
        except ParserRejectedMarkup as exc:
            raise ParsingError(f"Unable to parse HTML: {exc}") from exc
