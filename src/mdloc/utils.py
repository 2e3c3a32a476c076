"""String helpers shared by the walkers: keys, cleaning and output paths."""

from __future__ import annotations

import html
import posixpath
import re
import unicodedata
from typing import Dict, Optional

import babel

_HASH_MODULUS = 1073741789  # largest prime that fits in 30 bits
_HASH_MULTIPLE = 65521  # largest prime that fits in 16 bits

_URL_ONLY = re.compile(r"^(https?|github|ftps?|mailto|file|data|irc)://\S+$")
_TAGS = re.compile(r"""<("(\\"|[^"])*"|'(\\'|[^'])*'|[^>])*>""")
_NAMED_ENTITIES = re.compile(r"&[a-zA-Z]+;")
_WHITESPACE_RUN = re.compile(r"[ \n\t\r\f]+")
_INVALID_CHARS = re.compile(r"[\x00-\x08\x0e-\x1f\x7f]")
_NUMERIC_ENTITY = re.compile(r"&#([xX][0-9a-fA-F]+|[0-9]+);")


def hash_key(source: Optional[str]) -> Optional[str]:
    """Stable content hash of ``source`` in the form ``r<number>``.

    The hash runs over UTF-16 code units so keys match those produced by
    other loctool-compatible tools.
    """
    if not source:
        return None
    value = 0
    data = source.encode("utf-16-le", "surrogatepass")
    for index in range(0, len(data), 2):
        value += data[index] | (data[index + 1] << 8)
        value *= _HASH_MULTIPLE
        value %= _HASH_MODULUS
    return f"r{value}"


def _numeric_entity(match: "re.Match[str]") -> str:
    number = match.group(1)
    code = int(number[1:], 16) if number[0] in "xX" else int(number)
    if code == 0 or 0xD800 <= code <= 0xDFFF or code > 0x10FFFF:
        return "�"
    return chr(code)


def unescape_string(string: str) -> str:
    """Decode HTML entities and Markdown backslash escapes."""
    # html.unescape drops control characters, which would change the key
    unescaped = html.unescape(_NUMERIC_ENTITY.sub(_numeric_entity, string))
    unescaped = re.sub(r"^\\\\", r"\\", unescaped)
    unescaped = re.sub(r"([^\\])\\\\", r"\1\\", unescaped)
    return re.sub(r"\\(.)", r"\1", unescaped)


def clean_string(string: str) -> str:
    """Normalise a source string before hashing it into a key."""
    return _WHITESPACE_RUN.sub(" ", unescape_string(string)).strip()


def escape_invalid_chars(string: str) -> str:
    """Replace control characters (other than whitespace) with numeric entities."""
    return _INVALID_CHARS.sub(lambda match: f"&#{ord(match.group(0))};", string)


def make_key(source: str) -> str:
    return hash_key(clean_string(source)) or ""


def _is_ideographic(char: str) -> bool:
    return unicodedata.name(char, "").startswith(("CJK UNIFIED IDEOGRAPH", "CJK COMPATIBILITY IDEOGRAPH"))


def contains_actual_text(string: str) -> bool:
    """True if the string has letters, digits or ideographs outside of tags/entities."""
    cleaned = _NAMED_ENTITIES.sub("", _TAGS.sub("", string))
    return any(char.isalnum() or _is_ideographic(char) for char in cleaned)


def is_translatable(string: Optional[str], localize_links: bool = False) -> bool:
    """Whether an extracted string is worth sending to translators.

    Strings that are empty, only whitespace or punctuation, or (unless links
    are being localized) only a URL are not.
    """
    if not string or not string.strip():
        return False
    if not localize_links and _URL_ONLY.match(string):
        return False
    return contains_actual_text(string)


# ---------- Output paths ----------


def _locale_parts(locale: str) -> Dict[str, str]:
    """Language, script and region of a locale tag as babel parses them."""
    tag = locale.replace("_", "-")
    try:
        parsed = babel.Locale.parse(tag, sep="-", resolve_likely_subtags=False)
        language, region, script = parsed.language, parsed.territory, parsed.script
    except (babel.UnknownLocaleError, ValueError):
        # private-use and unlisted tags such as zxx-XX have no locale data
        try:
            language, region, script = babel.parse_locale(tag, sep="-")[:3]
        except ValueError:
            return {"language": "", "script": "", "region": ""}
    return {"language": language or "", "script": script or "", "region": region or ""}


def normalize_locale(locale: str) -> str:
    """Canonical BCP-47 style spelling: ``zh_hans_cn`` -> ``zh-Hans-CN``."""
    parts = _locale_parts(locale)
    normalized = "-".join(part for part in (parts["language"], parts["script"], parts["region"]) if part)
    return normalized or locale


def format_path(template: str, sourcepath: str = "", locale: str = "en") -> str:
    """Expand a path template such as ``[locale]/[dir]/[filename]``.

    Unknown keywords expand to the locale.
    """
    normalized = normalize_locale(locale)
    parts = _locale_parts(normalized)
    filename = posixpath.basename(sourcepath)
    dirname = posixpath.dirname(sourcepath)
    basename, extension = posixpath.splitext(filename)

    output = []
    i = 0
    while i < len(template):
        char = template[i]
        if char != "[":
            output.append(char)
            i += 1
            continue
        end = template.find("]", i + 1)
        if end < 0:
            end = len(template)
        keyword = template[i + 1 : end]
        i = end + 1

        if keyword == "dir":
            output.append(dirname)
        elif keyword == "filename":
            output.append(filename)
        elif keyword == "extension":
            output.append(extension[1:])
        elif keyword == "basename":
            output.append(basename)
        elif keyword in ("language", "script", "region"):
            output.append(parts[keyword])
        elif keyword == "localeDir":
            output.append(normalized.replace("-", "/"))
        elif keyword == "localeUnder":
            output.append(normalized.replace("-", "_"))
        elif keyword == "localeLower":
            output.append(normalized.lower())
        else:
            output.append(normalized)

    return posixpath.normpath("".join(output))
