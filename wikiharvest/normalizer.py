"""
Markup Normalizer
=================
Cleans raw wiki page markup so it can be wrapped in a synthetic root and
handed to the lenient XML parser.

Steps:
1. **Line endings**: ``\\r\\n`` and lone ``\\r`` become ``\\n``
2. **Inline tags**: cross-reference wrappers such as ``<page>Entity:Foo</page>``
   are replaced by their inner text so they do not show up as child elements
3. **Stray specials**: a bare ``&`` or a ``<`` that cannot open a tag is
   escaped, so comparisons in free text (``a < b && c``) survive verbatim
"""

import re
from functools import lru_cache
from typing import Iterable, Pattern, Tuple

DEFAULT_INLINE_TAGS: Tuple[str, ...] = ("page",)

# & that does not start a predefined or numeric character reference
_BARE_AMPERSAND = re.compile(r'&(?!(?:amp|lt|gt|quot|apos|#[0-9]+|#x[0-9a-fA-F]+);)')

# < that cannot start a tag or markup declaration
_BARE_LESS_THAN = re.compile(r'<(?![A-Za-z_:!/?])')


@lru_cache(maxsize=32)
def _inline_tag_patterns(tag: str) -> Tuple[Pattern, Pattern]:
    name = re.escape(tag)
    paired = re.compile(rf'<{name}(?:\s[^>]*)?>(.*?)</{name}\s*>', re.IGNORECASE | re.DOTALL)
    empty = re.compile(rf'<{name}(?:\s[^>]*)?/>', re.IGNORECASE)
    return paired, empty


def normalize_line_endings(text: str) -> str:
    return text.replace('\r\n', '\n').replace('\r', '\n')


def flatten_inline_tags(text: str, tags: Iterable[str] = DEFAULT_INLINE_TAGS) -> str:
    """Replace each inline wrapper tag with its inner text."""
    for tag in tags:
        paired, empty = _inline_tag_patterns(tag)
        text = paired.sub(r'\1', text)
        text = empty.sub('', text)
    return text


def escape_stray_specials(text: str) -> str:
    text = _BARE_AMPERSAND.sub('&amp;', text)
    return _BARE_LESS_THAN.sub('&lt;', text)


def normalize_markup(text: str, inline_tags: Iterable[str] = DEFAULT_INLINE_TAGS) -> str:
    """
    Normalize raw page markup for structural parsing.

    Never validates and never raises; ``None`` or empty input yields ``""``.

    Args:
        text: Raw markup as served by the wiki's text view
        inline_tags: Tag names to flatten into their inner text

    Returns:
        Normalized markup
    """
    if not text:
        return ""
    text = normalize_line_endings(text)
    text = flatten_inline_tags(text, tuple(inline_tags))
    return escape_stray_specials(text)
