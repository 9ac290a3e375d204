"""
Semi-Structured Markup Parser
=============================
Parses a page's markup fragment into a generic mapping tree.

The wiki markup is XML-like but not XML: free text may contain unescaped
``&`` and ``<``, so parsing goes through an ``lxml`` parser in recover mode
and always makes a best effort.

Shape of the result (one node per element):

- element and attribute names are lower-cased
- attributes and child elements share one mapping; on a name collision the
  attribute wins
- a child that occurs once is stored as a scalar, a repeated child as a list
  (``OneOrMany``: callers must accept both shapes for the same key)
- the element's own trimmed text goes under ``"text"`` when it also has
  attributes or children; a text-only element collapses to its text and an
  empty element collapses to ``""``
- ``"yes"`` / ``"no"`` become ``True`` / ``False``
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Union

from lxml import etree

from .errors import MarkupParseError

logger = logging.getLogger(__name__)

TEXT_KEY = "text"

MarkupValue = Union[str, bool, Dict[str, Any], List[Any]]
# A key whose element occurred once holds a scalar; repeated, a list.
OneOrMany = MarkupValue


def coerce_value(value: str) -> Union[str, bool]:
    """Map the wiki's ``yes``/``no`` literals to booleans."""
    if value == "yes":
        return True
    if value == "no":
        return False
    return value


def as_list(value: Any) -> List[Any]:
    """Normalize a one-or-many field to a list (``None`` becomes ``[]``)."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _local_name(tag: str) -> str:
    if tag.startswith('{'):
        tag = tag.split('}', 1)[1]
    return tag.lower()


def _convert(element) -> MarkupValue:
    node: Dict[str, Any] = {}
    for name, value in element.attrib.items():
        node[_local_name(name)] = coerce_value(value)
    attr_keys = set(node)

    text_parts = [element.text or ""]
    for child in element:
        # Comments and processing instructions have non-string tags
        if isinstance(child.tag, str):
            key = _local_name(child.tag)
            if key not in attr_keys:
                value = _convert(child)
                if key not in node:
                    node[key] = value
                elif isinstance(node[key], list):
                    node[key].append(value)
                else:
                    node[key] = [node[key], value]
        text_parts.append(child.tail or "")

    text = "".join(text_parts).strip()
    if text:
        if not node:
            return coerce_value(text)
        if TEXT_KEY not in attr_keys:
            node[TEXT_KEY] = coerce_value(text)
    if not node:
        return ""
    return node


def parse_markup(markup: str, root_tag: str = "wrapper") -> Dict[str, Any]:
    """
    Parse a markup fragment into a mapping.

    Args:
        markup: Normalized markup (may hold several top-level elements)
        root_tag: Name of the synthetic element wrapped around the fragment

    Returns:
        Mapping of the synthetic root's attributes/children

    Raises:
        MarkupParseError: If the fragment cannot be tokenized at all
    """
    document = f"<{root_tag}>{markup or ''}</{root_tag}>".encode('utf-8')
    parser = etree.XMLParser(
        recover=True,
        resolve_entities=False,
        no_network=True,
        huge_tree=True,
    )
    try:
        root = etree.fromstring(document, parser)
    except etree.LxmlError as e:
        raise MarkupParseError(f"Markup could not be parsed: {e}") from e

    if root is None:
        raise MarkupParseError("Markup could not be parsed: no elements recovered")

    if parser.error_log:
        logger.debug(f"Recovered from {len(parser.error_log)} markup error(s)")

    value = _convert(root)
    if isinstance(value, dict):
        return value
    if value == "":
        return {}
    return {TEXT_KEY: value}
