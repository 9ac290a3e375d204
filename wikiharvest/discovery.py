"""
Entity Discovery
================
Enumerates every documented function and enum from the wiki index page.

The sidebar holds a nested disclosure tree::

    #sidebar #contents
      .sectionheader  "Developer Reference"
      .section
        details.level1                 category ("Globals", "Classes", ...)
          summary > div                category label
          ul > li > a                  flat entry
          ul > li > details.level2     sub-category ("Entity", "Panel", ...)
            summary > div              sub-category label
            ul > li > a                nested entry

Each entry anchor carries marker classes: one for the kind (function/enum)
and optional ones for the realms it runs in. Anchors without a kind marker
are not entities and are skipped. A structural mismatch, or a classified
anchor without a name or link, raises ``DiscoveryError``: the index layout
has changed and nothing found on it can be trusted.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Dict, List, Mapping, Optional

from bs4 import BeautifulSoup

from .errors import DiscoveryError
from .models import DiscoveredEntity, EntityKind, Realm
from .run_config import HarvestRunConfig
from .utils import just_text

logger = logging.getLogger(__name__)

HTML_PARSER = "lxml"

SECTION_HEADER_SELECTOR = "#sidebar #contents .sectionheader"

# Marker class -> kind; the first marker present on an anchor wins
DEFAULT_KIND_MARKERS: Dict[str, EntityKind] = {
    "f": EntityKind.FUNCTION,
    "e": EntityKind.ENUM,
}

DEFAULT_REALM_MARKERS: Dict[str, Realm] = {
    "rs": Realm.SERVER,
    "rc": Realm.CLIENT,
    "rm": Realm.MENU,
}


def _classes(tag) -> List[str]:
    return tag.get('class') or []


def _disclosure_label(details) -> str:
    summary = details.find('summary', recursive=False)
    if summary is None:
        return ""
    div = summary.find('div', recursive=False)
    return just_text(div if div is not None else summary)


def _child_items(details) -> List:
    ul = details.find('ul', recursive=False)
    if ul is None:
        return []
    return ul.find_all('li', recursive=False)


def find_section(soup: BeautifulSoup, section_label: str):
    """
    Locate the ``.section`` node that follows the labelled section header.

    Raises:
        DiscoveryError: If the header is missing or not followed by a section
    """
    headers = [
        h for h in soup.select(SECTION_HEADER_SELECTOR)
        if h.get_text().strip() == section_label
    ]
    if not headers:
        raise DiscoveryError(f"Section header {section_label!r} not found on index page")

    section = headers[0].find_next_sibling()
    if section is None or 'section' not in _classes(section):
        raise DiscoveryError(
            f"Section header {section_label!r} is not followed by a .section node"
        )
    return section


def classify_anchor(
    anchor,
    category: str = "",
    subcategory: str = "",
    kind_markers: Mapping[str, EntityKind] = DEFAULT_KIND_MARKERS,
    realm_markers: Mapping[str, Realm] = DEFAULT_REALM_MARKERS,
) -> Optional[DiscoveredEntity]:
    """
    Turn an entry anchor into an entity.

    Returns:
        The entity, or None if the anchor carries no kind marker

    Raises:
        DiscoveryError: If a classified anchor has no name or no link
    """
    if anchor is None:
        return None

    classes = set(_classes(anchor))
    kind = next((k for marker, k in kind_markers.items() if marker in classes), None)
    if kind is None:
        return None

    name = just_text(anchor) or anchor.get_text(" ", strip=True)
    if not name:
        raise DiscoveryError(f"Entry without a name in {category!r}: {anchor}")

    link = (anchor.get('href') or "").strip()
    if not link:
        raise DiscoveryError(f"Entry {name!r} in {category!r} has no link")

    realms = frozenset(r for marker, r in realm_markers.items() if marker in classes)

    return DiscoveredEntity(
        name=name,
        link=link,
        kind=kind,
        realms=realms,
        category=category,
        subcategory=subcategory,
    )


def parse_index(
    html: str,
    section_label: str = "Developer Reference",
    kind_markers: Mapping[str, EntityKind] = DEFAULT_KIND_MARKERS,
    realm_markers: Mapping[str, Realm] = DEFAULT_REALM_MARKERS,
) -> List[DiscoveredEntity]:
    """
    Walk the index page's contents tree and collect all entities.

    Supports flat categories (entries directly under the category) and
    nested ones (entries inside ``details.level2`` sub-disclosures), also
    mixed within one category.

    Args:
        html: Index page HTML
        section_label: Exact text of the section header to descend into
        kind_markers: Marker class -> entity kind
        realm_markers: Marker class -> realm

    Returns:
        Entities in page order
    """
    soup = BeautifulSoup(html, HTML_PARSER)
    section = find_section(soup, section_label)

    entities: List[DiscoveredEntity] = []
    for category_node in section.find_all('details', class_='level1', recursive=False):
        category = _disclosure_label(category_node)

        for item in _child_items(category_node):
            sub_node = item.find('details', class_='level2', recursive=False)

            if sub_node is None:
                entity = classify_anchor(
                    item.find('a', recursive=False), category, "",
                    kind_markers, realm_markers,
                )
                if entity:
                    entities.append(entity)
                continue

            subcategory = _disclosure_label(sub_node)
            for sub_item in _child_items(sub_node):
                entity = classify_anchor(
                    sub_item.find('a', recursive=False), category, subcategory,
                    kind_markers, realm_markers,
                )
                if entity:
                    entities.append(entity)

    return entities


class EntityDiscoverer:
    """
    Fetches the index page and returns the full entity list.
    """

    def __init__(
        self,
        config: HarvestRunConfig,
        fetcher,
        kind_markers: Mapping[str, EntityKind] = None,
        realm_markers: Mapping[str, Realm] = None,
    ):
        """
        Args:
            config: Run configuration (index URL, section label)
            fetcher: Object with an async ``fetch_text(url)`` method
            kind_markers: Override the kind marker classes
            realm_markers: Override the realm marker classes
        """
        self.config = config
        self.fetcher = fetcher
        self.kind_markers = kind_markers or DEFAULT_KIND_MARKERS
        self.realm_markers = realm_markers or DEFAULT_REALM_MARKERS

    async def discover(self) -> List[DiscoveredEntity]:
        url = self.config.index_url
        logger.info(f"[DISCOVERY] Fetching index {url}")
        html = await self.fetcher.fetch_text(url)

        entities = parse_index(
            html,
            section_label=self.config.section_label,
            kind_markers=self.kind_markers,
            realm_markers=self.realm_markers,
        )

        per_category = Counter(e.category for e in entities)
        for category, count in per_category.items():
            logger.debug(f"[DISCOVERY]   {category or '(unlabelled)'}: {count}")
        kinds = Counter(e.kind.value for e in entities)
        logger.info(
            f"[DISCOVERY] Found {len(entities)} entities "
            f"({', '.join(f'{k}: {v}' for k, v in sorted(kinds.items())) or 'none'})"
        )
        return entities
