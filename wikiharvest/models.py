"""
Data Model
==========
Entities found during discovery and the records produced by harvesting.

``DiscoveredEntity`` is immutable and lives only in memory between the two
passes. Harvested records are plain dicts because the page schema differs
by entity kind; ``build_record`` stamps the discovery metadata onto them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional


class EntityKind(str, Enum):
    FUNCTION = "Function"
    ENUM = "Enum"
    OTHER = "Other"


class Realm(str, Enum):
    SERVER = "Server"
    CLIENT = "Client"
    MENU = "Menu"


# Serialization order for realm tags
_REALM_ORDER = {realm: i for i, realm in enumerate(Realm)}


@dataclass(frozen=True)
class DiscoveredEntity:
    """
    A documented function or enum found on the index page.
    """
    name: str
    link: str
    kind: EntityKind
    realms: FrozenSet[Realm] = field(default_factory=frozenset)
    category: str = ""
    subcategory: str = ""

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValueError("entity name must not be empty")
        if not self.link:
            raise ValueError(f"entity {self.name!r} has no link")

    @property
    def sorted_realms(self) -> List[Realm]:
        return sorted(self.realms, key=_REALM_ORDER.__getitem__)


def build_record(parsed: Dict[str, Any], entity: DiscoveredEntity) -> Dict[str, Any]:
    """
    Merge discovery metadata into a parsed page mapping.

    ``realms`` and ``kind`` always come from the index page and overwrite
    any same-named field the page markup carried.
    """
    record = dict(parsed)
    record['realms'] = [r.value for r in entity.sorted_realms]
    record['kind'] = entity.kind.value
    return record


@dataclass
class HarvestError:
    """A per-entity failure recorded when running with ``on_error='skip'``."""
    name: str
    link: str
    error: str


@dataclass
class HarvestResult:
    """
    Outcome of a harvest pass.
    """
    total: int = 0
    written: int = 0
    errors: List[HarvestError] = field(default_factory=list)
    stats: Dict[str, Any] = field(default_factory=dict)
    output_path: Optional[str] = None

    @property
    def failed(self) -> int:
        return len(self.errors)
