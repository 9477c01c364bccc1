"""
Capability interface for externally resolved Wikibase metadata.

The enrichment pipeline only depends on this protocol. The production
implementation is `WikibaseClient`; tests substitute deterministic stubs.

Value shapes follow the Wikibase data model:

    ParsedValue = {
        "value": {"time": "+2020-01-01T00:00:00Z", "precision": 11,
                  "calendarmodel": "http://www.wikidata.org/entity/Q1985727", ...},
        "type": "time",
    }
"""

from collections.abc import Collection, Mapping, Sequence
from typing import Any, Protocol

# Datatypes that change how a mismatch is enriched
DATATYPE_TIME = "time"
DATATYPE_ITEM = "wikibase-item"

# Calendar models are stored as item ids; parsed values need the full concept URI
ENTITY_URI_PREFIX = "http://www.wikidata.org/entity/"

ParsedValue = dict[str, Any]


class ReferenceDataError(Exception):
    """Raised by ReferenceDataSource implementations when a lookup cannot be served."""

    pass


class ReferenceDataSource(Protocol):
    """Resolves datatypes, parses and formats values, and resolves labels."""

    async def get_property_datatypes(self, property_ids: Collection[str]) -> dict[str, str]:
        """Map each property id to its datatype."""
        ...

    async def parse_values(
        self,
        values_by_property: Mapping[str, Sequence[str]],
    ) -> dict[str, dict[str, ParsedValue]]:
        """Parse raw values per property; result maps property -> raw -> parsed."""
        ...

    async def format_values(
        self,
        values_by_property: Mapping[str, Mapping[str, ParsedValue]],
        locale: str,
    ) -> dict[str, dict[str, str]]:
        """Format parsed values per property and key in the given locale."""
        ...

    async def get_labels(self, entity_ids: Collection[str], locale: str) -> dict[str, str]:
        """Map each entity id to its label in the given locale."""
        ...
