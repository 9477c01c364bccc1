"""
Enrichment of mismatches with externally resolved Wikibase metadata.

Pipeline:
1. Materialize the mismatches once
2. Resolve datatypes of all distinct properties
3. Collect entity ids to label: properties, subjects, item-valued Wikidata
   values and the requested subjects
4. Parse the raw values of time-typed properties
5. Re-key parsed values by "metaValue|rawValue", applying calendar models
6. Format the re-keyed values in the request locale
7. Resolve labels in the request locale

Every lookup is skipped when it has no keys, so an empty result costs no
round-trips. The whole enrichment is bounded by a timeout and either
completes or raises UpstreamUnavailableError; there is no partial result.
"""

import asyncio
import copy
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from src.core.config import settings
from src.core.exceptions import UpstreamUnavailableError
from src.core.logging import get_logger
from src.db.models import Mismatch
from src.services.reference import (
    DATATYPE_ITEM,
    DATATYPE_TIME,
    ENTITY_URI_PREFIX,
    ParsedValue,
    ReferenceDataError,
    ReferenceDataSource,
)

logger = get_logger(__name__)


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class EnrichedMismatch:
    """A mismatch plus its display metadata."""

    mismatch: Mismatch
    property_datatype: str | None = None
    formatted_value: str | None = None


@dataclass
class EnrichmentResult:
    """Everything the presentation layer needs to render a set of mismatches."""

    datatypes: dict[str, str] = field(default_factory=dict)
    labels: dict[str, str] = field(default_factory=dict)
    formatted_values: dict[str, dict[str, str]] = field(default_factory=dict)
    groups: dict[str, list[EnrichedMismatch]] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        """True when no mismatch matched."""
        return not self.groups

    @property
    def mismatch_count(self) -> int:
        """Number of enriched mismatches across all groups."""
        return sum(len(group) for group in self.groups.values())


# =============================================================================
# Key Extraction
# =============================================================================


def extract_property_ids(mismatches: Iterable[Mismatch]) -> list[str]:
    """Distinct property ids, in first-seen order."""
    return list(dict.fromkeys(m.property_id for m in mismatches))


def extract_item_ids(mismatches: Iterable[Mismatch], datatypes: dict[str, str]) -> list[str]:
    """
    Distinct subject ids plus the item ids referenced by item-valued properties.

    An empty Wikidata value means the property is missing on the item and is
    never treated as an entity reference.
    """
    ids: dict[str, None] = {}
    for mismatch in mismatches:
        ids[mismatch.item_id] = None
        if mismatch.wikidata_value != "" and datatypes.get(mismatch.property_id) == DATATYPE_ITEM:
            ids[mismatch.wikidata_value] = None
    return list(ids)


def extract_time_values(
    mismatches: Iterable[Mismatch],
    datatypes: dict[str, str],
) -> dict[str, list[str]]:
    """Raw Wikidata values of time-typed properties, grouped by property."""
    values: dict[str, list[str]] = {}
    for mismatch in mismatches:
        if datatypes.get(mismatch.property_id) == DATATYPE_TIME:
            values.setdefault(mismatch.property_id, []).append(mismatch.wikidata_value)
    return values


def update_time_values(
    mismatches: Iterable[Mismatch],
    parsed_values: dict[str, dict[str, ParsedValue]],
) -> dict[str, dict[str, ParsedValue]]:
    """
    Re-key parsed time values by "metaValue|rawValue".

    The same raw value can appear with different calendar models, so each
    key gets its own copy of the parsed value with the calendar model of
    that mismatch applied.
    """
    updated: dict[str, dict[str, ParsedValue]] = {}
    for mismatch in mismatches:
        parsed = parsed_values.get(mismatch.property_id, {}).get(mismatch.wikidata_value)
        if parsed is None:
            continue

        value = copy.deepcopy(parsed)
        if mismatch.meta_wikidata_value:
            value.setdefault("value", {})["calendarmodel"] = (
                ENTITY_URI_PREFIX + mismatch.meta_wikidata_value
            )
        updated.setdefault(mismatch.property_id, {})[mismatch.value_key] = value
    return updated


def group_by_item(
    mismatches: Iterable[Mismatch],
    datatypes: dict[str, str],
    formatted_values: dict[str, dict[str, str]],
) -> dict[str, list[EnrichedMismatch]]:
    """Bucket enriched mismatches by subject, preserving store order."""
    groups: dict[str, list[EnrichedMismatch]] = {}
    for mismatch in mismatches:
        groups.setdefault(mismatch.item_id, []).append(
            EnrichedMismatch(
                mismatch=mismatch,
                property_datatype=datatypes.get(mismatch.property_id),
                formatted_value=formatted_values.get(mismatch.property_id, {}).get(
                    mismatch.value_key
                ),
            )
        )
    return groups


# =============================================================================
# Pipeline
# =============================================================================


class EnrichmentPipeline:
    """
    Enriches mismatches using a ReferenceDataSource.

    Usage:
        pipeline = EnrichmentPipeline(wikidata)
        result = await pipeline.enrich(mismatches, ["Q42"], locale="en")
    """

    def __init__(self, source: ReferenceDataSource):
        self.source = source

    async def enrich(
        self,
        mismatches: Iterable[Mismatch],
        requested_ids: Sequence[str],
        locale: str,
        timeout: float | None = None,
    ) -> EnrichmentResult:
        """
        Enrich mismatches for display.

        Args:
            mismatches: Mismatches in store order (consumed once)
            requested_ids: Subject ids the caller asked for; always labeled
            locale: Language code for labels and formatted values
            timeout: Upper bound in seconds for all lookups together

        Raises:
            UpstreamUnavailableError: If a lookup fails or the timeout expires
        """
        timeout = settings.enrichment_timeout if timeout is None else timeout
        materialized = list(mismatches)

        try:
            return await asyncio.wait_for(
                self._enrich(materialized, requested_ids, locale),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error("Enrichment timed out", timeout=timeout, mismatches=len(materialized))
            raise UpstreamUnavailableError(
                f"Reference data lookup timed out after {timeout}s"
            ) from e
        except ReferenceDataError as e:
            logger.error("Enrichment failed", error=str(e))
            raise UpstreamUnavailableError(f"Reference data unavailable: {e}") from e

    async def _enrich(
        self,
        mismatches: list[Mismatch],
        requested_ids: Sequence[str],
        locale: str,
    ) -> EnrichmentResult:
        property_ids = extract_property_ids(mismatches)
        datatypes = (
            await self.source.get_property_datatypes(property_ids) if property_ids else {}
        )

        entity_ids = list(
            dict.fromkeys(
                [*property_ids, *extract_item_ids(mismatches, datatypes), *requested_ids]
            )
        )

        time_values = extract_time_values(mismatches, datatypes)
        parsed_values = await self.source.parse_values(time_values) if time_values else {}
        updated_values = update_time_values(mismatches, parsed_values)
        formatted_values = (
            await self.source.format_values(updated_values, locale) if updated_values else {}
        )

        labels = await self.source.get_labels(entity_ids, locale) if entity_ids else {}

        logger.info(
            "Enriched mismatches",
            mismatches=len(mismatches),
            properties=len(property_ids),
            entities=len(entity_ids),
            time_values=sum(len(v) for v in updated_values.values()),
            locale=locale,
        )

        return EnrichmentResult(
            datatypes=datatypes,
            labels=labels,
            formatted_values=formatted_values,
            groups=group_by_item(mismatches, datatypes, formatted_values),
        )
