"""Pydantic schemas for Mismatch and Results API endpoints."""

import re
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from src.schemas.common import ErrorDetail

if TYPE_CHECKING:
    from src.services.enrichment import EnrichedMismatch

ITEM_ID_PATTERN = re.compile(r"^Q[1-9]\d*$")


def parse_item_ids(raw: str, max_ids: int) -> list[str]:
    """
    Parse a "|"-separated list of item ids.

    Duplicates are dropped, first occurrence wins.

    Raises:
        ValueError: If the list is empty, too long or contains a malformed id
    """
    ids = list(dict.fromkeys(part.strip() for part in raw.split("|") if part.strip()))
    if not ids:
        raise ValueError("At least one item id is required")
    if len(ids) > max_ids:
        raise ValueError(f"At most {max_ids} item ids are allowed, got {len(ids)}")
    invalid = [item_id for item_id in ids if not ITEM_ID_PATTERN.match(item_id)]
    if invalid:
        raise ValueError(f"Invalid item ids: {', '.join(invalid[:10])}")
    return ids


# =============================================================================
# Request Schemas
# =============================================================================


class ReviewDecisionRequest(BaseModel):
    """Requested review status for one mismatch."""

    review_status: str = Field(
        min_length=1,
        max_length=20,
        description="Target status: accepted or rejected",
    )


# =============================================================================
# Response Schemas
# =============================================================================


class UserResponse(BaseModel):
    """MediaWiki user attached to a mismatch or import."""

    id: int = Field(
        validation_alias=AliasChoices("mw_userid", "id"),
        description="MediaWiki user id",
    )
    username: str = Field(description="MediaWiki username")

    model_config = ConfigDict(from_attributes=True)


class UserIdentity(BaseModel):
    """Public identity of the acting user."""

    name: str = Field(description="MediaWiki username")
    id: int = Field(description="MediaWiki user id")


class ImportMetaResponse(BaseModel):
    """Provenance of the import a mismatch belongs to."""

    id: UUID = Field(description="Import UUID")
    user: UserResponse = Field(description="Importing user")
    external_source: str = Field(description="External dataset name")
    external_source_url: str | None = Field(default=None, description="External dataset URL")
    description: str | None = Field(default=None, description="Import description")
    expires: datetime = Field(description="Expiry of the import")
    created_at: datetime = Field(description="Upload timestamp")

    model_config = ConfigDict(from_attributes=True)


class MismatchResponse(BaseModel):
    """Schema for mismatch response."""

    id: UUID = Field(description="Mismatch UUID")
    item_id: str = Field(description="Subject item id")
    statement_guid: str | None = Field(default=None, description="Wikidata statement GUID")
    property_id: str = Field(description="Compared property id")
    wikidata_value: str = Field(description="Value in Wikidata (empty if missing)")
    meta_wikidata_value: str | None = Field(default=None, description="Auxiliary qualifier")
    external_value: str = Field(description="Value in the external source")
    external_url: str | None = Field(default=None, description="Link to the external record")
    type: str = Field(description="statement or qualifier")
    review_status: str = Field(description="pending, accepted or rejected")
    reviewer: UserResponse | None = Field(default=None, description="Reviewing user")
    import_meta: ImportMetaResponse = Field(description="Import provenance")
    updated_at: datetime = Field(description="Last modification timestamp")

    model_config = ConfigDict(from_attributes=True)


class EnrichedMismatchResponse(MismatchResponse):
    """Mismatch with display metadata for the results page."""

    property_datatype: str | None = Field(default=None, description="Datatype of the property")
    formatted_value: str | None = Field(
        default=None,
        description="Localized Wikidata value (time-typed properties only)",
    )

    @classmethod
    def from_enriched(cls, enriched: "EnrichedMismatch") -> "EnrichedMismatchResponse":
        base = MismatchResponse.model_validate(enriched.mismatch)
        return cls(
            **dict(base),
            property_datatype=enriched.property_datatype,
            formatted_value=enriched.formatted_value,
        )


class ResultsResponse(BaseModel):
    """Payload of the results page."""

    user: UserIdentity | None = Field(description="Acting user, if authenticated")
    item_ids: list[str] = Field(description="Requested item ids")
    labels: dict[str, str] = Field(description="Labels by entity id")
    formatted_values: dict[str, dict[str, str]] = Field(
        description="Formatted time values by property id, then 'metaValue|rawValue'"
    )
    results: dict[str, list[EnrichedMismatchResponse]] | None = Field(
        default=None,
        description="Mismatches grouped by item id; absent when none matched",
    )


class BatchReviewItem(BaseModel):
    """Outcome of one item of a batch review."""

    mismatch_id: UUID = Field(description="Mismatch UUID")
    ok: bool = Field(description="Whether the decision was applied")
    mismatch: MismatchResponse | None = Field(default=None, description="Updated mismatch")
    error: ErrorDetail | None = Field(default=None, description="Failure details")


class BatchReviewResponse(BaseModel):
    """Per-item outcomes of a batch review, in request order."""

    items: list[BatchReviewItem]
    succeeded: int = Field(description="Number of applied decisions")
    failed: int = Field(description="Number of rejected decisions")
