"""Assembly of the results page payload from enriched mismatches."""

from collections.abc import Sequence
from typing import Any

from src.db.models import User
from src.schemas.mismatches import EnrichedMismatchResponse, UserIdentity
from src.services.enrichment import EnrichmentResult


def assemble_results(
    requested_ids: Sequence[str],
    enrichment: EnrichmentResult,
    user: User | None,
) -> dict[str, Any]:
    """
    Compose the results payload.

    The `results` key is only present when at least one mismatch matched, so
    the UI can tell "nothing found" apart from an empty group. The acting
    user is exposed by display name and MediaWiki id, or None when anonymous.
    """
    payload: dict[str, Any] = {
        "user": UserIdentity(**user.public_identity) if user else None,
        "item_ids": list(requested_ids),
        "labels": enrichment.labels,
        "formatted_values": enrichment.formatted_values,
    }

    if not enrichment.is_empty:
        payload["results"] = {
            item_id: [EnrichedMismatchResponse.from_enriched(enriched) for enriched in group]
            for item_id, group in enrichment.groups.items()
        }

    return payload
