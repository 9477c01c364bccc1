"""
Services package - Review pipeline logic and external clients.

This package contains:
- Mismatch store (persistence access)
- Reference data source interface and the Wikibase API client
- Enrichment pipeline for labels and formatted values
- Review workflow for single and batch decisions
- Metrics recorders
- Results page assembly
"""

from src.services.enrichment import (
    EnrichedMismatch,
    EnrichmentPipeline,
    EnrichmentResult,
)
from src.services.metrics import (
    MetricsRecorder,
    NullMetricsRecorder,
    StatsvMetricsRecorder,
    record_request,
    record_review,
)
from src.services.mismatch_store import MismatchStore
from src.services.presentation import assemble_results
from src.services.reference import ReferenceDataError, ReferenceDataSource
from src.services.review import Actor, ReviewOutcome, ReviewWorkflow, parse_decision
from src.services.users import sync_user
from src.services.wikibase import (
    WikibaseAPIError,
    WikibaseClient,
    WikibaseError,
    WikibaseRateLimitError,
    WikibaseUnavailableError,
)

__all__ = [
    # Store
    "MismatchStore",
    "sync_user",
    # Reference data
    "ReferenceDataSource",
    "ReferenceDataError",
    "WikibaseClient",
    "WikibaseError",
    "WikibaseAPIError",
    "WikibaseRateLimitError",
    "WikibaseUnavailableError",
    # Enrichment
    "EnrichmentPipeline",
    "EnrichmentResult",
    "EnrichedMismatch",
    # Review
    "ReviewWorkflow",
    "ReviewOutcome",
    "Actor",
    "parse_decision",
    # Metrics
    "MetricsRecorder",
    "NullMetricsRecorder",
    "StatsvMetricsRecorder",
    "record_request",
    "record_review",
    # Presentation
    "assemble_results",
]
