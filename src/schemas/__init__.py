"""Pydantic schemas for API request/response models."""

from src.schemas.common import (
    ErrorDetail,
    ErrorResponse,
    HealthResponse,
)
from src.schemas.mismatches import (
    BatchReviewItem,
    BatchReviewResponse,
    EnrichedMismatchResponse,
    ImportMetaResponse,
    MismatchResponse,
    ResultsResponse,
    ReviewDecisionRequest,
    UserIdentity,
    UserResponse,
    parse_item_ids,
)

__all__ = [
    # Common
    "ErrorDetail",
    "ErrorResponse",
    "HealthResponse",
    # Mismatches
    "BatchReviewItem",
    "BatchReviewResponse",
    "EnrichedMismatchResponse",
    "ImportMetaResponse",
    "MismatchResponse",
    "ResultsResponse",
    "ReviewDecisionRequest",
    "UserIdentity",
    "UserResponse",
    "parse_item_ids",
]
