"""
Domain exceptions for the mismatch review pipeline.

Every error carries a machine-readable ``code`` and the HTTP status the API
layer should answer with, so routers never need to translate them by hand.
"""

from uuid import UUID


class MismatchFinderError(Exception):
    """Base exception for review pipeline errors."""

    code: str = "error"
    status_code: int = 500

    def __init__(self, message: str, mismatch_id: UUID | None = None):
        super().__init__(message)
        self.message = message
        self.mismatch_id = mismatch_id


class MismatchNotFoundError(MismatchFinderError):
    """Raised when a referenced mismatch does not exist."""

    code = "not_found"
    status_code = 404

    def __init__(self, mismatch_id: UUID):
        super().__init__(f"Mismatch {mismatch_id} not found", mismatch_id)


class ReviewConflictError(MismatchFinderError):
    """Raised when a mismatch is no longer pending and cannot be reviewed."""

    code = "conflict"
    status_code = 409

    def __init__(self, mismatch_id: UUID, current_status: str):
        super().__init__(
            f"Mismatch {mismatch_id} is already {current_status}",
            mismatch_id,
        )
        self.current_status = current_status


class InvalidReviewStatusError(MismatchFinderError):
    """Raised when a review decision targets a status outside the allowed set."""

    code = "validation_error"
    status_code = 422

    def __init__(self, review_status: str, mismatch_id: UUID | None = None):
        super().__init__(f"Invalid review status: {review_status!r}", mismatch_id)
        self.review_status = review_status


class UpstreamUnavailableError(MismatchFinderError):
    """Raised when the reference data source or the store cannot be reached."""

    code = "upstream_unavailable"
    status_code = 502
