"""
Controlled vocabulary enums for mismatch review.

Review statuses are stored as plain strings so new outcomes can be added
without a schema migration; this enum names the ones the service knows.
"""

from enum import Enum


class ReviewStatus(str, Enum):
    """
    Curation outcome of a mismatch.

    Lifecycle:
        PENDING -> ACCEPTED
                |-> REJECTED

    Only PENDING mismatches can be reviewed; the other statuses are final
    from the service's point of view.
    """

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"

    @classmethod
    def decisions(cls) -> list["ReviewStatus"]:
        """Statuses a curator may move a pending mismatch to."""
        return [cls.ACCEPTED, cls.REJECTED]


class MismatchType(str, Enum):
    """Whether the mismatch concerns a main statement value or a qualifier."""

    STATEMENT = "statement"
    QUALIFIER = "qualifier"


def is_valid_decision(value: str) -> bool:
    """Check whether a string is a status a curator may choose."""
    return value in {status.value for status in ReviewStatus.decisions()}


def validate_decision(value: str) -> ReviewStatus:
    """
    Convert a string to a review decision.

    Raises:
        ValueError: If the value is not an allowed decision.
    """
    if not is_valid_decision(value):
        raise ValueError(
            f"Invalid review status: '{value}'. "
            f"Valid decisions: {[s.value for s in ReviewStatus.decisions()]}"
        )
    return ReviewStatus(value)
