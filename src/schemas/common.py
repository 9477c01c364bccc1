"""Common Pydantic schemas used across API endpoints."""

from pydantic import BaseModel, Field

from src.core.exceptions import MismatchFinderError

# =============================================================================
# Error Responses
# =============================================================================


class ErrorDetail(BaseModel):
    """Detailed error information."""

    field: str | None = Field(default=None, description="Field that caused the error")
    message: str = Field(description="Error message")
    code: str | None = Field(default=None, description="Error code")

    @classmethod
    def from_exception(cls, error: MismatchFinderError) -> "ErrorDetail":
        """Describe a domain error, naming the affected mismatch when known."""
        return cls(
            field=str(error.mismatch_id) if error.mismatch_id else None,
            message=error.message,
            code=error.code,
        )


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str = Field(description="Error type")
    message: str = Field(description="Human-readable error message")
    details: list[ErrorDetail] | None = Field(
        default=None, description="Additional error details"
    )
    request_id: str | None = Field(default=None, description="Request ID for tracing")


# =============================================================================
# Service Info
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Service health")
    version: str = Field(description="Service version")
