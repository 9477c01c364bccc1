"""API routers for the Mismatch Finder service."""

from src.api.mismatches import router as mismatches_router
from src.api.results import router as results_router

__all__ = [
    "mismatches_router",
    "results_router",
]
