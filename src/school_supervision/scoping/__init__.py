"""Permission- and school-scoped views over the stored collections."""

from .cache import ViewCache
from .engine import (
    ScopedView,
    ScopedFilteringEngine,
    scope_collections,
    matches_school,
    visible_teachers,
    AUTHOR_SCOPED,
    SCHOOL_SCOPED,
)

__all__ = [
    "ViewCache",
    "ScopedView",
    "ScopedFilteringEngine",
    "scope_collections",
    "matches_school",
    "visible_teachers",
    "AUTHOR_SCOPED",
    "SCHOOL_SCOPED",
]
