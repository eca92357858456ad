"""Client-local explore state: favorites, compare set, filters and sort."""

from .query_params import filters_from_query, filters_to_query, from_query_string, to_query_string
from .store import (
    ClearCompare,
    ClearFilters,
    ExploreState,
    SetFilters,
    SetSort,
    StateStore,
    ToggleCompare,
    ToggleFavorite,
    reduce,
)

__all__ = [
    "ExploreState",
    "StateStore",
    "reduce",
    "ToggleFavorite",
    "ToggleCompare",
    "ClearCompare",
    "SetFilters",
    "ClearFilters",
    "SetSort",
    "filters_to_query",
    "filters_from_query",
    "to_query_string",
    "from_query_string",
]
