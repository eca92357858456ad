"""Round-trip filters and sort key through URL query parameters.

Default values are omitted from the query so shared links stay short, and
unparseable values are dropped rather than rejected.
"""

import logging
import math
from typing import Any, Mapping, Optional
from urllib.parse import parse_qs, urlencode

from pydantic import ValidationError

from ..analysis.ranker import READINESS_HORIZONS, RIPENESS_BUCKETS, PlotFilters, SortKey
from ..models.plot import ZoningStage

logger = logging.getLogger(__name__)

# PlotFilters field -> query key
QUERY_KEYS = {
    "city": "city",
    "price_min": "priceMin",
    "price_max": "priceMax",
    "size_min": "sizeMin",
    "size_max": "sizeMax",
    "ripeness": "ripeness",
    "min_roi": "minRoi",
    "zoning": "zoning",
    "search": "search",
    "below_avg": "belowAvg",
    "max_days": "maxDays",
    "max_monthly": "maxMonthly",
}
SORT_KEY = "sort"

_NUMERIC = {"price_min", "price_max", "size_min", "size_max", "min_roi", "max_days", "max_monthly"}
_NON_NEGATIVE = {"price_min", "price_max", "size_min", "size_max"}
_POSITIVE = {"max_days", "max_monthly"}
_INTEGER = {"max_days"}


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def filters_to_query(filters: PlotFilters, sort: SortKey = SortKey.RECOMMENDED) -> dict[str, str]:
    """Serialize filters and sort key into query parameters.

    Args:
        filters: Filter state
        sort: Sort key

    Returns:
        Mapping of query key to value, without default values
    """
    query = {}
    for field, key in QUERY_KEYS.items():
        value = getattr(filters, field)
        if value is None or value is False:
            continue
        if field == "below_avg":
            query[key] = "true"
        elif field in _NUMERIC:
            query[key] = _format_number(value)
        elif field == "zoning":
            query[key] = value.value
        else:
            query[key] = str(value)

    sort = SortKey(sort)
    if sort != SortKey.RECOMMENDED:
        query[SORT_KEY] = sort.value
    return query


def _first(value: Any) -> Optional[str]:
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _parse_number(field: str, raw: str) -> Optional[float]:
    """Parse a numeric query value, or None when it is out of range for the field."""
    try:
        number = float(raw)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    if field in _NON_NEGATIVE and number < 0:
        return None
    if field in _POSITIVE and number <= 0:
        return None
    if field in _INTEGER:
        return int(number) if number.is_integer() else None
    return number


def filters_from_query(query: Mapping[str, Any]) -> tuple[PlotFilters, SortKey]:
    """Parse filters and sort key from query parameters.

    Unknown keys are ignored and invalid values are dropped, so a mangled
    link degrades to fewer filters instead of an error.

    Args:
        query: Mapping of query key to a value or list of values

    Returns:
        (PlotFilters, SortKey) tuple
    """
    values: dict[str, Any] = {}
    for field, key in QUERY_KEYS.items():
        raw = _first(query.get(key))
        if raw is None:
            continue

        if field in _NUMERIC:
            number = _parse_number(field, raw)
            if number is not None:
                values[field] = number
        elif field == "below_avg":
            values[field] = raw.lower() in ("true", "1", "yes")
        elif field == "zoning":
            try:
                values[field] = ZoningStage(raw.upper())
            except ValueError:
                logger.debug(f"Dropping unknown zoning '{raw}' from query")
        elif field == "ripeness":
            if raw.lower() in RIPENESS_BUCKETS or raw.lower() in READINESS_HORIZONS:
                values[field] = raw.lower()
        else:
            values[field] = raw

    try:
        filters = PlotFilters(**values)
    except ValidationError as e:
        logger.warning(f"Dropping invalid query filters: {e.error_count()} errors")
        filters = PlotFilters()

    raw_sort = _first(query.get(SORT_KEY))
    try:
        sort = SortKey(raw_sort) if raw_sort else SortKey.RECOMMENDED
    except ValueError:
        sort = SortKey.RECOMMENDED
    return filters, sort


def to_query_string(filters: PlotFilters, sort: SortKey = SortKey.RECOMMENDED) -> str:
    return urlencode(filters_to_query(filters, sort))


def from_query_string(query_string: str) -> tuple[PlotFilters, SortKey]:
    return filters_from_query(parse_qs(query_string.lstrip("?")))
