# list_filters.py
# Search/filter over already-loaded admin lists (used by the console and by list endpoints).

from datetime import date, datetime, time, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from pydantic import BaseModel, Field

DEFAULT_SEARCH_FIELDS = ("id", "user_name", "user_email", "full_name", "email", "name")

DateLike = Union[datetime, date, str]


class FilterCriteria(BaseModel):
    search: Optional[str] = None
    search_fields: Sequence[str] = DEFAULT_SEARCH_FIELDS
    status: Optional[str] = None
    tab: Optional[str] = None
    status_field: str = "status"
    type_field: str = "type"
    type_value: Optional[str] = None
    extra: Dict[str, Any] = Field(default_factory=dict)
    date_field: str = "created_at"
    start_date: Optional[DateLike] = None
    end_date: Optional[DateLike] = None


def _value(record: Any, field: str) -> Any:
    if isinstance(record, dict):
        return record.get(field)
    return getattr(record, field, None)


def _is_active(choice: Optional[str]) -> bool:
    return choice is not None and choice != "" and choice.lower() != "all"


def parse_datetime(value: Any) -> Optional[datetime]:
    """Coerce a datetime, date or ISO-8601 string to an aware UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            value = datetime.fromisoformat(text)
        except ValueError:
            return None
    elif isinstance(value, date) and not isinstance(value, datetime):
        value = datetime.combine(value, time.min)
    elif not isinstance(value, datetime):
        return None

    # Naive values are stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def day_bounds(start: Optional[DateLike], end: Optional[DateLike]):
    """Inclusive bounds: start of the start day through 23:59:59.999999 of the end day."""
    lower = parse_datetime(start)
    upper = parse_datetime(end)
    if lower is not None:
        lower = datetime.combine(lower.date(), time.min, tzinfo=timezone.utc)
    if upper is not None:
        upper = datetime.combine(upper.date(), time.max, tzinfo=timezone.utc)
    return lower, upper


def matches_search(record: Any, search: Optional[str], fields: Iterable[str]) -> bool:
    needle = (search or "").strip().lower()
    if not needle:
        return True
    for field in fields:
        value = _value(record, field)
        if value is not None and needle in str(value).lower():
            return True
    return False


def filter_records(records: Sequence[Any], criteria: Optional[FilterCriteria] = None) -> List[Any]:
    """
    Return the records satisfying every active predicate, in their original order.

    Records may be dicts (API payloads) or objects (ORM rows). Status and tab are
    both equality checks on the status field, so they combine with AND.
    """
    criteria = criteria or FilterCriteria()
    lower, upper = day_bounds(criteria.start_date, criteria.end_date)
    date_active = lower is not None or upper is not None

    result = []
    for record in records:
        if not matches_search(record, criteria.search, criteria.search_fields):
            continue

        status = _value(record, criteria.status_field)
        if _is_active(criteria.status) and status != criteria.status:
            continue
        if _is_active(criteria.tab) and status != criteria.tab:
            continue

        if _is_active(criteria.type_value) and _value(record, criteria.type_field) != criteria.type_value:
            continue

        if any(_value(record, field) != expected for field, expected in criteria.extra.items()):
            continue

        if date_active:
            stamp = parse_datetime(_value(record, criteria.date_field))
            if stamp is None:
                continue
            if lower is not None and stamp < lower:
                continue
            if upper is not None and stamp > upper:
                continue

        result.append(record)
    return result
