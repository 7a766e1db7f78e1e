# routers/admin_common.py
# Helpers shared by the admin screen routers: error translation and list envelopes.

from datetime import date
from typing import Iterable, List, Optional, Sequence

from fastapi import HTTPException, status

from crud import count_by_status
from list_filters import DEFAULT_SEARCH_FIELDS, FilterCriteria, filter_records
from service_errors import RecordNotFound


def http_error(exc: Exception) -> HTTPException:
    """Translate a service exception to the HTTP error the screens display."""
    if isinstance(exc, RecordNotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def list_response(
    key: str,
    records: List[dict],
    statuses: Iterable[str],
    search: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    search_fields: Sequence[str] = DEFAULT_SEARCH_FIELDS,
    date_field: str = "created_at",
) -> dict:
    criteria = FilterCriteria(
        search=search,
        search_fields=search_fields,
        start_date=start_date,
        end_date=end_date,
        date_field=date_field,
    )
    return {
        "success": True,
        key: filter_records(records, criteria),
        "summary": count_by_status(records, statuses),
    }
