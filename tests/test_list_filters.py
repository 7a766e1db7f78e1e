from datetime import date, datetime, timezone

from list_filters import FilterCriteria, day_bounds, filter_records, parse_datetime

RECORDS = [
    {"id": 1, "user_name": "John Doe", "user_email": "john@x.com", "status": "pending",
     "type": "deposit", "created_at": "2024-03-01T09:00:00Z"},
    {"id": 2, "user_name": "Jane Roe", "user_email": "jane@y.com", "status": "approved",
     "type": "withdrawal", "created_at": "2024-03-05T23:59:59Z"},
    {"id": 3, "user_name": "Johnny Cash", "user_email": "jc@z.com", "status": "approved",
     "type": "deposit", "created_at": "2024-03-06T00:00:00Z"},
    {"id": 4, "user_name": "Ann", "user_email": "ann@q.com", "status": "pending",
     "type": "deposit", "created_at": None},
]


def ids(records):
    return [r["id"] for r in records]


def test_no_criteria_returns_everything_in_order():
    assert ids(filter_records(RECORDS)) == [1, 2, 3, 4]
    assert ids(filter_records(RECORDS, FilterCriteria(status="all", tab="", search="  "))) == [1, 2, 3, 4]


def test_search_is_case_insensitive_substring():
    assert ids(filter_records(RECORDS, FilterCriteria(search="JOHN"))) == [1, 3]
    assert ids(filter_records(RECORDS, FilterCriteria(search="y.com"))) == [2]


def test_search_matches_ids_as_text():
    assert ids(filter_records(RECORDS, FilterCriteria(search="4"))) == [4]


def test_status_and_tab_combine_with_and():
    assert ids(filter_records(RECORDS, FilterCriteria(status="approved"))) == [2, 3]
    assert filter_records(RECORDS, FilterCriteria(status="pending", tab="approved")) == []
    assert ids(filter_records(RECORDS, FilterCriteria(status="pending", tab="pending"))) == [1, 4]


def test_type_and_extra_predicates():
    assert ids(filter_records(RECORDS, FilterCriteria(type_value="deposit"))) == [1, 3, 4]
    assert ids(filter_records(RECORDS, FilterCriteria(extra={"user_email": "jc@z.com"}))) == [3]


def test_date_range_is_inclusive_of_whole_end_day():
    criteria = FilterCriteria(start_date=date(2024, 3, 1), end_date=date(2024, 3, 5))
    assert ids(filter_records(RECORDS, criteria)) == [1, 2]


def test_date_range_excludes_records_without_a_date():
    criteria = FilterCriteria(start_date="2024-01-01")
    assert 4 not in ids(filter_records(RECORDS, criteria))


def test_open_ended_ranges():
    assert ids(filter_records(RECORDS, FilterCriteria(end_date="2024-03-01"))) == [1]
    assert ids(filter_records(RECORDS, FilterCriteria(start_date="2024-03-06"))) == [3]


def test_result_is_a_subset_preserving_order():
    criteria = FilterCriteria(search="o", status="approved")
    result = filter_records(RECORDS, criteria)
    assert all(r in RECORDS for r in result)
    assert ids(result) == sorted(ids(result), key=ids(RECORDS).index)


def test_objects_are_filtered_like_dicts():
    class Row:
        def __init__(self, id, status):
            self.id = id
            self.status = status

    rows = [Row(1, "pending"), Row(2, "completed")]
    assert [r.id for r in filter_records(rows, FilterCriteria(status="completed"))] == [2]


def test_parse_datetime_normalizes_to_utc():
    assert parse_datetime("2024-03-01T10:00:00Z") == datetime(2024, 3, 1, 10, tzinfo=timezone.utc)
    assert parse_datetime(datetime(2024, 3, 1, 10)) == datetime(2024, 3, 1, 10, tzinfo=timezone.utc)
    assert parse_datetime(date(2024, 3, 1)) == datetime(2024, 3, 1, tzinfo=timezone.utc)
    assert parse_datetime("not a date") is None
    assert parse_datetime("") is None


def test_day_bounds():
    lower, upper = day_bounds("2024-03-01T15:30:00", date(2024, 3, 2))
    assert lower == datetime(2024, 3, 1, tzinfo=timezone.utc)
    assert upper == datetime(2024, 3, 2, 23, 59, 59, 999999, tzinfo=timezone.utc)


def test_john_does_not_match_mary():
    records = [{"id": 10, "user_email": "john@x.com"}, {"id": 11, "user_email": "mary@x.com"}]
    assert ids(filter_records(records, FilterCriteria(search="john"))) == [10]
