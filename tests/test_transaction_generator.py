import random
from datetime import datetime, timezone

import pytest
from sqlalchemy import select

import models
from schemas import GenerateTransactionsRequest
from service_errors import InvalidTransition
from tests.factories import fetch_rows, make_account, make_user
from transaction_generator import DEBIT_TYPES, FEE_TYPES, RANDOM_COUNT_RANGE, build_transactions, target_count


def make_request(**overrides):
    data = {
        "user_id": 1,
        "account_id": 1,
        "transaction_types": ["deposit", "withdrawal", "transfer", "bank_charge"],
        "start_year": 2021,
        "end_year": 2022,
    }
    data.update(overrides)
    return GenerateTransactionsRequest(**data)


def test_rows_are_sorted_and_balances_chain():
    rows = build_transactions(make_request(), 5000.0, 200, random.Random(7))

    assert len(rows) == 200
    dates = [row["created_at"] for row in rows]
    assert dates == sorted(dates)
    assert rows[0]["balance_before"] == 5000.0
    for previous, current in zip(rows, rows[1:]):
        assert current["balance_before"] == previous["balance_after"]


def test_rows_stay_inside_the_year_range():
    rows = build_transactions(make_request(), 0.0, 150, random.Random(3))
    lower = datetime(2021, 1, 1, tzinfo=timezone.utc)
    upper = datetime(2022, 12, 31, 23, 59, 59, tzinfo=timezone.utc)
    assert all(lower <= row["created_at"] <= upper for row in rows)


def test_fees_and_debits_follow_the_type():
    rows = build_transactions(make_request(), 1000.0, 100, random.Random(11))
    for row in rows:
        if row["transaction_type"] not in FEE_TYPES:
            assert row["fee"] == 0.0
        else:
            assert 0.5 <= row["fee"] <= 6.0
        delta = round(row["balance_after"] - row["balance_before"], 2)
        if row["transaction_type"] in DEBIT_TYPES:
            assert delta == pytest.approx(-(row["amount"] + row["fee"]), abs=0.02)
        else:
            assert delta == pytest.approx(row["amount"], abs=0.02)


def test_target_count():
    assert target_count(make_request(count_mode="manual", manual_count=25), random.Random()) == 25
    low, high = RANDOM_COUNT_RANGE
    assert low <= target_count(make_request(), random.Random(1)) <= high
    with pytest.raises(InvalidTransition, match="Invalid manual count"):
        target_count(make_request(count_mode="manual", manual_count=0), random.Random())


def test_year_range_is_validated():
    with pytest.raises(ValueError):
        make_request(start_year=2023, end_year=2020)


@pytest.mark.asyncio
async def test_generate_inserts_rows(api, db, customer, customer_account):
    response = await api.post(
        "/api/admin/transactions/generate",
        json={
            "user_id": customer.id,
            "account_id": customer_account.id,
            "transaction_types": ["deposit", "card_purchase"],
            "start_year": 2020,
            "end_year": 2020,
            "count_mode": "manual",
            "manual_count": 130,
        },
    )
    assert response.status_code == 200
    body = response.json()
    assert body["total_transactions_generated"] == 130
    assert body["first_transaction_date"] <= body["last_transaction_date"]
    assert body["first_transaction_date"].startswith("2020-")

    rows = await fetch_rows(select(models.Transaction).where(models.Transaction.account_id == customer_account.id))
    assert len(rows) == 130
    assert {row.transaction_type for row in rows} <= {"deposit", "card_purchase"}

    audits = await fetch_rows(select(models.AuditLog).where(models.AuditLog.table_name == "transactions"))
    assert audits[0].action == f"Generated 130 fake transactions for user {customer.id}"


@pytest.mark.asyncio
async def test_generate_refuses_foreign_account(api, db, customer):
    other = await make_user(db, email="jane@y.com", full_name="Jane Roe")
    foreign = await make_account(db, other.id)

    response = await api.post(
        "/api/admin/transactions/generate",
        json={
            "user_id": customer.id,
            "account_id": foreign.id,
            "transaction_types": ["deposit"],
            "start_year": 2020,
            "end_year": 2021,
            "count_mode": "manual",
            "manual_count": 5,
        },
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "Account not found or does not belong to user"
    assert await fetch_rows(select(models.Transaction)) == []
