import json
from datetime import datetime, timezone

import pytest
from sqlalchemy import select

import models
from tests.factories import fetch_rows, make_row, reload

NEW_VALUE = datetime(2023, 6, 15, 12, 30, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_lists_user_timestamps_by_table(api, db, customer, customer_account):
    await make_row(db, models.CryptoDeposit, user_id=customer.id, crypto_type="ETH", amount=1.0)

    response = await api.get(f"/api/admin/timestamps/{customer.id}")
    assert response.status_code == 200
    body = response.json()
    assert body["user"]["email"] == "john@x.com"

    tables = body["tables"]
    assert {row["field"] for row in tables["users"]} == {"created_at", "updated_at"}
    assert {row["record_id"] for row in tables["accounts"]} == {customer_account.id}
    assert "completed_at" in {row["field"] for row in tables["crypto_deposits"]}
    assert tables["wire_transfers"] == []


@pytest.mark.asyncio
async def test_unknown_user_is_404(api):
    assert (await api.get("/api/admin/timestamps/404")).status_code == 404


@pytest.mark.asyncio
async def test_update_whitelisted_field(api, db, admin_user, customer_account):
    response = await api.post(
        "/api/admin/timestamps",
        json={"table": "accounts", "record_id": customer_account.id, "field": "created_at", "value": NEW_VALUE.isoformat()},
    )
    assert response.status_code == 200
    assert response.json()["message"] == "Successfully updated created_at in accounts"

    saved = await reload(models.Account, customer_account.id)
    assert saved.created_at.replace(tzinfo=None) == NEW_VALUE.replace(tzinfo=None)

    logs = await fetch_rows(select(models.AuditLog).where(models.AuditLog.table_name == "accounts"))
    assert logs[0].action == "Updated created_at in accounts"
    assert logs[0].admin_id == admin_user.id
    assert json.loads(logs[0].new_data) == {"created_at": NEW_VALUE.isoformat()}


@pytest.mark.asyncio
async def test_update_leaves_other_columns_untouched(api, db, customer):
    stamped = datetime(2021, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    deposit = await make_row(
        db, models.CryptoDeposit, user_id=customer.id, crypto_type="ETH", amount=1.5,
        status="completed", updated_at=stamped,
    )

    response = await api.post(
        "/api/admin/timestamps",
        json={"table": "crypto_deposits", "record_id": deposit.id, "field": "completed_at", "value": NEW_VALUE.isoformat()},
    )
    assert response.status_code == 200

    saved = await reload(models.CryptoDeposit, deposit.id)
    assert saved.completed_at.replace(tzinfo=None) == NEW_VALUE.replace(tzinfo=None)
    assert saved.updated_at.replace(tzinfo=None) == stamped.replace(tzinfo=None)
    assert saved.status == "completed"
    assert saved.amount == pytest.approx(1.5)

    response = await api.post(
        "/api/admin/timestamps",
        json={"table": "crypto_deposits", "record_id": deposit.id, "field": "updated_at", "value": NEW_VALUE.isoformat()},
    )
    assert response.status_code == 200
    saved = await reload(models.CryptoDeposit, deposit.id)
    assert saved.updated_at.replace(tzinfo=None) == NEW_VALUE.replace(tzinfo=None)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "table, field, detail",
    [
        ("secrets", "created_at", "Invalid table"),
        ("accounts", "balance", "Field balance is not allowed for table accounts"),
    ],
)
async def test_update_outside_whitelist_is_refused(api, customer_account, table, field, detail):
    response = await api.post(
        "/api/admin/timestamps",
        json={"table": table, "record_id": customer_account.id, "field": field, "value": NEW_VALUE.isoformat()},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == detail


@pytest.mark.asyncio
async def test_update_missing_record_is_404(api):
    response = await api.post(
        "/api/admin/timestamps",
        json={"table": "accounts", "record_id": 999, "field": "created_at", "value": NEW_VALUE.isoformat()},
    )
    assert response.status_code == 404
