import json

import pytest
from sqlalchemy import select

import models
from auth_utils import create_access_token
from config import settings
from tests.factories import fetch_rows, make_account, make_row, make_user, reload


async def make_deposit(db, user, account=None, **fields):
    fields.setdefault("crypto_type", "BTC")
    fields.setdefault("amount", 100.0)
    fields.setdefault("fee", 2.0)
    return await make_row(
        db, models.CryptoDeposit, user_id=user.id, account_id=account.id if account else None, **fields
    )


async def act(api, deposit_id, action, reason=None, notes=None):
    return await api.post(
        f"/api/admin/crypto-deposits/{deposit_id}/actions",
        json={"action": action, "reason": reason, "notes": notes},
    )


@pytest.mark.asyncio
async def test_list_adds_owner_and_summary(api, db, customer, customer_account):
    other = await make_user(db, email="jane@y.com", full_name="Jane Roe")
    await make_deposit(db, customer, customer_account)
    await make_deposit(db, other, status="completed")

    response = await api.get("/api/admin/crypto-deposits")
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert [d["user_email"] for d in body["deposits"]] == ["jane@y.com", "john@x.com"]
    assert body["summary"]["total"] == 2
    assert body["summary"]["pending"] == 1
    assert body["summary"]["completed"] == 1

    searched = (await api.get("/api/admin/crypto-deposits", params={"search": "JOHN"})).json()
    assert [d["user_name"] for d in searched["deposits"]] == ["John Doe"]

    narrowed = (await api.get("/api/admin/crypto-deposits", params={"status": "completed"})).json()
    assert [d["user_email"] for d in narrowed["deposits"]] == ["jane@y.com"]


@pytest.mark.asyncio
async def test_list_requires_admin(anon_api, db):
    assert (await anon_api.get("/api/admin/crypto-deposits")).status_code == 401

    await make_user(db, email="plain@x.com")
    token = create_access_token({"sub": "plain@x.com"})
    response = await anon_api.get("/api/admin/crypto-deposits", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 403
    assert response.json()["detail"] == "Not an admin user"


@pytest.mark.asyncio
async def test_disabled_admin_is_refused(anon_api, db):
    await make_user(db, email="former@x.com", is_admin=True, is_active=False)
    token = create_access_token({"sub": "former@x.com"})
    response = await anon_api.get("/api/admin/crypto-deposits", cookies={"access_token": token})
    assert response.status_code == 400
    assert response.json()["detail"] == "Inactive user"


@pytest.mark.asyncio
async def test_approve_then_complete_credits_net_amount(api, db, admin_user, customer, customer_account):
    treasury = await make_account(db, None, balance=0.0, account_number=settings.TREASURY_ACCOUNT_NUMBER)
    deposit = await make_deposit(db, customer, customer_account)
    await make_row(
        db, models.Transaction, user_id=customer.id, account_id=customer_account.id,
        transaction_type="credit", amount=100.0, status="pending", reference=str(deposit.id),
    )

    response = await act(api, deposit.id, "approve")
    assert response.status_code == 200
    assert response.json()["deposit"]["status"] == "confirmed"
    assert response.json()["deposit"]["approved_by"] == admin_user.id

    response = await act(api, deposit.id, "complete", notes="checked on chain")
    assert response.status_code == 200
    assert response.json()["deposit"]["status"] == "completed"
    assert response.json()["deposit"]["admin_notes"] == "checked on chain"

    account = await reload(models.Account, customer_account.id)
    assert account.balance == pytest.approx(1098.0)
    assert (await reload(models.Account, treasury.id)).balance == pytest.approx(2.0)

    credits = await fetch_rows(
        select(models.Transaction).where(
            models.Transaction.reference == str(deposit.id),
            models.Transaction.account_id == customer_account.id,
        )
    )
    assert len(credits) == 1
    assert credits[0].status == "completed"
    assert credits[0].amount == pytest.approx(98.0)
    assert credits[0].balance_after == pytest.approx(1098.0)


@pytest.mark.asyncio
async def test_complete_without_linked_account_is_refused(api, db, customer):
    deposit = await make_deposit(db, customer, status="confirmed")
    response = await act(api, deposit.id, "complete")
    assert response.status_code == 400
    assert response.json()["detail"] == "No account linked to this deposit"
    assert (await reload(models.CryptoDeposit, deposit.id)).status == "confirmed"


@pytest.mark.asyncio
async def test_reject_requires_reason_and_fails_pending_credit(api, db, customer, customer_account):
    deposit = await make_deposit(db, customer, customer_account)
    tx = await make_row(
        db, models.Transaction, user_id=customer.id, account_id=customer_account.id,
        transaction_type="credit", amount=100.0, status="pending", reference=str(deposit.id),
    )

    response = await act(api, deposit.id, "reject", reason="  ")
    assert response.status_code == 400
    assert response.json()["detail"] == "A reason is required to reject"
    assert (await reload(models.CryptoDeposit, deposit.id)).status == "pending"

    response = await act(api, deposit.id, "reject", reason="Unverified wallet")
    assert response.status_code == 200
    saved = await reload(models.CryptoDeposit, deposit.id)
    assert saved.status == "rejected"
    assert saved.rejection_reason == "Unverified wallet"
    assert (await reload(models.Transaction, tx.id)).status == "failed"

    # rejected is terminal
    assert (await act(api, deposit.id, "approve")).status_code == 400


@pytest.mark.asyncio
async def test_hold_and_release_restore_prior_status(api, db, customer, customer_account):
    deposit = await make_deposit(db, customer, customer_account, status="processing")

    response = await act(api, deposit.id, "hold", reason="Compliance review")
    assert response.json()["deposit"]["status"] == "on_hold"
    assert response.json()["deposit"]["hold_reason"] == "Compliance review"

    response = await act(api, deposit.id, "release")
    body = response.json()["deposit"]
    assert body["status"] == "processing"
    assert body["status_before_hold"] is None


@pytest.mark.asyncio
async def test_complete_then_reverse_returns_the_credited_amount(api, db, customer, customer_account):
    deposit = await make_deposit(db, customer, customer_account)
    assert (await act(api, deposit.id, "approve")).status_code == 200
    assert (await act(api, deposit.id, "complete")).status_code == 200
    assert (await reload(models.Account, customer_account.id)).balance == pytest.approx(1098.0)

    response = await act(api, deposit.id, "reverse", reason="Chargeback")
    assert response.status_code == 200
    assert response.json()["deposit"]["status"] == "reversed"
    assert (await reload(models.Account, customer_account.id)).balance == pytest.approx(1000.0)

    credit = await fetch_rows(
        select(models.Transaction).where(
            models.Transaction.reference == str(deposit.id),
            models.Transaction.account_id == customer_account.id,
        )
    )
    assert [tx.status for tx in credit] == ["reversed"]
    reversal = await fetch_rows(
        select(models.Transaction).where(models.Transaction.reference == f"REVERSAL-{deposit.id}")
    )
    assert len(reversal) == 1
    assert reversal[0].transaction_type == "debit"
    assert reversal[0].amount == pytest.approx(98.0)
    assert reversal[0].balance_after == pytest.approx(1000.0)


@pytest.mark.asyncio
async def test_approved_deposit_cannot_be_reversed(api, db, customer, customer_account):
    deposit = await make_deposit(db, customer, customer_account)
    assert (await act(api, deposit.id, "approve")).status_code == 200

    response = await act(api, deposit.id, "reverse", reason="Chargeback")
    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot reverse crypto deposits with status 'confirmed'"
    assert (await reload(models.Account, customer_account.id)).balance == pytest.approx(1000.0)
    assert (await reload(models.CryptoDeposit, deposit.id)).status == "confirmed"
    reversal = await fetch_rows(
        select(models.Transaction).where(models.Transaction.reference == f"REVERSAL-{deposit.id}")
    )
    assert reversal == []


@pytest.mark.asyncio
async def test_reverse_without_credit_row_debits_net_amount(api, db, customer, customer_account):
    deposit = await make_deposit(db, customer, customer_account, status="completed")

    response = await act(api, deposit.id, "reverse", reason="Chargeback")
    assert response.status_code == 200
    assert (await reload(models.Account, customer_account.id)).balance == pytest.approx(902.0)
    reversal = await fetch_rows(
        select(models.Transaction).where(models.Transaction.reference == f"REVERSAL-{deposit.id}")
    )
    assert reversal[0].transaction_type == "debit"


@pytest.mark.asyncio
async def test_reverse_with_insufficient_balance_is_refused(api, db, customer):
    poor = await make_account(db, customer.id, balance=10.0)
    deposit = await make_deposit(db, customer, poor, status="completed")

    response = await act(api, deposit.id, "reverse", reason="Chargeback")
    assert response.status_code == 400
    assert response.json()["detail"] == "Insufficient balance to reverse this deposit"
    assert (await reload(models.Account, poor.id)).balance == pytest.approx(10.0)


@pytest.mark.asyncio
async def test_action_on_missing_deposit_is_404(api):
    response = await act(api, 999, "approve")
    assert response.status_code == 404
    assert response.json()["detail"] == "Deposit 999 not found"


@pytest.mark.asyncio
async def test_every_action_writes_an_audit_row(api, db, admin_user, customer, customer_account):
    deposit = await make_deposit(db, customer, customer_account)
    await act(api, deposit.id, "reject", reason="Duplicate")

    logs = await fetch_rows(select(models.AuditLog).where(models.AuditLog.table_name == "crypto_deposits"))
    assert len(logs) == 1
    assert logs[0].action == "crypto_deposits:status:rejected"
    assert logs[0].admin_id == admin_user.id
    assert json.loads(logs[0].old_data) == {"status": "pending"}
    assert json.loads(logs[0].new_data)["reason"] == "Duplicate"


@pytest.mark.asyncio
async def test_edit_and_delete(api, db, customer, customer_account):
    deposit = await make_deposit(db, customer, customer_account)

    response = await api.put(f"/api/admin/crypto-deposits/{deposit.id}", json={"amount": 150.0, "admin_notes": "fixed"})
    assert response.status_code == 200
    assert response.json()["deposit"]["amount"] == 150.0

    assert (await api.put(f"/api/admin/crypto-deposits/{deposit.id}", json={"amount": -1})).status_code == 422

    response = await api.delete(f"/api/admin/crypto-deposits/{deposit.id}")
    assert response.status_code == 200
    assert await reload(models.CryptoDeposit, deposit.id) is None
    assert (await api.delete(f"/api/admin/crypto-deposits/{deposit.id}")).status_code == 404
