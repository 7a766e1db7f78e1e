"""
Crypto Deposit Service
Review workflow for incoming crypto deposits: approval, holds, completion
(crediting the linked account), rejection, failure and reversal.
"""

from datetime import datetime, timezone
from typing import List, Optional
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from audit_service import AuditService
from config import settings
from crud import get_or_404, get_account_by_number
from models import CryptoDeposit, Transaction, Account
from schemas import CryptoDepositUpdate
from service_errors import InvalidTransition
from status_actions import CRYPTO_DEPOSITS, resolve_transition

log = logging.getLogger(__name__)

DEPOSIT_STATUSES = (
    "pending", "awaiting_confirmations", "on_hold", "confirmed", "processing",
    "completed", "rejected", "failed", "reversed",
)


class CryptoDepositService:
    """Admin operations over the crypto_deposits table"""

    # ==================== QUERIES ====================

    @staticmethod
    async def list_deposits(db: AsyncSession, status: Optional[str] = None) -> List[CryptoDeposit]:
        query = select(CryptoDeposit).order_by(CryptoDeposit.created_at.desc(), CryptoDeposit.id.desc())
        if status and status != "all":
            query = query.where(CryptoDeposit.status == status)
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def _pending_credit(db: AsyncSession, deposit_id: int) -> Optional[Transaction]:
        result = await db.execute(
            select(Transaction).where(
                Transaction.reference == str(deposit_id),
                Transaction.transaction_type == "credit",
                Transaction.status == "pending",
            ).limit(1)
        )
        return result.scalars().first()

    # ==================== STATUS ACTIONS ====================

    @staticmethod
    async def apply_action(
        db: AsyncSession,
        deposit_id: int,
        action: str,
        admin_id: int,
        reason: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> CryptoDeposit:
        deposit = await get_or_404(db, CryptoDeposit, deposit_id, "Deposit")
        old_status = deposit.status
        new_status = resolve_transition(
            CRYPTO_DEPOSITS, action, old_status, reason=reason, prior_status=deposit.status_before_hold
        )
        now = datetime.now(timezone.utc)

        if action == "complete":
            await CryptoDepositService._complete(db, deposit, now)
        elif action == "reverse":
            await CryptoDepositService._reverse(db, deposit, reason, now)
        elif action == "approve":
            deposit.approved_by = admin_id
            deposit.approved_at = now
        elif action == "hold":
            deposit.status_before_hold = old_status
            deposit.hold_reason = reason
        elif action == "release":
            deposit.status_before_hold = None
            deposit.hold_reason = None
        elif action in ("reject", "fail"):
            if action == "reject":
                deposit.rejection_reason = reason
                deposit.rejected_at = now
            else:
                deposit.failure_reason = reason
            pending_tx = await CryptoDepositService._pending_credit(db, deposit.id)
            if pending_tx is not None:
                pending_tx.status = "failed"
                pending_tx.description = f"Crypto deposit - {deposit.crypto_type} - {new_status.capitalize()}"

        if action == "complete" and deposit.approved_by is None:
            deposit.approved_by = admin_id
            deposit.approved_at = now
        if notes:
            deposit.admin_notes = notes
        deposit.status = new_status
        deposit.updated_at = now

        AuditService.log_status_change(
            db, admin_id, "crypto_deposits", deposit.id, old_status, new_status, reason=reason
        )
        await db.commit()
        await db.refresh(deposit)
        log.info(f"Crypto deposit {deposit.id}: {old_status} -> {new_status} by admin {admin_id}")
        return deposit

    @staticmethod
    async def _complete(db: AsyncSession, deposit: CryptoDeposit, now: datetime):
        """Credit amount minus fee to the linked account and book the fee to treasury."""
        if deposit.account_id is None:
            raise InvalidTransition("No account linked to this deposit")
        account = await get_or_404(db, Account, deposit.account_id, "Account")

        amount = float(deposit.amount or 0)
        fee = float(deposit.fee or 0)
        net_amount = amount - fee
        description = f"Crypto deposit - {deposit.crypto_type} (Net after {fee} fee)"

        balance_before = float(account.balance or 0)
        account.balance = balance_before + net_amount

        credit = await CryptoDepositService._pending_credit(db, deposit.id)
        if credit is None:
            credit = Transaction(
                user_id=deposit.user_id,
                account_id=account.id,
                transaction_type="credit",
                reference=str(deposit.id),
            )
            db.add(credit)
        credit.status = "completed"
        credit.amount = net_amount
        credit.description = description
        credit.balance_before = balance_before
        credit.balance_after = account.balance
        credit.updated_at = now

        if fee > 0:
            treasury = await get_account_by_number(db, settings.TREASURY_ACCOUNT_NUMBER)
            if treasury is not None:
                treasury_before = float(treasury.balance or 0)
                treasury.balance = treasury_before + fee
                db.add(Transaction(
                    account_id=treasury.id,
                    transaction_type="credit",
                    amount=fee,
                    description=f"Crypto deposit fee - {deposit.crypto_type}",
                    status="completed",
                    reference=str(deposit.id),
                    balance_before=treasury_before,
                    balance_after=treasury.balance,
                ))
            else:
                log.warning(f"Treasury account {settings.TREASURY_ACCOUNT_NUMBER} not found; fee for deposit {deposit.id} not booked")

        deposit.completed_at = now

    @staticmethod
    async def _completed_credit(db: AsyncSession, deposit: CryptoDeposit) -> Optional[Transaction]:
        result = await db.execute(
            select(Transaction).where(
                Transaction.reference == str(deposit.id),
                Transaction.account_id == deposit.account_id,
                Transaction.transaction_type == "credit",
                Transaction.status == "completed",
            ).limit(1)
        )
        return result.scalars().first()

    @staticmethod
    async def _reverse(db: AsyncSession, deposit: CryptoDeposit, reason: str, now: datetime):
        """Debit back what completion credited and mark that credit reversed."""
        if deposit.account_id is None:
            raise InvalidTransition("No account linked to this deposit")
        account = await get_or_404(db, Account, deposit.account_id, "Account")

        credit = await CryptoDepositService._completed_credit(db, deposit)
        if credit is not None:
            amount = float(credit.amount or 0)
        else:
            amount = float(deposit.amount or 0) - float(deposit.fee or 0)
        balance_before = float(account.balance or 0)
        if balance_before < amount:
            raise InvalidTransition("Insufficient balance to reverse this deposit")

        account.balance = balance_before - amount
        db.add(Transaction(
            user_id=deposit.user_id,
            account_id=account.id,
            transaction_type="debit",
            amount=amount,
            description=f"Crypto deposit reversal - {deposit.crypto_type}",
            status="completed",
            reference=f"REVERSAL-{deposit.id}",
            balance_before=balance_before,
            balance_after=account.balance,
        ))
        if credit is not None:
            credit.status = "reversed"
            credit.updated_at = now
        deposit.reversal_reason = reason
        deposit.reversed_at = now

    # ==================== EDIT / DELETE ====================

    @staticmethod
    async def update_deposit(
        db: AsyncSession, deposit_id: int, updates: CryptoDepositUpdate, admin_id: int
    ) -> CryptoDeposit:
        deposit = await get_or_404(db, CryptoDeposit, deposit_id, "Deposit")
        changes = updates.model_dump(exclude_unset=True)
        old_data = {field: getattr(deposit, field) for field in changes}
        for field, value in changes.items():
            setattr(deposit, field, value)
        deposit.updated_at = datetime.now(timezone.utc)

        AuditService.log_action(
            db, admin_id, "crypto_deposits:edit", "crypto_deposits", deposit.id,
            old_data=old_data, new_data=changes,
        )
        await db.commit()
        await db.refresh(deposit)
        log.info(f"Crypto deposit {deposit.id} edited by admin {admin_id}: {sorted(changes)}")
        return deposit

    @staticmethod
    async def delete_deposit(db: AsyncSession, deposit_id: int, admin_id: int) -> None:
        deposit = await get_or_404(db, CryptoDeposit, deposit_id, "Deposit")
        AuditService.log_action(
            db, admin_id, "crypto_deposits:delete", "crypto_deposits", deposit.id,
            old_data={"status": deposit.status, "amount": deposit.amount, "user_id": deposit.user_id},
        )
        await db.delete(deposit)
        await db.commit()
        log.info(f"Crypto deposit {deposit_id} deleted by admin {admin_id}")


crypto_deposit_service = CryptoDepositService()
