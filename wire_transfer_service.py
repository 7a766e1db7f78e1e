"""
Wire Transfer Service
Multi-stage approval of outgoing wires. The user's account is debited when the
wire is requested (transaction reference WIRE-<id>); rejecting, cancelling,
failing or reversing a wire refunds the debit.
"""

from datetime import datetime, timezone
from typing import List, Optional
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from audit_service import AuditService
from crud import get_or_404
from models import WireTransfer, Transaction, Account
from status_actions import WIRE_TRANSFERS, resolve_transition

log = logging.getLogger(__name__)

WIRE_STATUSES = (
    "pending", "processing", "on_hold", "completed", "failed", "rejected", "cancelled", "reversed",
)

# Actions that give the debited total back to the source account.
REFUND_ACTIONS = {"reject", "cancel", "fail"}


def wire_reference(transfer_id: int) -> str:
    return f"WIRE-{transfer_id}"


class WireTransferService:
    """Admin operations over the wire_transfers table"""

    @staticmethod
    async def list_transfers(db: AsyncSession, status: Optional[str] = None) -> List[WireTransfer]:
        query = select(WireTransfer).order_by(WireTransfer.created_at.desc(), WireTransfer.id.desc())
        if status and status != "all":
            query = query.where(WireTransfer.status == status)
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def _related_transaction(db: AsyncSession, transfer: WireTransfer) -> Optional[Transaction]:
        result = await db.execute(
            select(Transaction).where(
                Transaction.reference == wire_reference(transfer.id),
                Transaction.account_id == transfer.from_account_id,
            ).limit(1)
        )
        return result.scalars().first()

    @staticmethod
    async def _refund(db: AsyncSession, transfer: WireTransfer, reference: str, description: str) -> float:
        """Credit total_amount back to the source account and record the credit."""
        account = await get_or_404(db, Account, transfer.from_account_id, "Account")
        balance_before = float(account.balance or 0)
        account.balance = balance_before + float(transfer.total_amount)
        db.add(Transaction(
            user_id=transfer.user_id,
            account_id=account.id,
            transaction_type="credit",
            amount=transfer.total_amount,
            description=description,
            reference=reference,
            status="completed",
            balance_before=balance_before,
            balance_after=account.balance,
        ))
        return account.balance

    @staticmethod
    async def apply_action(
        db: AsyncSession,
        transfer_id: int,
        action: str,
        admin_id: int,
        reason: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> WireTransfer:
        transfer = await get_or_404(db, WireTransfer, transfer_id, "Wire transfer")
        old_status = transfer.status
        new_status = resolve_transition(
            WIRE_TRANSFERS, action, old_status, reason=reason, prior_status=transfer.status_before_hold
        )
        now = datetime.now(timezone.utc)
        related = await WireTransferService._related_transaction(db, transfer)

        if action == "approve":
            transfer.approved_at = now
            if related is not None:
                related.description = "Wire transfer approved and processing"
        elif action == "hold":
            transfer.status_before_hold = old_status
            transfer.hold_reason = reason
        elif action == "release":
            transfer.status_before_hold = None
        elif action == "complete":
            transfer.processed_at = now
            if related is not None:
                related.status = "completed"
                related.description = "Wire transfer completed successfully"
        elif action in REFUND_ACTIONS:
            if action == "reject":
                transfer.rejection_reason = reason
            elif action == "cancel":
                transfer.cancellation_reason = reason
            else:
                transfer.failure_reason = reason
            if related is not None and related.status == "pending":
                related.status = "cancelled"
                related.description = f"Wire transfer {new_status}: {reason}"
                await WireTransferService._refund(
                    db, transfer, f"WIRE-REFUND-{transfer.id}",
                    f"Refund for {new_status} wire transfer - {reason}",
                )
        elif action == "reverse":
            transfer.reversal_reason = reason
            if related is not None:
                related.status = "reversed"
            await WireTransferService._refund(
                db, transfer, f"WIRE-REVERSAL-{transfer.id}",
                f"Reversal of wire transfer - {reason}",
            )

        if notes:
            transfer.admin_notes = notes
        transfer.status = new_status
        transfer.updated_by = admin_id
        transfer.updated_at = now

        AuditService.log_status_change(
            db, admin_id, "wire_transfers", transfer.id, old_status, new_status, reason=reason
        )
        await db.commit()
        await db.refresh(transfer)
        log.info(f"Wire transfer {transfer.id}: {old_status} -> {new_status} by admin {admin_id}")
        return transfer


wire_transfer_service = WireTransferService()
