"""
Account Request Service
Approves or rejects users' requests for an additional account. Approval opens
the account with a fresh 12-digit number and the bank's routing number.
"""

from datetime import datetime, timezone
from typing import List, Optional, Tuple
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from audit_service import AuditService
from config import settings
from crud import get_or_404, generate_account_number
from models import AccountRequest, Account
from status_actions import ACCOUNT_REQUESTS, resolve_transition

log = logging.getLogger(__name__)

REQUEST_STATUSES = ("pending", "approved", "rejected")


class AccountRequestService:

    @staticmethod
    async def list_requests(db: AsyncSession, status: Optional[str] = None) -> List[AccountRequest]:
        query = select(AccountRequest).order_by(AccountRequest.created_at.desc(), AccountRequest.id.desc())
        if status and status != "all":
            query = query.where(AccountRequest.status == status)
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def apply_action(
        db: AsyncSession,
        request_id: int,
        action: str,
        admin_id: int,
        reason: Optional[str] = None,
    ) -> Tuple[AccountRequest, Optional[Account]]:
        """Returns the updated request and, on approval, the account that was opened."""
        request = await get_or_404(db, AccountRequest, request_id, "Account request")
        old_status = request.status
        new_status = resolve_transition(ACCOUNT_REQUESTS, action, old_status, reason=reason)
        now = datetime.now(timezone.utc)

        account = None
        if action == "approve":
            account = Account(
                user_id=request.user_id,
                account_number=await generate_account_number(db),
                routing_number=settings.DEFAULT_ROUTING_NUMBER,
                account_type=request.account_type_name,
                balance=0.0,
                status="active",
                approved_at=now,
            )
            db.add(account)
            await db.flush()
            request.created_account_id = account.id
        else:
            request.rejection_reason = reason

        request.status = new_status
        request.reviewed_by = admin_id
        request.reviewed_date = now
        request.updated_at = now

        AuditService.log_status_change(
            db, admin_id, "account_requests", request.id, old_status, new_status, reason=reason,
            created_account_id=request.created_account_id,
        )
        await db.commit()
        await db.refresh(request)
        if account is not None:
            await db.refresh(account)
            log.info(f"Account request {request.id} approved; opened account {account.account_number}")
        else:
            log.info(f"Account request {request.id} rejected by admin {admin_id}")
        return request, account


account_request_service = AccountRequestService()
