"""
Timestamp Service
Lists and edits the datetime columns of a user's records. Only whitelisted
(table, field) pairs can be written.
"""

from datetime import datetime
from typing import Any, Dict, List
import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from audit_service import AuditService
from crud import get_or_404, get_user
from models import (
    User, Account, Transaction, CryptoDeposit, UserInvestment, WireTransfer,
    AccountRequest, ChatThread, IdentityDocument,
)
from service_errors import InvalidTransition, RecordNotFound

log = logging.getLogger(__name__)

# table name -> (model, editable datetime fields)
EDITABLE_TIMESTAMPS = {
    "users": (User, ("created_at", "updated_at")),
    "accounts": (Account, ("created_at", "updated_at", "approved_at")),
    "transactions": (Transaction, ("created_at", "updated_at")),
    "crypto_deposits": (CryptoDeposit, ("created_at", "updated_at", "approved_at", "rejected_at", "completed_at")),
    "user_investments": (UserInvestment, ("created_at", "updated_at", "invested_at", "closed_at")),
    "wire_transfers": (WireTransfer, ("created_at", "updated_at", "approved_at", "processed_at")),
    "account_requests": (AccountRequest, ("created_at", "updated_at", "request_date", "reviewed_date")),
    "chat_threads": (ChatThread, ("created_at", "updated_at", "last_message_at")),
    "user_id_documents": (IdentityDocument, ("created_at", "updated_at", "verified_at")),
}

RECENT_TRANSACTIONS_LIMIT = 20


def _iso(value):
    return value.isoformat() if value is not None else None


class TimestampService:

    @staticmethod
    async def get_user_timestamps(db: AsyncSession, user_id: int) -> Dict[str, Any]:
        """Every editable (record id, field, value) for one user, grouped by table."""
        user = await get_user(db, user_id)
        if user is None:
            raise RecordNotFound(f"User {user_id} not found")

        tables: Dict[str, List[dict]] = {}
        for table, (model, fields) in EDITABLE_TIMESTAMPS.items():
            if model is User:
                rows = [user]
            else:
                query = select(model).where(model.user_id == user_id).order_by(model.created_at.desc())
                if model is Transaction:
                    query = query.limit(RECENT_TRANSACTIONS_LIMIT)
                rows = (await db.execute(query)).scalars().all()

            tables[table] = [
                {"record_id": row.id, "field": field, "value": _iso(getattr(row, field))}
                for row in rows
                for field in fields
            ]

        return {
            "user": {"id": user.id, "email": user.email, "full_name": user.full_name},
            "tables": tables,
        }

    @staticmethod
    async def update_timestamp(
        db: AsyncSession, table: str, record_id: int, field: str, value: datetime, admin_id: int
    ) -> Dict[str, Any]:
        if table not in EDITABLE_TIMESTAMPS:
            raise InvalidTransition("Invalid table")
        model, fields = EDITABLE_TIMESTAMPS[table]
        if field not in fields:
            raise InvalidTransition(f"Field {field} is not allowed for table {table}")

        row = await get_or_404(db, model, record_id, table)
        old_value = getattr(row, field)

        values = {field: value}
        if field != "updated_at":
            # updated_at has onupdate=now(); pin it to its current value
            values["updated_at"] = model.updated_at
        await db.execute(
            update(model).where(model.id == record_id).values(values),
            execution_options={"synchronize_session": False},
        )

        AuditService.log_action(
            db, admin_id, f"Updated {field} in {table}", table, record_id,
            old_data={field: _iso(old_value)}, new_data={field: _iso(value)},
        )
        await db.commit()
        log.info(f"Timestamp {table}.{field} of record {record_id} set to {value.isoformat()} by admin {admin_id}")
        return {"table": table, "record_id": record_id, "field": field, "value": _iso(value)}


timestamp_service = TimestampService()
