"""
Audit Logging Service - append-only trail of admin mutations
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from models import AuditLog
import json
import logging

log = logging.getLogger(__name__)


class AuditService:
    """Append-only audit logging service"""

    @staticmethod
    def log_action(
        db: AsyncSession,
        admin_id: Optional[int],
        action: str,
        table_name: str,
        record_id: Optional[int] = None,
        old_data: Optional[Dict[str, Any]] = None,
        new_data: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        """
        Stage an audit row on the caller's session.

        The row is committed together with the mutation it describes, so a failed
        mutation never leaves an audit entry behind.
        """
        entry = AuditLog(
            admin_id=admin_id,
            action=action,
            table_name=table_name,
            record_id=record_id,
            old_data=json.dumps(old_data, default=str) if old_data is not None else None,
            new_data=json.dumps(new_data, default=str) if new_data is not None else None,
        )
        db.add(entry)
        log.info(f"AUDIT: admin={admin_id} action={action} table={table_name} record={record_id}")
        return entry

    @staticmethod
    def log_status_change(
        db: AsyncSession,
        admin_id: Optional[int],
        table_name: str,
        record_id: int,
        old_status: Optional[str],
        new_status: str,
        reason: Optional[str] = None,
        **details,
    ) -> AuditLog:
        new_data = {"status": new_status, **details}
        if reason:
            new_data["reason"] = reason
        return AuditService.log_action(
            db,
            admin_id=admin_id,
            action=f"{table_name}:status:{new_status}",
            table_name=table_name,
            record_id=record_id,
            old_data={"status": old_status},
            new_data=new_data,
        )


audit_service = AuditService()
