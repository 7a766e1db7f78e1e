"""
Identity Document Service
Review of uploaded ID documents and short-lived signed links to their images.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

import auth_utils
from audit_service import AuditService
from config import settings
from crud import get_or_404
from models import IdentityDocument
from service_errors import RecordNotFound
from status_actions import IDENTITY_DOCUMENTS, resolve_transition

log = logging.getLogger(__name__)

DOCUMENT_STATUSES = ("pending", "verified", "rejected")
SIGNED_FILE_ROUTE = "/api/admin/documents/file"


def storage_path(stored: Optional[str]) -> Optional[str]:
    """Strip any '.../documents/' URL prefix to get the path inside the document store."""
    if not stored:
        return None
    return stored.split("/documents/")[-1].lstrip("/")


def signed_url(stored: Optional[str], expires_seconds: Optional[int] = None) -> Optional[str]:
    """External http(s) links pass through; stored paths become signed one-hour links."""
    if not stored:
        return None
    if stored.startswith(("http://", "https://")) and "/documents/" not in stored:
        return stored
    token = auth_utils.create_document_token(storage_path(stored), expires_seconds)
    return f"{settings.PUBLIC_BASE_URL}{SIGNED_FILE_ROUTE}?token={token}"


class DocumentService:

    @staticmethod
    async def list_documents(db: AsyncSession, status: Optional[str] = None) -> List[IdentityDocument]:
        query = select(IdentityDocument).order_by(IdentityDocument.created_at.desc(), IdentityDocument.id.desc())
        if status and status != "all":
            query = query.where(IdentityDocument.status == status)
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    def document_urls(document: IdentityDocument) -> Dict[str, Optional[str]]:
        return {
            "front": signed_url(document.front_path),
            "back": signed_url(document.back_path),
            "type": document.document_type,
            "status": document.status,
        }

    @staticmethod
    async def urls_for_document(db: AsyncSession, document_id: int) -> Dict[str, Optional[str]]:
        document = await get_or_404(db, IdentityDocument, document_id, "Document")
        return DocumentService.document_urls(document)

    @staticmethod
    async def urls_for_user(db: AsyncSession, user_id: int) -> Dict[str, Optional[str]]:
        """Signed links for a user's most recent upload."""
        result = await db.execute(
            select(IdentityDocument)
            .where(IdentityDocument.user_id == user_id)
            .order_by(IdentityDocument.created_at.desc(), IdentityDocument.id.desc())
            .limit(1)
        )
        document = result.scalars().first()
        if document is None:
            raise RecordNotFound("No documents found for this user")
        return DocumentService.document_urls(document)

    @staticmethod
    def resolve_signed_file(token: str) -> Path:
        """Map a document token to a file inside the storage directory."""
        path = auth_utils.decode_document_token(token)
        if path is None:
            raise RecordNotFound("Link is invalid or has expired")
        root = Path(settings.DOCUMENT_STORAGE_DIR).resolve()
        target = (root / path).resolve()
        if root not in target.parents or not target.is_file():
            raise RecordNotFound("Document not found")
        return target

    @staticmethod
    async def apply_action(
        db: AsyncSession, document_id: int, action: str, admin_id: int, reason: Optional[str] = None
    ) -> IdentityDocument:
        document = await get_or_404(db, IdentityDocument, document_id, "Document")
        old_status = document.status
        document.status = resolve_transition(IDENTITY_DOCUMENTS, action, old_status, reason=reason)
        now = datetime.now(timezone.utc)
        document.verified_by = admin_id
        document.verified_at = now
        document.updated_at = now
        if action == "reject":
            document.rejection_reason = reason

        AuditService.log_action(
            db, admin_id, f"ID Document {document.status}", "user_id_documents", document.id,
            old_data={"status": old_status},
            new_data={"status": document.status, "rejection_reason": document.rejection_reason},
        )
        await db.commit()
        await db.refresh(document)
        log.info(f"ID document {document.id} {document.status} by admin {admin_id}")
        return document


document_service = DocumentService()
