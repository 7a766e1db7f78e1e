from datetime import date
from typing import Optional
import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import FileResponse

from crud import serialize_with_users
from deps import CurrentAdminUserDep, SessionDep, get_current_admin_user
from document_service import DocumentService, DOCUMENT_STATUSES, SIGNED_FILE_ROUTE, signed_url
from routers.admin_common import http_error, list_response
from schemas import IdentityDocument as PydanticIdentityDocument, StatusActionRequest
from service_errors import RecordNotFound

log = logging.getLogger(__name__)

documents_router = APIRouter(tags=["admin-documents"], dependencies=[Depends(get_current_admin_user)])

# Signed links are opened directly by the browser, so this route checks the link token instead of a session.
document_files_router = APIRouter(tags=["admin-documents"])


@documents_router.get("/documents")
async def list_documents(
    db_session: SessionDep,
    status: Optional[str] = None,
    search: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    documents = await DocumentService.list_documents(db_session, status=status)
    records = await serialize_with_users(db_session, documents, PydanticIdentityDocument)
    for record in records:
        record["front_url"] = signed_url(record["front_path"])
        record["back_url"] = signed_url(record["back_path"])
    return list_response(
        "documents", records, DOCUMENT_STATUSES, search, start_date, end_date,
        search_fields=("id", "user_name", "user_email", "document_type"),
    )


@documents_router.get("/documents/{document_id}/urls")
async def document_urls(document_id: int, db_session: SessionDep):
    try:
        urls = await DocumentService.urls_for_document(db_session, document_id)
    except RecordNotFound as e:
        raise http_error(e)
    return {"success": True, "documents": urls}


@documents_router.get("/users/{user_id}/documents/urls")
async def user_document_urls(user_id: int, db_session: SessionDep):
    try:
        urls = await DocumentService.urls_for_user(db_session, user_id)
    except RecordNotFound as e:
        raise http_error(e)
    return {"success": True, "documents": urls}


@documents_router.post("/documents/{document_id}/actions")
async def document_action(
    document_id: int, payload: StatusActionRequest, db_session: SessionDep, current_admin: CurrentAdminUserDep
):
    try:
        document = await DocumentService.apply_action(
            db_session, document_id, payload.action, current_admin.id, reason=payload.reason
        )
    except (RecordNotFound, ValueError) as e:
        log.warning(f"ID document {document_id} action '{payload.action}' refused: {e}")
        raise http_error(e)
    return {
        "success": True,
        "document": PydanticIdentityDocument.model_validate(document).model_dump(mode="json"),
    }


@document_files_router.get(SIGNED_FILE_ROUTE)
async def signed_document_file(token: str = Query(...)):
    try:
        path = DocumentService.resolve_signed_file(token)
    except RecordNotFound as e:
        raise http_error(e)
    return FileResponse(path)
