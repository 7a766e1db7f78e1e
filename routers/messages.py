"""Support message threads for the admin messages screen."""

from datetime import date
from typing import Optional
import logging

from fastapi import APIRouter, Depends, status as http_status

from crud import serialize_with_users
from deps import CurrentAdminUserDep, SessionDep, get_current_admin_user
from routers.admin_common import http_error, list_response
from schemas import (
    ChatThread as PydanticChatThread,
    ChatMessage as PydanticChatMessage,
    StatusActionRequest,
    ThreadReplyRequest,
)
from service_errors import RecordNotFound
from status_actions import THREAD_STATUSES
from support_message_service import SupportMessageService

log = logging.getLogger(__name__)

messages_router = APIRouter(tags=["admin-messages"], dependencies=[Depends(get_current_admin_user)])


@messages_router.get("/threads")
async def list_threads(
    db_session: SessionDep,
    status: Optional[str] = None,
    search: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    threads = await SupportMessageService.list_threads(db_session, status=status)
    records = await serialize_with_users(db_session, threads, PydanticChatThread)
    return list_response(
        "threads", records, THREAD_STATUSES, search, start_date, end_date,
        search_fields=("user_name", "user_email", "subject"),
        date_field="last_message_at",
    )


@messages_router.get("/threads/{thread_id}")
async def get_thread(thread_id: int, db_session: SessionDep):
    try:
        data = await SupportMessageService.get_thread(db_session, thread_id)
    except RecordNotFound as e:
        raise http_error(e)
    thread = (await serialize_with_users(db_session, [data["thread"]], PydanticChatThread))[0]
    return {"success": True, "thread": thread, "messages": data["messages"]}


@messages_router.post("/threads/{thread_id}/reply", status_code=http_status.HTTP_201_CREATED)
async def reply_to_thread(
    thread_id: int, payload: ThreadReplyRequest, db_session: SessionDep, current_admin: CurrentAdminUserDep
):
    try:
        message = await SupportMessageService.reply(db_session, thread_id, payload.message, current_admin.id)
    except RecordNotFound as e:
        raise http_error(e)
    return {"success": True, "message": PydanticChatMessage.model_validate(message).model_dump(mode="json")}


@messages_router.post("/threads/{thread_id}/actions")
async def thread_status_action(
    thread_id: int, payload: StatusActionRequest, db_session: SessionDep, current_admin: CurrentAdminUserDep
):
    """The action is the target status: open, pending, resolved or closed."""
    try:
        thread = await SupportMessageService.change_status(db_session, thread_id, payload.action, current_admin.id)
    except (RecordNotFound, ValueError) as e:
        raise http_error(e)
    return {"success": True, "thread": PydanticChatThread.model_validate(thread).model_dump(mode="json")}
