"""
Support Message Service
Customer support threads: listing, reading, admin replies and status changes.
Every change is pushed to websocket subscribers of the threads channel.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from audit_service import AuditService
from crud import get_or_404
from models import ChatThread, ChatMessage
from schemas import ChatMessage as PydanticChatMessage
from status_actions import CHAT_THREADS, resolve_transition
from ws_manager import manager, THREADS_CHANNEL

log = logging.getLogger(__name__)


class SupportMessageService:

    @staticmethod
    async def list_threads(db: AsyncSession, status: Optional[str] = None) -> List[ChatThread]:
        query = select(ChatThread).order_by(ChatThread.last_message_at.desc(), ChatThread.id.desc())
        if status and status != "all":
            query = query.where(ChatThread.status == status)
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def get_thread(db: AsyncSession, thread_id: int) -> Dict[str, Any]:
        """Thread with its messages in order; unread messages are marked read."""
        thread = await get_or_404(db, ChatThread, thread_id, "Thread")
        result = await db.execute(
            select(ChatMessage)
            .where(ChatMessage.thread_id == thread_id)
            .order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc())
        )
        messages = [PydanticChatMessage.model_validate(m).model_dump(mode="json") for m in result.scalars().all()]

        await db.execute(
            update(ChatMessage)
            .where(ChatMessage.thread_id == thread_id, ChatMessage.is_read.is_(False))
            .values(is_read=True)
        )
        await db.commit()
        return {"thread": thread, "messages": messages}

    @staticmethod
    async def reply(db: AsyncSession, thread_id: int, message: str, admin_id: int) -> ChatMessage:
        thread = await get_or_404(db, ChatThread, thread_id, "Thread")
        text = message.strip()
        now = datetime.now(timezone.utc)

        chat_message = ChatMessage(thread_id=thread.id, sender_id=admin_id, message=text, created_at=now)
        db.add(chat_message)

        old_status = thread.status
        thread.last_message = text
        thread.last_message_at = now
        thread.admin_id = admin_id
        thread.status = "pending"
        thread.updated_at = now

        await db.flush()
        AuditService.log_action(
            db, admin_id, "chat_threads:reply", "chat_threads", thread.id,
            old_data={"status": old_status}, new_data={"status": "pending", "message_id": chat_message.id},
        )
        await db.commit()
        await db.refresh(chat_message)

        await manager.notify("message:created", channel=THREADS_CHANNEL, thread_id=thread.id, message_id=chat_message.id)
        log.info(f"Admin {admin_id} replied on thread {thread.id}")
        return chat_message

    @staticmethod
    async def change_status(db: AsyncSession, thread_id: int, new_status: str, admin_id: int) -> ChatThread:
        thread = await get_or_404(db, ChatThread, thread_id, "Thread")
        old_status = thread.status
        thread.status = resolve_transition(CHAT_THREADS, new_status, old_status)
        thread.updated_at = datetime.now(timezone.utc)

        AuditService.log_status_change(db, admin_id, "chat_threads", thread.id, old_status, thread.status)
        await db.commit()
        await db.refresh(thread)

        await manager.notify("thread:updated", channel=THREADS_CHANNEL, thread_id=thread.id, status=thread.status)
        return thread


support_message_service = SupportMessageService()
