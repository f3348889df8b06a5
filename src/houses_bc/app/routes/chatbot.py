"""AI chat widget routes plus the admin knowledge base."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from houses_bc.app.routes.auth import get_optional_user_dep, require_admin
from houses_bc.domain.models import ChatKnowledge, User
from houses_bc.domain.schemas import (
    ChatbotSettingsUpdateRequest,
    ChatMessageRequest,
    KnowledgeCreateRequest,
    KnowledgeUpdateRequest,
)
from houses_bc.infra.database import get_db
from houses_bc.services.chat_service import (
    ChatRateLimitedError,
    delete_session,
    get_chatbot_settings,
    get_session,
    handle_message,
    list_messages,
    serialize_message,
    serialize_session,
    serialize_settings,
    session_overview,
    update_chatbot_settings,
)
from houses_bc.services.message_sanitizer import MessageRejectedError, MessageSanitizer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chatbot", tags=["chatbot"])


def serialize_knowledge(entry: ChatKnowledge) -> dict:
    return {
        "id": entry.id,
        "type": entry.type,
        "title": entry.title,
        "content": entry.content,
        "category": entry.category,
        "addedBy": entry.added_by,
        "lastUpdated": entry.last_updated.isoformat() if entry.last_updated else None,
    }


def _check_session_id(session_id: str) -> None:
    if not MessageSanitizer.validate_session_id(session_id):
        raise HTTPException(status_code=400, detail="Invalid session ID")


async def _get_knowledge_or_404(db: AsyncSession, knowledge_id: str) -> ChatKnowledge:
    result = await db.execute(select(ChatKnowledge).where(ChatKnowledge.id == knowledge_id))
    entry = result.scalar_one_or_none()
    if not entry:
        raise HTTPException(status_code=404, detail="Knowledge entry not found")
    return entry


@router.post("/message")
async def post_message(
    data: ChatMessageRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    user: Optional[User] = Depends(get_optional_user_dep),
):
    try:
        client_ip = request.client.host if request.client else None
        reply = await handle_message(db, data.message, data.session_id, user, client_ip)
    except MessageRejectedError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ChatRateLimitedError as e:
        raise HTTPException(status_code=429, detail=str(e))
    return {"success": True, "data": reply}


@router.get("/history/{session_id}")
async def get_history(session_id: str, db: AsyncSession = Depends(get_db)):
    _check_session_id(session_id)
    messages = await list_messages(db, session_id)
    return {"success": True, "data": {"messages": [serialize_message(m) for m in messages]}}


@router.delete("/session/{session_id}")
async def remove_session(session_id: str, db: AsyncSession = Depends(get_db)):
    _check_session_id(session_id)
    await delete_session(db, session_id)
    logger.info("Chat session %s deleted", session_id)
    return {"success": True, "message": "Session deleted successfully"}


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


@router.get("/admin/chats")
async def list_chats(
    limit: int = Query(default=50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return {"success": True, "data": {"sessions": await session_overview(db, limit)}}


@router.get("/admin/chat/{session_id}")
async def get_chat(
    session_id: str,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    session = await get_session(db, session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    messages = await list_messages(db, session_id)
    return {
        "success": True,
        "data": {
            "session": serialize_session(session),
            "messages": [serialize_message(m) for m in messages],
        },
    }


@router.get("/admin/knowledge")
async def list_knowledge(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    result = await db.execute(select(ChatKnowledge).order_by(ChatKnowledge.last_updated.desc()))
    return {
        "success": True,
        "data": {"knowledge": [serialize_knowledge(k) for k in result.scalars().all()]},
    }


@router.post("/admin/knowledge")
async def add_knowledge(
    data: KnowledgeCreateRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    content = MessageSanitizer.sanitize_knowledge_content(data.content)
    if not content:
        raise HTTPException(status_code=400, detail="Title and content are required")

    entry = ChatKnowledge(
        type=data.type.value,
        title=data.title.strip(),
        content=content,
        category=data.category,
        added_by=admin.id,
    )
    db.add(entry)
    await db.commit()
    await db.refresh(entry)
    logger.info("Knowledge %s added by %s", entry.id, admin.id)
    return {
        "success": True,
        "message": "Knowledge added successfully",
        "data": serialize_knowledge(entry),
    }


@router.put("/admin/knowledge/{knowledge_id}")
async def update_knowledge(
    knowledge_id: str,
    data: KnowledgeUpdateRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    entry = await _get_knowledge_or_404(db, knowledge_id)
    if data.type is not None:
        entry.type = data.type.value
    if data.title is not None:
        entry.title = data.title.strip()
    if data.content is not None:
        entry.content = MessageSanitizer.sanitize_knowledge_content(data.content)
    if data.category is not None:
        entry.category = data.category
    await db.commit()
    await db.refresh(entry)
    return {
        "success": True,
        "message": "Knowledge updated successfully",
        "data": serialize_knowledge(entry),
    }


@router.delete("/admin/knowledge/{knowledge_id}")
async def delete_knowledge(
    knowledge_id: str,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    entry = await _get_knowledge_or_404(db, knowledge_id)
    await db.delete(entry)
    await db.commit()
    return {"success": True, "message": "Knowledge deleted successfully"}


@router.get("/admin/settings")
async def get_settings_view(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return {"success": True, "data": serialize_settings(await get_chatbot_settings(db))}


@router.put("/admin/settings")
async def put_settings(
    data: ChatbotSettingsUpdateRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    changes = data.model_dump(exclude_none=True, mode="json")
    if "welcome_message" in changes:
        changes["welcome_message"] = MessageSanitizer.sanitize_response(
            changes["welcome_message"]
        )
    row = await update_chatbot_settings(db, changes, updated_by=admin.id)
    return {
        "success": True,
        "message": "Settings updated successfully",
        "data": serialize_settings(row),
    }
