"""Chat widget conversation handling.

Sessions and messages are persisted in ``chat_sessions`` / ``chat_messages``.
Hourly limits, per session and per client IP, are counted from stored user
messages, so they hold across workers without any in-process state.
Length and rate limits come from the ``chatbot_settings`` row.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from houses_bc.agents.chat_agent import HISTORY_WINDOW, ChatAgent
from houses_bc.app.config import get_settings
from houses_bc.domain.enums import ChatRole
from houses_bc.domain.models import ChatbotSettings, ChatKnowledge, ChatMessage, ChatSession, User
from houses_bc.services.errors import UpstreamServiceError
from houses_bc.services.message_sanitizer import MessageRejectedError, MessageSanitizer

logger = logging.getLogger(__name__)

KNOWLEDGE_LIMIT = 10
SETTINGS_ID = "default"
DEFAULT_WELCOME_MESSAGE = (
    "Hi! I'm the Houses BC assistant. Ask me anything about buying your first home in BC."
)


class ChatRateLimitedError(Exception):
    """Too many messages in the current hour for this session or client."""


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def serialize_message(message: ChatMessage) -> dict:
    return {
        "id": message.id,
        "sessionId": message.session_id,
        "role": message.role,
        "content": message.content,
        "model": message.model,
        "timestamp": message.created_at.isoformat() if message.created_at else None,
    }


def serialize_settings(row: ChatbotSettings) -> dict:
    return {
        "id": row.id,
        "welcomeMessage": row.welcome_message,
        "responseStyle": row.response_style,
        "maxMessageLength": row.max_message_length,
        "rateLimitPerHour": row.rate_limit_per_hour,
        "enabledFeatures": row.enabled_features or [],
        "updatedBy": row.updated_by,
        "updatedAt": row.updated_at.isoformat() if row.updated_at else None,
    }


async def get_chatbot_settings(db: AsyncSession) -> ChatbotSettings:
    """The settings row, created from configuration defaults on first use."""
    row = await db.get(ChatbotSettings, SETTINGS_ID)
    if row is None:
        settings = get_settings()
        row = ChatbotSettings(
            id=SETTINGS_ID,
            welcome_message=DEFAULT_WELCOME_MESSAGE,
            response_style="friendly",
            max_message_length=settings.chat_max_message_length,
            rate_limit_per_hour=settings.chat_rate_limit_per_hour,
            enabled_features=[],
        )
        db.add(row)
        await db.commit()
        await db.refresh(row)
    return row


async def update_chatbot_settings(
    db: AsyncSession, changes: dict, updated_by: Optional[str] = None
) -> ChatbotSettings:
    row = await get_chatbot_settings(db)
    for field, value in changes.items():
        setattr(row, field, value)
    row.updated_by = updated_by
    await db.commit()
    await db.refresh(row)
    logger.info("Chatbot settings updated by %s: %s", updated_by, sorted(changes))
    return row


def serialize_session(session: ChatSession) -> dict:
    return {
        "id": session.id,
        "userId": session.user_id,
        "userPhone": session.user_phone,
        "isActive": session.is_active,
        "expiresAt": session.expires_at.isoformat() if session.expires_at else None,
        "createdAt": session.created_at.isoformat() if session.created_at else None,
        "updatedAt": session.updated_at.isoformat() if session.updated_at else None,
    }


async def get_session(db: AsyncSession, session_id: str) -> Optional[ChatSession]:
    result = await db.execute(select(ChatSession).where(ChatSession.id == session_id))
    return result.scalar_one_or_none()


async def create_session(
    db: AsyncSession, user: Optional[User] = None, client_ip: Optional[str] = None
) -> ChatSession:
    settings = get_settings()
    session = ChatSession(
        id=str(uuid.uuid4()),
        user_id=user.id if user else "anonymous",
        user_phone=user.phone_number if user else None,
        client_ip=client_ip,
        is_active=True,
        expires_at=datetime.now(timezone.utc) + timedelta(days=settings.chat_session_days),
    )
    db.add(session)
    await db.commit()
    await db.refresh(session)
    return session


async def list_messages(
    db: AsyncSession, session_id: str, limit: Optional[int] = None
) -> list[ChatMessage]:
    """Messages oldest first; with ``limit``, only the most recent ones."""
    if limit is None:
        result = await db.execute(
            select(ChatMessage)
            .where(ChatMessage.session_id == session_id)
            .order_by(ChatMessage.created_at.asc())
        )
        return list(result.scalars().all())

    result = await db.execute(
        select(ChatMessage)
        .where(ChatMessage.session_id == session_id)
        .order_by(ChatMessage.created_at.desc())
        .limit(limit)
    )
    return list(reversed(result.scalars().all()))


async def count_recent_user_messages(
    db: AsyncSession, session_id: str, window: timedelta = timedelta(hours=1)
) -> int:
    since = datetime.now(timezone.utc) - window
    result = await db.execute(
        select(func.count(ChatMessage.id)).where(
            ChatMessage.session_id == session_id,
            ChatMessage.role == ChatRole.USER.value,
            ChatMessage.created_at >= since,
        )
    )
    return result.scalar() or 0


async def count_recent_client_messages(
    db: AsyncSession, client_ip: str, window: timedelta = timedelta(hours=1)
) -> int:
    """User messages sent from ``client_ip`` across all of its sessions."""
    since = datetime.now(timezone.utc) - window
    result = await db.execute(
        select(func.count(ChatMessage.id))
        .join(ChatSession, ChatSession.id == ChatMessage.session_id)
        .where(
            ChatSession.client_ip == client_ip,
            ChatMessage.role == ChatRole.USER.value,
            ChatMessage.created_at >= since,
        )
    )
    return result.scalar() or 0


async def latest_knowledge(db: AsyncSession, limit: int = KNOWLEDGE_LIMIT) -> list[ChatKnowledge]:
    result = await db.execute(
        select(ChatKnowledge).order_by(ChatKnowledge.last_updated.desc()).limit(limit)
    )
    return list(result.scalars().all())


async def _append(
    db: AsyncSession,
    session_id: str,
    role: ChatRole,
    content: str,
    model: Optional[str] = None,
    tokens_used: int = 0,
) -> ChatMessage:
    message = ChatMessage(
        session_id=session_id,
        role=role.value,
        content=content,
        model=model,
        tokens_used=tokens_used,
    )
    db.add(message)
    await db.flush()
    return message


async def handle_message(
    db: AsyncSession,
    message: str,
    session_id: Optional[str] = None,
    user: Optional[User] = None,
    client_ip: Optional[str] = None,
) -> dict:
    """Validate a visitor message, get the assistant reply and log both.

    Raises:
        MessageRejectedError: invalid, spammy, or expired-session input.
        ChatRateLimitedError: hourly limit reached for the session or client IP.
        UpstreamServiceError: the model call failed or timed out.
    """
    bot = await get_chatbot_settings(db)
    cleaned = MessageSanitizer.sanitize(message, bot.max_message_length)
    if MessageSanitizer.is_spam(cleaned):
        raise MessageRejectedError("Message flagged as spam")

    if client_ip:
        sent = await count_recent_client_messages(db, client_ip)
        if sent >= bot.rate_limit_per_hour:
            logger.warning("Chat rate limit hit for client %s (%d messages)", client_ip, sent)
            raise ChatRateLimitedError("Too many messages. Please try again later.")

    session = None
    history: list[ChatMessage] = []
    if session_id:
        if not MessageSanitizer.validate_session_id(session_id):
            raise MessageRejectedError("Invalid session ID")
        session = await get_session(db, session_id)

    if session is not None:
        if _as_utc(session.expires_at) < datetime.now(timezone.utc):
            raise MessageRejectedError("Session expired. Please start a new conversation.")
        recent = await count_recent_user_messages(db, session.id)
        if recent >= bot.rate_limit_per_hour:
            logger.warning("Chat rate limit hit for session %s (%d messages)", session.id, recent)
            raise ChatRateLimitedError("Too many messages. Please try again later.")
        history = await list_messages(db, session.id, limit=HISTORY_WINDOW)
    else:
        # Unknown ids start a fresh session
        session = await create_session(db, user, client_ip)

    knowledge = await latest_knowledge(db)
    agent = ChatAgent()
    result = await agent.reply(cleaned, history, knowledge, style=bot.response_style)
    if not result.ok:
        raise UpstreamServiceError("ai_chat", result.error or "no reply")

    reply = MessageSanitizer.sanitize_response(result.data)
    await _append(db, session.id, ChatRole.USER, cleaned)
    bot_message = await _append(
        db,
        session.id,
        ChatRole.ASSISTANT,
        reply,
        model=agent.model_name,
        tokens_used=result.tokens_used,
    )
    session.updated_at = datetime.now(timezone.utc)
    await db.commit()
    await db.refresh(bot_message)

    return {
        "message": reply,
        "sessionId": session.id,
        "messageId": bot_message.id,
        "timestamp": bot_message.created_at.isoformat() if bot_message.created_at else None,
    }


async def delete_session(db: AsyncSession, session_id: str) -> None:
    await db.execute(delete(ChatMessage).where(ChatMessage.session_id == session_id))
    await db.execute(delete(ChatSession).where(ChatSession.id == session_id))
    await db.commit()


async def session_overview(db: AsyncSession, limit: int = 50) -> list[dict]:
    """Sessions, newest activity first, with message count and last message."""
    result = await db.execute(
        select(ChatSession).order_by(ChatSession.updated_at.desc()).limit(limit)
    )
    sessions = []
    for session in result.scalars().all():
        count = (
            await db.execute(
                select(func.count(ChatMessage.id)).where(ChatMessage.session_id == session.id)
            )
        ).scalar() or 0
        last = (
            await db.execute(
                select(ChatMessage.content)
                .where(ChatMessage.session_id == session.id)
                .order_by(ChatMessage.created_at.desc())
                .limit(1)
            )
        ).scalar_one_or_none()
        sessions.append({**serialize_session(session), "messageCount": count, "lastMessage": last})
    return sessions
