"""SQLAlchemy ORM models for the Houses BC platform.

Records are kept document-shaped:
- String(36) UUID primary keys
- JSON for nested maps (milestones, breakdowns, offer details, metadata)
- DateTime(timezone=True) timestamps in UTC
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    Integer,
    JSON,
    String,
    Text,
)

from houses_bc.infra.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Auth / User
# ---------------------------------------------------------------------------


class User(Base):
    """A phone-verified portal user. Admin and client logins are separate rows."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    phone_number = Column(String(20), nullable=False, index=True)
    name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    role = Column(String(20), nullable=False, default="client")  # admin, client
    verified = Column(Boolean, default=False)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)


class OTPCode(Base):
    """One-time login code sent by SMS."""

    __tablename__ = "otp_codes"

    id = Column(String(36), primary_key=True, default=_uuid)
    phone_number = Column(String(20), nullable=False, index=True)
    code = Column(String(6), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    used = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), default=_now)


class RevokedToken(Base):
    """Bearer token ended by logout; rejected until it would have expired."""

    __tablename__ = "revoked_tokens"

    jti = Column(String(36), primary_key=True)
    user_id = Column(String(36), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    revoked_at = Column(DateTime(timezone=True), default=_now)


class DeletionRequest(Base):
    """Personal data deletion request (PIPEDA / PIPA)."""

    __tablename__ = "deletion_requests"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String(255), nullable=False, index=True)
    reason = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="pending")  # pending, processing, completed
    created_at = Column(DateTime(timezone=True), default=_now, index=True)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)


# ---------------------------------------------------------------------------
# Journey)
# ---------------------------------------------------------------------------


class QuizResponse(Base):
    """Affordability quiz answers plus the figures computed at submission."""

    __tablename__ = "quiz_responses"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(64), nullable=True, index=True)
    session_id = Column(String(64), nullable=False, index=True)
    income = Column(Float, nullable=False)
    savings = Column(Float, nullable=False)
    has_rrsp = Column(Boolean, default=False)
    property_type = Column(String(20), nullable=False)
    timeline = Column(String(10), nullable=False)
    calculated_breakdown = Column(JSON, default=dict)
    calculated_incentives = Column(JSON, default=dict)
    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)


class UserProgress(Base):
    """Milestone map for one client, keyed by user id or quiz session id."""

    __tablename__ = "user_progress"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(64), nullable=False, unique=True, index=True)
    quiz_response_id = Column(String(36), nullable=True)
    # {milestone_id: {"status": ..., "data": {...}, "completedAt": iso}}
    milestones = Column(JSON, default=dict)
    overall_progress = Column(Float, default=0.0)
    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)


# ---------------------------------------------------------------------------
# Leads / appointments / offers
# ---------------------------------------------------------------------------


class Lead(Base):
    """Contact captured by the universal lead modal. Never mutated."""

    __tablename__ = "leads"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False)
    phone_number = Column(String(32), nullable=False)
    email = Column(String(255), nullable=True)
    source = Column(String(20), nullable=False, index=True)
    metadata_json = Column("metadata", JSON, default=dict)
    created_at = Column(DateTime(timezone=True), default=_now, index=True)


class Appointment(Base):
    """Property viewing booking."""

    __tablename__ = "appointments"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), nullable=True, index=True)
    client_name = Column(String(255), nullable=False)
    client_phone = Column(String(32), nullable=False)
    property_address = Column(String(500), nullable=False)
    property_details = Column(JSON, default=dict)
    preferred_date = Column(DateTime(timezone=True), nullable=False)
    preferred_time = Column(String(32), nullable=False)
    notes = Column(Text, default="")
    admin_notes = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="pending", index=True)
    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)


class Offer(Base):
    """Purchase offer draft / submission."""

    __tablename__ = "offers"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(64), nullable=False, index=True)
    property_address = Column(String(500), nullable=False)
    # {offerPrice, subjects[], expiryDate, possessionDate, deposit, notes}
    offer_details = Column(JSON, default=dict)
    status = Column(String(20), nullable=False, default="draft", index=True)
    admin_notes = Column(Text, nullable=True)
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)


# ---------------------------------------------------------------------------
# Chat widget
# ---------------------------------------------------------------------------


class ChatSession(Base):
    """AI chat session. Messages live in chat_messages, append-only."""

    __tablename__ = "chat_sessions"

    id = Column(String(64), primary_key=True, default=_uuid)
    user_id = Column(String(64), default="anonymous")
    user_phone = Column(String(32), nullable=True)
    client_ip = Column(String(64), nullable=True, index=True)
    is_active = Column(Boolean, default=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(String(36), primary_key=True, default=_uuid)
    session_id = Column(String(64), nullable=False, index=True)
    role = Column(String(20), nullable=False)  # user, assistant
    content = Column(Text, nullable=False)
    model = Column(String(100), nullable=True)
    tokens_used = Column(Integer, default=0)
    created_at = Column(DateTime(timezone=True), default=_now, index=True)


class ChatKnowledge(Base):
    """Admin-curated context injected into the chatbot system prompt."""

    __tablename__ = "chat_knowledge"

    id = Column(String(36), primary_key=True, default=_uuid)
    type = Column(String(20), nullable=False, default="custom")
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    category = Column(String(100), default="general")
    added_by = Column(String(64), nullable=True)
    last_updated = Column(DateTime(timezone=True), default=_now, onupdate=_now)


class ChatbotSettings(Base):
    """Admin-tunable chat widget behaviour. A single row, id ``default``."""

    __tablename__ = "chatbot_settings"

    id = Column(String(36), primary_key=True, default="default")
    welcome_message = Column(Text, nullable=False)
    response_style = Column(String(20), nullable=False, default="friendly")
    max_message_length = Column(Integer, nullable=False)
    rate_limit_per_hour = Column(Integer, nullable=False)
    enabled_features = Column(JSON, default=list)
    updated_by = Column(String(64), nullable=True)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)


# ---------------------------------------------------------------------------
# Rates
# ---------------------------------------------------------------------------


class MortgageRateCache(Base):
    """Snapshot of the lender rate table (24h TTL by default)."""

    __tablename__ = "mortgage_rate_cache"

    id = Column(String(36), primary_key=True, default=_uuid)
    province = Column(String(4), nullable=False, default="BC", index=True)
    rates = Column(JSON, nullable=False)
    cached_at = Column(DateTime(timezone=True), default=_now)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)