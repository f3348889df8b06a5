"""Authentication service: SMS one-time codes and JWT token management."""

import logging
import re
import secrets
import uuid
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from houses_bc.app.config import get_settings
from houses_bc.domain.enums import UserRole
from houses_bc.domain.models import OTPCode, RevokedToken, User
from houses_bc.services.sms_service import SMSService

logger = logging.getLogger(__name__)

settings = get_settings()

E164_PATTERN = re.compile(r"^\+[1-9]\d{1,14}$")


def is_valid_phone_number(phone_number: str) -> bool:
    return bool(phone_number) and E164_PATTERN.match(phone_number) is not None


def generate_otp() -> str:
    """Random 6-digit code (100000-999999)."""
    return str(100000 + secrets.randbelow(900000))


def create_access_token(user_id: str, role: str, phone_number: str | None = None) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_expiration_minutes)
    payload = {"sub": user_id, "role": role, "exp": expire, "jti": str(uuid.uuid4())}
    if phone_number:
        payload["phone"] = phone_number
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict | None:
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


async def revoke_token(db: AsyncSession, payload: dict) -> None:
    """Reject this token from now on. Expired revocations are purged."""
    now = datetime.now(timezone.utc)
    await db.execute(delete(RevokedToken).where(RevokedToken.expires_at < now))
    if payload.get("jti") and await db.get(RevokedToken, payload["jti"]) is None:
        db.add(
            RevokedToken(
                jti=payload["jti"],
                user_id=payload["sub"],
                expires_at=datetime.fromtimestamp(payload["exp"], timezone.utc),
            )
        )
    await db.commit()


async def is_token_revoked(db: AsyncSession, payload: dict) -> bool:
    jti = payload.get("jti")
    return bool(jti) and await db.get(RevokedToken, jti) is not None


async def issue_otp(
    db: AsyncSession, phone_number: str, sms: SMSService | None = None
) -> int:
    """Store a fresh code, text it to the phone and purge expired codes.

    Returns the code lifetime in seconds. SMS failures propagate as
    UpstreamServiceError; the stored code is kept so a resend is harmless.
    """
    code = generate_otp()
    now = datetime.now(timezone.utc)
    expiry = timedelta(minutes=settings.otp_expiry_minutes)

    db.add(OTPCode(phone_number=phone_number, code=code, expires_at=now + expiry))
    await db.execute(
        delete(OTPCode).where(
            OTPCode.phone_number == phone_number,
            OTPCode.expires_at < now,
        )
    )
    await db.commit()

    sms = sms or SMSService()
    result = await sms.send_sms(
        phone_number,
        f"Your verification code is: {code}. Valid for {settings.otp_expiry_minutes} minutes.",
    )
    if result.get("error") == "twilio_not_configured":
        logger.info("OTP code for %s: %s", phone_number, code)

    return int(expiry.total_seconds())


async def consume_otp(db: AsyncSession, phone_number: str, code: str) -> bool:
    """Mark a matching unused, unexpired code as used. False if none matches."""
    result = await db.execute(
        select(OTPCode).where(
            OTPCode.phone_number == phone_number,
            OTPCode.code == code,
            OTPCode.used.is_(False),
        )
    )
    now = datetime.now(timezone.utc)
    for otp in result.scalars().all():
        if _as_utc(otp.expires_at) > now:
            otp.used = True
            await db.commit()
            return True
    return False


async def get_user_by_phone(db: AsyncSession, phone_number: str, role: str) -> User | None:
    result = await db.execute(
        select(User)
        .where(User.phone_number == phone_number, User.role == role)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def find_or_create_user(
    db: AsyncSession,
    phone_number: str,
    role: str = UserRole.CLIENT.value,
    name: str | None = None,
    verified: bool = True,
) -> tuple[User, bool]:
    """Return ``(user, created)`` for the phone number and portal role.

    Admin and client logins for the same phone are separate users.
    """
    now = datetime.now(timezone.utc)
    user = await get_user_by_phone(db, phone_number, role)
    if user is not None:
        if verified:
            user.verified = True
            user.last_login_at = now
        if name and not user.name:
            user.name = name
        await db.commit()
        return user, False

    user = User(
        phone_number=phone_number,
        role=role,
        name=name,
        verified=verified,
        last_login_at=now if verified else None,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info("Registered %s user %s", role, user.id)
    return user, True
