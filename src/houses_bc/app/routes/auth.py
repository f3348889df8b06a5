"""Authentication routes: SMS one-time code login and session status."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from houses_bc.app.config import get_settings
from houses_bc.domain.enums import UserRole
from houses_bc.domain.models import User
from houses_bc.domain.schemas import (
    SendOTPRequest,
    TokenResponse,
    UserResponse,
    VerifyOTPRequest,
)
from houses_bc.infra.database import get_db
from houses_bc.services.auth_service import (
    consume_otp,
    create_access_token,
    decode_token,
    find_or_create_user,
    is_token_revoked,
    is_valid_phone_number,
    issue_otp,
    revoke_token,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _token_payload(request: Request) -> dict | None:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    payload = decode_token(auth_header.removeprefix("Bearer "))
    if not payload or "sub" not in payload:
        return None
    return payload


async def _user_from_request(request: Request, db: AsyncSession) -> User | None:
    payload = _token_payload(request)
    if payload is None or await is_token_revoked(db, payload):
        return None
    result = await db.execute(select(User).where(User.id == payload["sub"]))
    return result.scalar_one_or_none()


async def get_current_user_dep(
    request: Request, db: AsyncSession = Depends(get_db)
) -> User:
    """Dependency: extract current user from Bearer token."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid token",
        )
    user = await _user_from_request(request, db)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
    return user


async def get_optional_user_dep(
    request: Request, db: AsyncSession = Depends(get_db)
) -> User | None:
    """Dependency: current user if a valid Bearer token is present, else None."""
    return await _user_from_request(request, db)


def require_role(*roles: str):
    """Factory: dependency that checks user has one of the required roles."""

    async def checker(user: User = Depends(get_current_user_dep)):
        if user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return user

    return checker


require_admin = require_role(UserRole.ADMIN.value)


@router.post("/send-otp")
async def send_otp(data: SendOTPRequest, db: AsyncSession = Depends(get_db)):
    if not is_valid_phone_number(data.phone_number):
        raise HTTPException(
            status_code=400,
            detail="Invalid phone number format. Please use E.164 format (e.g., +1234567890)",
        )
    expires_in = await issue_otp(db, data.phone_number)
    return {"success": True, "message": "OTP sent successfully", "expiresIn": expires_in}


@router.post("/verify-otp", response_model=TokenResponse)
async def verify_otp(data: VerifyOTPRequest, db: AsyncSession = Depends(get_db)):
    if not await consume_otp(db, data.phone_number, data.code):
        raise HTTPException(status_code=401, detail="Invalid or expired OTP code")

    settings = get_settings()
    role = data.login_type.value
    # Admin and client portals get separate users even for the admin's phone
    if role == UserRole.ADMIN.value and data.phone_number != settings.admin_phone_number:
        logger.warning("Admin login refused for %s", data.phone_number)
        raise HTTPException(
            status_code=403,
            detail="This phone number is not authorized for admin access",
        )

    user, created = await find_or_create_user(db, data.phone_number, role)
    logger.info("OTP login %s user=%s created=%s", role, user.id, created)
    token = create_access_token(user.id, user.role, user.phone_number)
    return TokenResponse(access_token=token, user=UserResponse.model_validate(user))


@router.post("/logout")
async def logout(request: Request, db: AsyncSession = Depends(get_db)):
    payload = _token_payload(request)
    if payload is not None:
        await revoke_token(db, payload)
        logger.info("User %s logged out", payload["sub"])
    return {"success": True, "message": "Logged out successfully"}


@router.get("/status")
async def auth_status(user: User | None = Depends(get_optional_user_dep)):
    if user is None:
        return {"isAuthenticated": False}
    return {"isAuthenticated": True, "user": UserResponse.model_validate(user).model_dump()}


@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(get_current_user_dep)):
    return UserResponse.model_validate(user)
