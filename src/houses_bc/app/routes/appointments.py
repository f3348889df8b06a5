"""Viewing appointment routes."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from houses_bc.app.routes.auth import get_current_user_dep, get_optional_user_dep, require_admin
from houses_bc.domain.enums import AppointmentStatus, MilestoneId, UserRole
from houses_bc.domain.models import Appointment, User
from houses_bc.domain.schemas import (
    AppointmentCreateRequest,
    AppointmentStatusRequest,
    AppointmentUpdateRequest,
)
from houses_bc.infra.database import get_db
from houses_bc.services.auth_service import find_or_create_user
from houses_bc.services.progress_service import complete_milestone

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/appointments", tags=["appointments"])


def serialize_appointment(appt: Appointment) -> dict:
    return {
        "id": appt.id,
        "userId": appt.user_id,
        "clientName": appt.client_name,
        "clientPhone": appt.client_phone,
        "propertyAddress": appt.property_address,
        "propertyDetails": appt.property_details or {},
        "preferredDate": appt.preferred_date.isoformat() if appt.preferred_date else None,
        "preferredTime": appt.preferred_time,
        "notes": appt.notes or "",
        "adminNotes": appt.admin_notes,
        "status": appt.status,
        "createdAt": appt.created_at.isoformat() if appt.created_at else None,
        "updatedAt": appt.updated_at.isoformat() if appt.updated_at else None,
    }


def _is_admin(user: Optional[User]) -> bool:
    return user is not None and user.role == UserRole.ADMIN.value


async def _get_appointment_or_404(db: AsyncSession, appointment_id: str) -> Appointment:
    result = await db.execute(select(Appointment).where(Appointment.id == appointment_id))
    appt = result.scalar_one_or_none()
    if not appt:
        raise HTTPException(status_code=404, detail="Appointment not found")
    return appt


async def _resolve_client(
    db: AsyncSession, data: AppointmentCreateRequest, user: Optional[User]
) -> tuple[str, str, str]:
    """Return ``(user_id, name, phone)`` of the client the viewing is for."""
    if user is not None and not _is_admin(user):
        name = data.client_name or user.name or ""
        return user.id, name, user.phone_number

    if not data.client_phone or not data.client_name:
        raise HTTPException(
            status_code=400, detail="clientName and clientPhone are required"
        )
    # Admin booking on behalf of a client, or an anonymous visitor
    client, created = await find_or_create_user(
        db,
        data.client_phone,
        UserRole.CLIENT.value,
        name=data.client_name,
        verified=False,
    )
    if created:
        logger.info("Registered client %s from appointment booking", client.id)
    return client.id, data.client_name, data.client_phone


@router.post("", status_code=201)
async def create_appointment(
    data: AppointmentCreateRequest,
    db: AsyncSession = Depends(get_db),
    user: Optional[User] = Depends(get_optional_user_dep),
):
    user_id, name, phone = await _resolve_client(db, data, user)

    appt = Appointment(
        user_id=user_id,
        client_name=name,
        client_phone=phone,
        property_address=data.property_address,
        property_details=data.property_details,
        preferred_date=data.preferred_date,
        preferred_time=data.preferred_time,
        notes=data.notes or "",
        status=AppointmentStatus.PENDING.value,
    )
    db.add(appt)
    await db.commit()
    await db.refresh(appt)
    logger.info("Appointment %s booked for %s at %s", appt.id, user_id, appt.property_address)

    progress_updated = True
    try:
        await complete_milestone(
            db,
            user_id,
            MilestoneId.BOOK_VIEWING.value,
            {"appointmentId": appt.id},
            create_missing=True,
        )
    except SQLAlchemyError as exc:
        await db.rollback()
        progress_updated = False
        logger.error("Appointment %s booked but step 7 not completed: %s", appt.id, exc)

    await db.refresh(appt)
    return {
        "success": True,
        "data": {**serialize_appointment(appt), "progressUpdated": progress_updated},
    }


@router.get("")
async def list_appointments(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user_dep),
):
    query = select(Appointment).order_by(Appointment.preferred_date.asc())
    if not _is_admin(user):
        query = query.where(Appointment.user_id == user.id)
    result = await db.execute(query)
    return {"success": True, "data": [serialize_appointment(a) for a in result.scalars().all()]}


@router.get("/{appointment_id}")
async def get_appointment(
    appointment_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user_dep),
):
    appt = await _get_appointment_or_404(db, appointment_id)
    if not _is_admin(user) and appt.user_id != user.id:
        raise HTTPException(status_code=403, detail="Insufficient permissions")
    return {"success": True, "data": serialize_appointment(appt)}


@router.put("/{appointment_id}")
async def update_appointment(
    appointment_id: str,
    data: AppointmentUpdateRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user_dep),
):
    appt = await _get_appointment_or_404(db, appointment_id)
    admin = _is_admin(user)
    if not admin and appt.user_id != user.id:
        raise HTTPException(status_code=403, detail="Insufficient permissions")

    if data.preferred_date is not None:
        appt.preferred_date = data.preferred_date
    if data.preferred_time is not None:
        appt.preferred_time = data.preferred_time
    if data.notes is not None:
        appt.notes = data.notes
    # Admin notes are only writable from the admin portal
    if admin and data.admin_notes is not None:
        appt.admin_notes = data.admin_notes

    await db.commit()
    await db.refresh(appt)
    return {"success": True, "data": serialize_appointment(appt)}


@router.patch("/{appointment_id}")
async def update_appointment_status(
    appointment_id: str,
    data: AppointmentStatusRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    appt = await _get_appointment_or_404(db, appointment_id)
    appt.status = data.status.value
    if data.admin_notes is not None:
        appt.admin_notes = data.admin_notes
    await db.commit()
    await db.refresh(appt)
    logger.info("Appointment %s marked %s by %s", appt.id, appt.status, admin.id)
    return {"success": True, "data": serialize_appointment(appt)}


@router.delete("/{appointment_id}")
async def delete_appointment(
    appointment_id: str,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    appt = await _get_appointment_or_404(db, appointment_id)
    await db.delete(appt)
    await db.commit()
    return {"success": True, "message": "Appointment deleted successfully"}
