"""Offer routes: drafts, submission and admin review."""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from houses_bc.app.routes.auth import require_admin
from houses_bc.domain.enums import MilestoneId, MilestoneStatus, OfferActor, OfferStatus
from houses_bc.domain.models import Offer, User
from houses_bc.domain.schemas import (
    OfferCreateRequest,
    OfferReviewRequest,
    OfferUpdateRequest,
)
from houses_bc.infra.database import get_db
from houses_bc.services.journey_engine import stored_status
from houses_bc.services.offer_state_machine import (
    InvalidOfferTransitionError,
    OfferStateMachine,
)
from houses_bc.services.progress_service import (
    complete_milestone,
    get_or_create_progress,
    update_milestone,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/offers", tags=["offers"])

state_machine = OfferStateMachine()


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_offer(offer: Offer) -> dict:
    return {
        "id": offer.id,
        "userId": offer.user_id,
        "propertyAddress": offer.property_address,
        "offerDetails": offer.offer_details or {},
        "status": offer.status,
        "adminNotes": offer.admin_notes,
        "submittedAt": _iso(offer.submitted_at),
        "reviewedAt": _iso(offer.reviewed_at),
        "createdAt": _iso(offer.created_at),
        "updatedAt": _iso(offer.updated_at),
    }


async def _get_offer_or_404(db: AsyncSession, offer_id: str) -> Offer:
    result = await db.execute(select(Offer).where(Offer.id == offer_id))
    offer = result.scalar_one_or_none()
    if not offer:
        raise HTTPException(status_code=404, detail="Offer not found")
    return offer


async def _record_draft_on_progress(db: AsyncSession, user_id: str, offer_id: str) -> bool:
    """Append the offer id to step 8 and mark it in progress (never downgrades)."""
    try:
        progress = await get_or_create_progress(db, user_id)
        milestones = progress.milestones or {}
        entry = milestones.get(MilestoneId.MAKE_OFFER.value) or {}
        offer_ids = list((entry.get("data") or {}).get("offerIds", []))
        offer_ids.append(offer_id)

        status = stored_status(milestones, MilestoneId.MAKE_OFFER.value)
        if status != MilestoneStatus.COMPLETED.value:
            status = MilestoneStatus.IN_PROGRESS.value
        await update_milestone(
            db, user_id, MilestoneId.MAKE_OFFER.value, status, {"offerIds": offer_ids}
        )
        return True
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Offer %s created but progress update failed: %s", offer_id, exc)
        return False


@router.post("")
async def create_offer(data: OfferCreateRequest, db: AsyncSession = Depends(get_db)):
    owner = data.user_id or data.session_id
    if not owner:
        raise HTTPException(status_code=400, detail="userId or sessionId is required")

    offer = Offer(
        user_id=owner,
        property_address=data.offer_data.property_address,
        offer_details=data.offer_data.offer_details.model_dump(by_alias=True),
        status=OfferStatus.DRAFT.value,
    )
    db.add(offer)
    await db.commit()
    await db.refresh(offer)
    logger.info("Offer %s drafted for %s", offer.id, owner)

    progress_updated = await _record_draft_on_progress(db, owner, offer.id)
    return {
        "success": True,
        "data": {
            "offerId": offer.id,
            "status": offer.status,
            "progressUpdated": progress_updated,
        },
    }


@router.get("/user/{identifier}")
async def list_user_offers(identifier: str, db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(Offer).where(Offer.user_id == identifier).order_by(Offer.created_at.desc())
    )
    return {"success": True, "data": [serialize_offer(o) for o in result.scalars().all()]}


@router.get("/admin/all")
async def list_all_offers(
    status: Optional[OfferStatus] = Query(default=None),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    query = select(Offer).order_by(Offer.created_at.desc())
    if status is not None:
        query = query.where(Offer.status == status.value)
    result = await db.execute(query)
    return {"success": True, "data": [serialize_offer(o) for o in result.scalars().all()]}


@router.put("/admin/{offer_id}/review")
async def review_offer(
    offer_id: str,
    data: OfferReviewRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    offer = await _get_offer_or_404(db, offer_id)
    try:
        state_machine.validate_transition(
            OfferStatus(offer.status), data.status, OfferActor.ADMIN
        )
    except InvalidOfferTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))

    offer.status = data.status.value
    offer.admin_notes = data.admin_notes
    offer.reviewed_at = datetime.now(timezone.utc)
    await db.commit()
    await db.refresh(offer)
    logger.info("Offer %s reviewed by %s: %s", offer.id, admin.id, offer.status)
    return {"success": True, "data": serialize_offer(offer)}


@router.put("/{offer_id}")
async def update_offer(
    offer_id: str, data: OfferUpdateRequest, db: AsyncSession = Depends(get_db)
):
    offer = await _get_offer_or_404(db, offer_id)
    if not state_machine.is_editable(offer.status):
        raise HTTPException(status_code=409, detail="Only draft offers can be edited")

    offer.property_address = data.offer_data.property_address
    offer.offer_details = data.offer_data.offer_details.model_dump(by_alias=True)
    await db.commit()
    await db.refresh(offer)
    return {"success": True, "data": serialize_offer(offer)}


@router.post("/{offer_id}/submit")
async def submit_offer(offer_id: str, db: AsyncSession = Depends(get_db)):
    offer = await _get_offer_or_404(db, offer_id)
    try:
        state_machine.validate_transition(
            OfferStatus(offer.status), OfferStatus.SUBMITTED, OfferActor.CLIENT
        )
    except InvalidOfferTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))

    offer.status = OfferStatus.SUBMITTED.value
    offer.submitted_at = datetime.now(timezone.utc)
    await db.commit()
    logger.info("Offer %s submitted by %s", offer.id, offer.user_id)

    # Second, independent write: the offer stays submitted if this fails
    progress_updated = True
    try:
        await complete_milestone(
            db,
            offer.user_id,
            MilestoneId.MAKE_OFFER.value,
            {"submittedOfferId": offer.id},
            create_missing=True,
        )
    except SQLAlchemyError as exc:
        await db.rollback()
        progress_updated = False
        logger.error("Offer %s submitted but step 8 not completed: %s", offer.id, exc)

    await db.refresh(offer)
    return {
        "success": True,
        "message": "Offer submitted successfully",
        "data": {**serialize_offer(offer), "progressUpdated": progress_updated},
    }


@router.delete("/{offer_id}")
async def delete_offer(offer_id: str, db: AsyncSession = Depends(get_db)):
    offer = await _get_offer_or_404(db, offer_id)
    if not state_machine.is_editable(offer.status):
        raise HTTPException(status_code=400, detail="Only draft offers can be deleted")
    await db.delete(offer)
    await db.commit()
    return {"success": True, "message": "Offer deleted successfully"}
