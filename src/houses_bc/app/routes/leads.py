"""Lead capture routes."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from houses_bc.app.routes.auth import require_admin
from houses_bc.domain.enums import LeadSource
from houses_bc.domain.models import Lead, User
from houses_bc.domain.schemas import LeadCreateRequest
from houses_bc.infra.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/leads", tags=["leads"])


def serialize_lead(lead: Lead) -> dict:
    return {
        "id": lead.id,
        "name": lead.name,
        "phoneNumber": lead.phone_number,
        "email": lead.email,
        "source": lead.source,
        "metadata": lead.metadata_json or {},
        "createdAt": lead.created_at.isoformat() if lead.created_at else None,
    }


async def count_by_source(db: AsyncSession) -> dict[str, int]:
    result = await db.execute(select(Lead.source, func.count(Lead.id)).group_by(Lead.source))
    return {source: count for source, count in result.all()}


@router.post("", status_code=201)
async def create_lead(data: LeadCreateRequest, db: AsyncSession = Depends(get_db)):
    lead = Lead(
        name=data.name.strip(),
        phone_number=data.phone_number.strip(),
        email=data.email,
        source=data.source.value,
        metadata_json=data.metadata,
    )
    db.add(lead)
    await db.commit()
    await db.refresh(lead)
    logger.info("Lead %s captured from %s", lead.id, lead.source)
    return {
        "success": True,
        "message": "Thank you! We'll be in touch soon.",
        "data": serialize_lead(lead),
    }


@router.get("/stats/by-source")
async def leads_by_source(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return {"success": True, "data": await count_by_source(db)}


@router.get("")
async def list_leads(
    source: Optional[LeadSource] = None,
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    query = select(Lead)
    count_query = select(func.count(Lead.id))
    if source is not None:
        query = query.where(Lead.source == source.value)
        count_query = count_query.where(Lead.source == source.value)

    total = (await db.execute(count_query)).scalar() or 0
    result = await db.execute(
        query.order_by(Lead.created_at.desc()).offset(offset).limit(limit)
    )
    return {
        "success": True,
        "data": [serialize_lead(lead) for lead in result.scalars().all()],
        "pagination": {"total": total, "limit": limit, "offset": offset},
    }


@router.get("/{lead_id}")
async def get_lead(
    lead_id: str,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    result = await db.execute(select(Lead).where(Lead.id == lead_id))
    lead = result.scalar_one_or_none()
    if not lead:
        raise HTTPException(status_code=404, detail="Lead not found")
    return {"success": True, "data": serialize_lead(lead)}


@router.delete("/{lead_id}")
async def delete_lead(
    lead_id: str,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    result = await db.execute(select(Lead).where(Lead.id == lead_id))
    lead = result.scalar_one_or_none()
    if not lead:
        raise HTTPException(status_code=404, detail="Lead not found")
    await db.delete(lead)
    await db.commit()
    logger.info("Lead %s deleted by %s", lead_id, admin.id)
    return {"success": True, "message": "Lead deleted successfully"}
