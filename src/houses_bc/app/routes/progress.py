"""Journey progress routes: milestone map, updates and stats."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from houses_bc.app.routes.auth import require_admin
from houses_bc.domain.models import User, UserProgress
from houses_bc.domain.schemas import MilestoneCompleteRequest, MilestoneUpdateRequest
from houses_bc.infra.database import get_db
from houses_bc.services.journey_engine import MILESTONE_ORDER, progress_stats
from houses_bc.services.progress_service import (
    complete_milestone,
    get_or_create_progress,
    get_progress,
    serialize_progress,
    update_milestone,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/progress", tags=["progress"])


def _check_milestone_id(milestone_id: str) -> None:
    if milestone_id not in MILESTONE_ORDER:
        raise HTTPException(status_code=400, detail=f"Unknown milestone id: {milestone_id}")


@router.get("/stats/{identifier}")
async def get_stats(identifier: str, db: AsyncSession = Depends(get_db)):
    progress = await get_progress(db, identifier)
    return {"success": True, "data": progress_stats(progress)}


@router.get("/admin/all")
async def list_progress(
    limit: int = Query(default=100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    result = await db.execute(
        select(UserProgress).order_by(UserProgress.updated_at.desc()).limit(limit)
    )
    records = [serialize_progress(p) for p in result.scalars().all()]
    return {"success": True, "data": records, "count": len(records)}


@router.get("/{identifier}")
async def get_user_progress(identifier: str, db: AsyncSession = Depends(get_db)):
    progress = await get_or_create_progress(db, identifier)
    return {"success": True, "data": serialize_progress(progress)}


@router.put("/{identifier}/milestone")
async def put_milestone(
    identifier: str,
    data: MilestoneUpdateRequest,
    db: AsyncSession = Depends(get_db),
):
    _check_milestone_id(data.milestone_id)
    progress = await update_milestone(
        db, identifier, data.milestone_id, data.status.value, data.data
    )
    if progress is None:
        raise HTTPException(status_code=404, detail="Progress record not found")
    return {"success": True, "data": serialize_progress(progress)}


@router.post("/{identifier}/complete/{milestone_id}")
async def post_complete(
    identifier: str,
    milestone_id: str,
    data: MilestoneCompleteRequest | None = None,
    db: AsyncSession = Depends(get_db),
):
    _check_milestone_id(milestone_id)
    progress = await complete_milestone(
        db, identifier, milestone_id, data.data if data else None
    )
    if progress is None:
        raise HTTPException(status_code=404, detail="Progress record not found")
    return {"success": True, "data": serialize_progress(progress)}
