"""Admin API routes -- journey overview across all clients."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from houses_bc.app.routes.auth import require_admin
from houses_bc.domain.models import User, UserProgress
from houses_bc.infra.database import get_db
from houses_bc.services.journey_engine import MILESTONE_ORDER, progress_stats, resolve_all

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/admin", tags=["admin"])


async def _find_user(db: AsyncSession, identifier: str) -> Optional[User]:
    """Progress is keyed by user id, but older records may be keyed by phone."""
    result = await db.execute(
        select(User)
        .where(or_(User.id == identifier, User.phone_number == identifier))
        .limit(1)
    )
    return result.scalar_one_or_none()


def _contact(user: Optional[User], identifier: str) -> dict:
    return {
        "userName": (user.name if user else None) or "Unknown",
        "userPhone": user.phone_number if user else identifier,
        "userEmail": (user.email if user else None) or "",
    }


@router.get("/journeys")
async def list_journeys(
    limit: int = Query(default=50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """One summary row per client journey, most recently active first."""
    result = await db.execute(
        select(UserProgress).order_by(UserProgress.updated_at.desc()).limit(limit)
    )
    journeys = []
    for progress in result.scalars().all():
        user = await _find_user(db, progress.user_id)
        stats = progress_stats(progress)
        journeys.append(
            {
                "userId": progress.user_id,
                **_contact(user, progress.user_id),
                "overallProgress": round(stats["overallProgress"]),
                "completedSteps": stats["completedMilestones"],
                "totalSteps": stats["totalMilestones"],
                "currentStep": stats["nextMilestone"],
                "lastActivity": progress.updated_at.isoformat() if progress.updated_at else None,
                "createdAt": progress.created_at.isoformat() if progress.created_at else None,
            }
        )
    return {"success": True, "data": journeys}


@router.get("/users/{user_id}/journey")
async def get_user_journey(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    result = await db.execute(select(UserProgress).where(UserProgress.user_id == user_id))
    progress = result.scalar_one_or_none()
    if not progress:
        raise HTTPException(status_code=404, detail="User journey not found")

    user = await _find_user(db, user_id)
    milestones = progress.milestones or {}
    resolved = resolve_all(progress)
    steps = [
        {
            "step": milestone_id,
            "status": resolved[milestone_id],
            "completedAt": (milestones.get(milestone_id) or {}).get("completedAt"),
            "data": (milestones.get(milestone_id) or {}).get("data", {}),
        }
        for milestone_id in MILESTONE_ORDER
    ]
    return {
        "success": True,
        "data": {
            "userId": user_id,
            **_contact(user, user_id),
            "overallProgress": progress.overall_progress or 0.0,
            "currentStep": progress_stats(progress)["nextMilestone"],
            "milestones": steps,
            "createdAt": progress.created_at.isoformat() if progress.created_at else None,
            "updatedAt": progress.updated_at.isoformat() if progress.updated_at else None,
        },
    }
