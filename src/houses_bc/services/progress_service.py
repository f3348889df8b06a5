"""Persistence for the per-client milestone map.

Updates are read-modify-write on a single ``user_progress`` row with no
concurrency token; concurrent writers for the same client race and the
last one wins.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from houses_bc.domain.enums import MilestoneStatus
from houses_bc.domain.models import UserProgress
from houses_bc.services.journey_engine import (
    apply_milestone_update,
    calculate_overall_progress,
    initial_milestones,
    resolve_all,
)

logger = logging.getLogger(__name__)


async def get_progress(db: AsyncSession, user_id: str) -> Optional[UserProgress]:
    result = await db.execute(select(UserProgress).where(UserProgress.user_id == user_id))
    return result.scalar_one_or_none()


async def get_or_create_progress(
    db: AsyncSession, user_id: str, quiz_response_id: Optional[str] = None
) -> UserProgress:
    """Fetch the record, creating it (first milestone available) if absent."""
    progress = await get_progress(db, user_id)
    if progress is not None:
        if quiz_response_id and progress.quiz_response_id != quiz_response_id:
            progress.quiz_response_id = quiz_response_id
            await db.commit()
        return progress

    progress = UserProgress(
        user_id=user_id,
        quiz_response_id=quiz_response_id,
        milestones=initial_milestones(),
        overall_progress=0.0,
    )
    db.add(progress)
    await db.commit()
    await db.refresh(progress)
    logger.info("Created progress record for %s", user_id)
    return progress


async def update_milestone(
    db: AsyncSession,
    user_id: str,
    milestone_id: str,
    status: str,
    data: Optional[dict] = None,
    create_missing: bool = False,
) -> Optional[UserProgress]:
    """Upsert one milestone entry and recompute overall progress.

    Returns None when there is no record and ``create_missing`` is False.

    Raises:
        ValueError: unknown milestone id or status.
    """
    if create_missing:
        progress = await get_or_create_progress(db, user_id)
    else:
        progress = await get_progress(db, user_id)
        if progress is None:
            return None

    # Assign a new dict so the JSON column is marked dirty
    milestones = apply_milestone_update(progress.milestones or {}, milestone_id, status, data)
    progress.milestones = milestones
    progress.overall_progress = calculate_overall_progress(milestones)
    await db.commit()
    await db.refresh(progress)

    if status == MilestoneStatus.COMPLETED.value:
        logger.info("Milestone %s completed for %s", milestone_id, user_id)
    return progress


async def complete_milestone(
    db: AsyncSession,
    user_id: str,
    milestone_id: str,
    data: Optional[dict] = None,
    create_missing: bool = False,
) -> Optional[UserProgress]:
    return await update_milestone(
        db,
        user_id,
        milestone_id,
        MilestoneStatus.COMPLETED.value,
        data,
        create_missing=create_missing,
    )


def serialize_progress(progress: UserProgress) -> dict:
    """API shape of a progress record, including resolved statuses."""
    return {
        "id": progress.id,
        "userId": progress.user_id,
        "quizResponseId": progress.quiz_response_id,
        "milestones": progress.milestones or {},
        "overallProgress": progress.overall_progress or 0.0,
        "resolvedStatuses": resolve_all(progress),
        "createdAt": progress.created_at.isoformat() if progress.created_at else None,
        "updatedAt": progress.updated_at.isoformat() if progress.updated_at else None,
    }
