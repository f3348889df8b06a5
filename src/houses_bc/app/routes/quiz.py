"""Quiz routes: submit the affordability quiz and read stored answers."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from houses_bc.app.routes.auth import require_admin
from houses_bc.domain.enums import MilestoneId
from houses_bc.domain.models import QuizResponse, User
from houses_bc.domain.schemas import QuizSubmitRequest, QuizUpdateRequest
from houses_bc.infra.database import get_db
from houses_bc.services.progress_service import complete_milestone, get_or_create_progress
from houses_bc.services.quiz_service import (
    find_quiz_response,
    serialize_quiz_response,
    submit_quiz,
    update_quiz,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/quiz", tags=["quiz"])


@router.post("/submit")
async def submit(data: QuizSubmitRequest, db: AsyncSession = Depends(get_db)):
    record, breakdown, incentives = await submit_quiz(
        db, data.quiz_data, user_id=data.user_id, session_id=data.session_id
    )

    # Independent second write: the incentives step is done once figures exist
    identifier = record.user_id or record.session_id
    progress_updated = True
    try:
        await get_or_create_progress(db, identifier, quiz_response_id=record.id)
        await complete_milestone(
            db,
            identifier,
            MilestoneId.INCENTIVES.value,
            {"incentives": incentives.to_dict()},
        )
    except SQLAlchemyError as exc:
        await db.rollback()
        progress_updated = False
        logger.error("Quiz %s stored but progress update failed: %s", record.id, exc)

    return {
        "success": True,
        "data": {
            "quizResponseId": record.id,
            "sessionId": record.session_id,
            "breakdown": breakdown.to_dict(),
            "incentives": incentives.to_dict(),
            "progressUpdated": progress_updated,
        },
    }


@router.get("/response/{identifier}")
async def get_response(identifier: str, db: AsyncSession = Depends(get_db)):
    record = await find_quiz_response(db, identifier)
    if record is None:
        return JSONResponse(
            status_code=404,
            content={"success": False, "error": "Quiz response not found"},
        )
    return {"success": True, "data": serialize_quiz_response(record)}


@router.put("/response/{identifier}")
async def put_response(
    identifier: str, data: QuizUpdateRequest, db: AsyncSession = Depends(get_db)
):
    record = await find_quiz_response(db, identifier)
    if record is None:
        raise HTTPException(status_code=404, detail="Quiz response not found")
    record = await update_quiz(db, record, data.quiz_data)
    return {"success": True, "data": serialize_quiz_response(record)}


@router.get("/admin/all")
async def list_responses(
    limit: int = Query(default=100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    result = await db.execute(
        select(QuizResponse).order_by(QuizResponse.created_at.desc()).limit(limit)
    )
    responses = [serialize_quiz_response(r) for r in result.scalars().all()]
    return {"success": True, "data": responses, "count": len(responses)}
