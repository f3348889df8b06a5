"""Affordability quiz: compute the breakdown and incentives, store the answers."""

import logging
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from houses_bc.domain.models import QuizResponse
from houses_bc.domain.schemas import QuizData
from houses_bc.services.incentives_calc import IncentiveBreakdown, calculate_incentives
from houses_bc.services.mortgage_calc import AffordabilityBreakdown, calculate_affordability

logger = logging.getLogger(__name__)

# The quiz does not ask whether the home is a new build
QUIZ_ASSUMES_NEW_BUILD = False


def evaluate_quiz(quiz: QuizData) -> tuple[AffordabilityBreakdown, IncentiveBreakdown]:
    breakdown = calculate_affordability(quiz.income, quiz.savings, quiz.has_rrsp)
    incentives = calculate_incentives(
        breakdown,
        property_price=None,
        is_new_build=QUIZ_ASSUMES_NEW_BUILD,
        has_rrsp=quiz.has_rrsp,
        income=quiz.income,
    )
    return breakdown, incentives


async def find_quiz_response(db: AsyncSession, identifier: str) -> Optional[QuizResponse]:
    """Latest response by user id, falling back to session id."""
    for column in (QuizResponse.user_id, QuizResponse.session_id):
        result = await db.execute(
            select(QuizResponse)
            .where(column == identifier)
            .order_by(QuizResponse.updated_at.desc())
            .limit(1)
        )
        found = result.scalars().first()
        if found is not None:
            return found
    return None


def _apply(record: QuizResponse, quiz: QuizData, breakdown, incentives) -> None:
    record.income = quiz.income
    record.savings = quiz.savings
    record.has_rrsp = quiz.has_rrsp
    record.property_type = quiz.property_type.value
    record.timeline = quiz.timeline.value
    record.calculated_breakdown = breakdown.to_dict()
    record.calculated_incentives = incentives.to_dict()


async def submit_quiz(
    db: AsyncSession,
    quiz: QuizData,
    user_id: Optional[str] = None,
    session_id: Optional[str] = None,
) -> tuple[QuizResponse, AffordabilityBreakdown, IncentiveBreakdown]:
    """Upsert the quiz response for the client. Re-submission overwrites."""
    breakdown, incentives = evaluate_quiz(quiz)

    record = await find_quiz_response(db, user_id) if user_id else None
    if record is None and session_id:
        # An anonymous answer from this browser is claimed on sign-in
        record = await find_quiz_response(db, session_id)
        if record is not None and user_id and record.user_id not in (None, user_id):
            record = None

    if record is None:
        record = QuizResponse(user_id=user_id, session_id=session_id or str(uuid.uuid4()))
        db.add(record)
    elif user_id and not record.user_id:
        record.user_id = user_id
        logger.info("Quiz response %s claimed by user %s", record.id, user_id)

    _apply(record, quiz, breakdown, incentives)
    await db.commit()
    await db.refresh(record)

    logger.info(
        "Quiz stored %s: affordable=%d incentives=%.2f",
        record.id,
        breakdown.affordable_price,
        incentives.total,
    )
    return record, breakdown, incentives


async def update_quiz(db: AsyncSession, record: QuizResponse, quiz: QuizData) -> QuizResponse:
    breakdown, incentives = evaluate_quiz(quiz)
    _apply(record, quiz, breakdown, incentives)
    await db.commit()
    await db.refresh(record)
    return record


def serialize_quiz_response(record: QuizResponse) -> dict:
    return {
        "id": record.id,
        "userId": record.user_id,
        "sessionId": record.session_id,
        "income": record.income,
        "savings": record.savings,
        "hasRRSP": record.has_rrsp,
        "propertyType": record.property_type,
        "timeline": record.timeline,
        "calculatedBreakdown": record.calculated_breakdown or {},
        "calculatedIncentives": record.calculated_incentives or {},
        "createdAt": record.created_at.isoformat() if record.created_at else None,
        "updatedAt": record.updated_at.isoformat() if record.updated_at else None,
    }
