"""Personal data deletion requests (PIPEDA / PIPA)."""

import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from houses_bc.domain.models import DeletionRequest
from houses_bc.domain.schemas import DeletionRequestCreate
from houses_bc.infra.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/data-deletion-request", tags=["privacy"])

# A repeat request inside this window is acknowledged, not stored again
DUPLICATE_WINDOW = timedelta(hours=24)


@router.post("")
async def request_data_deletion(
    data: DeletionRequestCreate, db: AsyncSession = Depends(get_db)
):
    email = data.email
    since = datetime.now(timezone.utc) - DUPLICATE_WINDOW
    result = await db.execute(
        select(DeletionRequest)
        .where(
            DeletionRequest.email == email,
            DeletionRequest.status == "pending",
            DeletionRequest.created_at >= since,
        )
        .limit(1)
    )
    if result.scalar_one_or_none() is not None:
        return {
            "success": True,
            "message": (
                "A deletion request for this email was already submitted. "
                "We will process it within 30 days."
            ),
            "alreadyExists": True,
        }

    reason = (data.reason or "").strip() or None
    db.add(DeletionRequest(email=email, reason=reason, status="pending"))
    await db.commit()
    logger.info("Data deletion request received for %s", email)
    return {
        "success": True,
        "message": (
            "Your deletion request has been received. We will delete your data "
            "within 30 days and send a confirmation to your email."
        ),
    }
