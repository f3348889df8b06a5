"""Mortgage rate routes: current table, personalization, refresh, comparison."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from houses_bc.app.routes.auth import require_admin
from houses_bc.domain.models import User
from houses_bc.domain.schemas import PersonalizeRatesRequest
from houses_bc.infra.database import get_db
from houses_bc.services.rates_service import (
    DEFAULT_PROVINCE,
    LOAN_TO_INCOME_ESTIMATE,
    build_fallback_rates,
    compare_scenarios,
    get_current_rates,
    personalize_rates,
    refresh_rates,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/rates", tags=["rates"])


@router.get("/current")
async def current_rates(
    province: str = DEFAULT_PROVINCE,
    term: Optional[int] = Query(default=5, ge=1, le=10),
    db: AsyncSession = Depends(get_db),
):
    rates, cached = await get_current_rates(db, province)
    if term is not None:
        rates = [r for r in rates if r["term"] == term]
    return {"success": True, "data": rates, "cached": cached}


@router.post("/personalize")
async def personalize(data: PersonalizeRatesRequest, db: AsyncSession = Depends(get_db)):
    base_rates, _ = await get_current_rates(db)
    loan_amount = data.loan_amount or data.income * LOAN_TO_INCOME_ESTIMATE
    quotes = personalize_rates(
        base_rates,
        credit_score=data.credit_score,
        down_payment_percent=data.down_payment_percent,
        income=data.income,
        loan_amount=loan_amount,
        amortization_years=data.amortization_years,
        term=data.term,
        sort_by=data.sort_by,
    )
    return {
        "success": True,
        "data": {
            "rates": [q.to_dict() for q in quotes],
            "calculatedLoanAmount": loan_amount,
        },
    }


@router.post("/refresh")
async def refresh(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    rates = await refresh_rates(db)
    logger.info("Rates refreshed by admin %s", admin.id)
    return {"success": True, "message": "Rates refreshed successfully", "data": rates}


@router.get("/compare")
async def compare():
    return {"success": True, "data": compare_scenarios(build_fallback_rates())}
