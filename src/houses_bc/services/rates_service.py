"""Mortgage rate table, cache and personalization.

The lender table is a static fallback (no live rate feed). It is cached in
``mortgage_rate_cache`` for ``rate_cache_hours`` so every reader within a
window sees the same snapshot.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from houses_bc.app.config import get_settings
from houses_bc.domain.enums import ApprovalOdds, RateSortKey, RateType
from houses_bc.domain.models import MortgageRateCache
from houses_bc.services.mortgage_calc import (
    calculate_monthly_payment,
    determine_approval_odds,
    get_stress_test_rate,
    personalize_rate,
)

logger = logging.getLogger(__name__)

DEFAULT_PROVINCE = "BC"
DEFAULT_TERM = 5
LOAN_TO_INCOME_ESTIMATE = 4.5

# (lender, product type, 5-year base rate)
LENDERS: list[tuple[str, RateType, float]] = [
    ("TD Bank", RateType.FIXED, 0.0374),
    ("RBC", RateType.FIXED, 0.0379),
    ("Scotiabank", RateType.FIXED, 0.0384),
    ("BMO", RateType.FIXED, 0.0369),
    ("CIBC", RateType.FIXED, 0.0389),
    ("MCAP", RateType.VARIABLE, 0.0345),
    ("Vancity", RateType.FIXED, 0.0369),
    ("Coast Capital", RateType.FIXED, 0.0379),
    ("Tangerine", RateType.FIXED, 0.0399),
    ("First National", RateType.VARIABLE, 0.0350),
]

# Shorter terms price lower than the 5-year benchmark
TERM_ADJUSTMENTS: dict[int, float] = {
    1: -0.0020,
    2: -0.0015,
    3: -0.0010,
    4: -0.0005,
    5: 0.0,
    6: 0.0003,
    7: 0.0005,
    8: 0.0008,
    9: 0.0010,
    10: 0.0012,
}

APPROVAL_ODDS_RANK = {
    ApprovalOdds.HIGH.value: 0,
    ApprovalOdds.MEDIUM.value: 1,
    ApprovalOdds.LOW.value: 2,
}

COMPARE_SCENARIOS = [
    {"name": "Excellent Credit (740+)", "creditScore": 750, "downPayment": 20},
    {"name": "Good Credit (680-739)", "creditScore": 700, "downPayment": 15},
    {"name": "Fair Credit (620-679)", "creditScore": 650, "downPayment": 10},
]


def build_fallback_rates(province: str = DEFAULT_PROVINCE) -> list[dict]:
    """Every lender at every term from 1 to 10 years."""
    rates = []
    for term, adjustment in TERM_ADJUSTMENTS.items():
        for lender, rate_type, base_rate in LENDERS:
            rates.append(
                {
                    "lender": lender,
                    "type": rate_type.value,
                    "term": term,
                    "rate": round(base_rate + adjustment, 6),
                    "province": province,
                }
            )
    return rates


@dataclass
class RateQuote:
    lender: str
    type: str
    term: int
    advertised_rate: float
    personalized_rate: float
    monthly_payment: float
    stress_test_payment: float
    approval_odds: ApprovalOdds

    def to_dict(self) -> dict:
        return {
            "lender": self.lender,
            "type": self.type,
            "term": self.term,
            "advertisedRate": self.advertised_rate,
            "personalizedRate": self.personalized_rate,
            "monthlyPayment": self.monthly_payment,
            "stressTestPayment": self.stress_test_payment,
            "approvalOdds": self.approval_odds.value,
        }


def _sort_key(sort_by: RateSortKey):
    if sort_by == RateSortKey.PAYMENT:
        return lambda q: (q.monthly_payment, q.lender)
    if sort_by == RateSortKey.APPROVAL_ODDS:
        return lambda q: (APPROVAL_ODDS_RANK[q.approval_odds.value], q.lender)
    return lambda q: (q.personalized_rate, q.lender)


def personalize_rates(
    base_rates: list[dict],
    credit_score: int,
    down_payment_percent: float,
    income: float,
    loan_amount: float,
    amortization_years: int = 25,
    term: int = DEFAULT_TERM,
    sort_by: RateSortKey = RateSortKey.RATE,
    is_first_time_buyer: bool = True,
) -> list[RateQuote]:
    """Price every lender product for ``term`` against the client's profile.

    Ordering: ``rate`` and ``payment`` ascending, ``approvalOdds`` high first.
    Ties are broken by lender name.
    """
    quotes = []
    for base in base_rates:
        if base["term"] != term:
            continue
        rate = personalize_rate(
            base["rate"], credit_score, down_payment_percent, is_first_time_buyer
        )
        monthly = calculate_monthly_payment(loan_amount, rate, amortization_years)
        stress = calculate_monthly_payment(
            loan_amount, get_stress_test_rate(rate), amortization_years
        )
        odds = determine_approval_odds(
            credit_score, income, loan_amount, monthly_payment=monthly
        )
        quotes.append(
            RateQuote(
                lender=base["lender"],
                type=base["type"],
                term=base["term"],
                advertised_rate=base["rate"],
                personalized_rate=rate,
                monthly_payment=round(monthly, 2),
                stress_test_payment=round(stress, 2),
                approval_odds=odds,
            )
        )

    quotes.sort(key=_sort_key(RateSortKey(sort_by)))
    return quotes


def compare_scenarios(base_rates: list[dict], lenders_per_scenario: int = 3) -> list[dict]:
    """Estimated 5-year rates for three typical credit profiles."""
    five_year = [r for r in base_rates if r["term"] == DEFAULT_TERM][:lenders_per_scenario]
    comparisons = []
    for scenario in COMPARE_SCENARIOS:
        estimates = []
        for base in five_year:
            estimated = personalize_rate(
                base["rate"], scenario["creditScore"], scenario["downPayment"]
            )
            estimates.append(
                {
                    "lender": base["lender"],
                    "advertisedRate": base["rate"],
                    "estimatedRate": estimated,
                    "savings": f"{(base['rate'] - estimated) * 100:.2f}%",
                }
            )
        comparisons.append(
            {
                "scenario": scenario["name"],
                "creditScore": scenario["creditScore"],
                "downPayment": f"{scenario['downPayment']}%",
                "rates": estimates,
            }
        )
    return comparisons


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------


async def _latest_cache(db: AsyncSession, province: str) -> Optional[MortgageRateCache]:
    now = datetime.now(timezone.utc)
    result = await db.execute(
        select(MortgageRateCache)
        .where(
            MortgageRateCache.province == province,
            MortgageRateCache.expires_at > now,
        )
        .order_by(MortgageRateCache.expires_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def refresh_rates(db: AsyncSession, province: str = DEFAULT_PROVINCE) -> list[dict]:
    """Write a fresh snapshot of the rate table to the cache."""
    settings = get_settings()
    rates = build_fallback_rates(province)
    now = datetime.now(timezone.utc)
    db.add(
        MortgageRateCache(
            province=province,
            rates=rates,
            cached_at=now,
            expires_at=now + timedelta(hours=settings.rate_cache_hours),
        )
    )
    await db.commit()
    logger.info("Rate cache refreshed for %s (%d products)", province, len(rates))
    return rates


async def get_current_rates(
    db: AsyncSession, province: str = DEFAULT_PROVINCE
) -> tuple[list[dict], bool]:
    """Return ``(rates, from_cache)``, caching the fallback table on a miss."""
    cached = await _latest_cache(db, province)
    if cached is not None:
        return cached.rates, True
    return await refresh_rates(db, province), False
