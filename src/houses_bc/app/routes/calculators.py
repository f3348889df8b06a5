"""Public calculator routes used by the marketing pages."""

from fastapi import APIRouter

from houses_bc.domain.schemas import AffordabilityRequest, IncentivesRequest, MortgageRequest
from houses_bc.services.incentives_calc import (
    calculate_incentives,
    incentives_summary,
    marginal_tax_rate,
)
from houses_bc.services.mortgage_calc import (
    calculate_closing_costs,
    calculate_affordability,
    summarize_mortgage,
)

router = APIRouter(prefix="/api/calculators", tags=["calculators"])


@router.post("/affordability")
async def affordability(data: AffordabilityRequest):
    breakdown = calculate_affordability(data.income, data.savings, data.has_rrsp)
    return {"success": True, "data": breakdown.to_dict()}


@router.post("/incentives")
async def incentives(data: IncentivesRequest):
    result = calculate_incentives(
        None,
        property_price=data.property_price,
        is_new_build=data.is_new_build,
        has_rrsp=data.has_rrsp,
        income=data.income,
    )
    payload = result.to_dict()
    payload["summary"] = incentives_summary(result)
    if data.income is not None:
        payload["marginalTaxRate"] = marginal_tax_rate(data.income)
    return {"success": True, "data": payload}


@router.post("/mortgage")
async def mortgage(data: MortgageRequest):
    summary = summarize_mortgage(
        data.principal,
        data.annual_rate,
        data.amortization_years,
        data.down_payment_percent,
    )
    payload = summary.to_dict()
    if data.down_payment_percent is not None:
        home_price = data.principal / (1 - data.down_payment_percent / 100)
        payload["closingCosts"] = calculate_closing_costs(home_price, data.down_payment_percent)
    return {"success": True, "data": payload}
