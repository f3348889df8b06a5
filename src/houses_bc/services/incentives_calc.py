"""BC and federal first-time buyer incentive estimates.

- PTT: BC Property Transfer Tax first-time buyer exemption
- GST: federal New Housing Rebate (new builds only)
- FHSA: tax saving on a First Home Savings Account contribution
- HBP: value of an interest-free Home Buyers' Plan RRSP withdrawal
"""

from dataclasses import dataclass
from typing import Optional

from houses_bc.services.mortgage_calc import AffordabilityBreakdown

PTT_FULL_EXEMPTION_LIMIT = 500_000
PTT_PARTIAL_EXEMPTION_LIMIT = 835_000
PTT_PHASE_OUT_RANGE = PTT_PARTIAL_EXEMPTION_LIMIT - PTT_FULL_EXEMPTION_LIMIT

GST_RATE = 0.05
GST_REBATE_SHARE = 0.36
GST_FULL_REBATE_LIMIT = 350_000
GST_REBATE_CEILING = 450_000

FHSA_ANNUAL_LIMIT = 8_000
HBP_WITHDRAWAL_LIMIT = 35_000
# Funds are used interest-free for 2 years before repayment starts
HBP_OPPORTUNITY_RATE = 0.05
HBP_GRACE_YEARS = 2
HBP_REPAYMENT_YEARS = 15

# (income ceiling, combined BC + federal marginal rate)
MARGINAL_TAX_BRACKETS: list[tuple[float, float]] = [
    (47_937, 0.2006),
    (95_875, 0.2770),
    (110_076, 0.3116),
    (148_537, 0.3287),
    (227_091, 0.3816),
]
TOP_MARGINAL_RATE = 0.4910


def calculate_ptt_savings(home_price: float) -> float:
    """PTT saved by a first-time buyer.

    Full 1% up to $500K, a linearly shrinking exemption on the excess up to
    $835K, nothing above. Continuous at both boundaries.
    """
    if home_price <= 0:
        return 0.0
    if home_price <= PTT_FULL_EXEMPTION_LIMIT:
        return home_price * 0.01
    if home_price <= PTT_PARTIAL_EXEMPTION_LIMIT:
        base = PTT_FULL_EXEMPTION_LIMIT * 0.01
        excess = home_price - PTT_FULL_EXEMPTION_LIMIT
        exemption_rate = 1 - excess / PTT_PHASE_OUT_RANGE
        return base + excess * 0.02 * exemption_rate
    return 0.0


def calculate_gst_rebate(home_price: float, is_new_build: bool) -> float:
    """36% of the 5% GST up to $350K, phased out linearly to $450K."""
    if not is_new_build or home_price <= 0:
        return 0.0
    full_rebate = home_price * GST_RATE * GST_REBATE_SHARE
    if home_price <= GST_FULL_REBATE_LIMIT:
        return full_rebate
    if home_price < GST_REBATE_CEILING:
        phase_out = (home_price - GST_FULL_REBATE_LIMIT) / (
            GST_REBATE_CEILING - GST_FULL_REBATE_LIMIT
        )
        return full_rebate * (1 - phase_out)
    return 0.0


def marginal_tax_rate(income: float) -> float:
    for ceiling, rate in MARGINAL_TAX_BRACKETS:
        if income <= ceiling:
            return rate
    return TOP_MARGINAL_RATE


def calculate_fhsa_benefit(
    income: Optional[float] = None, contribution: float = FHSA_ANNUAL_LIMIT
) -> float:
    """Tax saved on one year's FHSA contribution.

    Without an income the second bracket's rate is used.
    """
    capped = max(min(contribution, FHSA_ANNUAL_LIMIT), 0)
    rate = marginal_tax_rate(income) if income is not None else MARGINAL_TAX_BRACKETS[1][1]
    return capped * rate


def calculate_hbp_benefit(
    rrsp_balance: float = HBP_WITHDRAWAL_LIMIT,
    withdrawal: float = HBP_WITHDRAWAL_LIMIT,
) -> dict:
    available = max(min(withdrawal, HBP_WITHDRAWAL_LIMIT, rrsp_balance), 0)
    return {
        "availableWithdrawal": round(available),
        "annualRepayment": round(available / HBP_REPAYMENT_YEARS),
        "benefit": round(available * HBP_OPPORTUNITY_RATE * HBP_GRACE_YEARS, 2),
    }


@dataclass
class IncentiveBreakdown:
    ptt: float
    gst: float
    fhsa: float
    hbp: float
    total: float

    def to_dict(self) -> dict:
        return {
            "ptt": self.ptt,
            "gst": self.gst,
            "fhsa": self.fhsa,
            "hbp": self.hbp,
            "total": self.total,
        }


def calculate_incentives(
    breakdown: Optional[AffordabilityBreakdown],
    property_price: Optional[float],
    is_new_build: bool,
    has_rrsp: bool,
    income: Optional[float] = None,
    rrsp_balance: float = HBP_WITHDRAWAL_LIMIT,
) -> IncentiveBreakdown:
    """Estimate every incentive for one purchase.

    ``property_price`` falls back to ``breakdown.affordable_price``. Each
    part is rounded to cents and ``total`` is the sum of the rounded parts.
    """
    price = property_price
    if price is None:
        if breakdown is None:
            raise ValueError("property_price or breakdown is required")
        price = breakdown.affordable_price

    ptt = round(calculate_ptt_savings(price), 2)
    gst = round(calculate_gst_rebate(price, is_new_build), 2)
    fhsa = round(calculate_fhsa_benefit(income), 2)
    hbp = calculate_hbp_benefit(rrsp_balance)["benefit"] if has_rrsp else 0.0

    return IncentiveBreakdown(
        ptt=ptt,
        gst=gst,
        fhsa=fhsa,
        hbp=hbp,
        total=round(ptt + gst + fhsa + hbp, 2),
    )


def incentives_summary(incentives: IncentiveBreakdown) -> list[str]:
    """Human-readable lines for the incentives page."""
    lines = []
    if incentives.ptt > 0:
        lines.append(f"BC Property Transfer Tax Exemption: ${incentives.ptt:,.0f}")
    if incentives.gst > 0:
        lines.append(f"GST/HST New Housing Rebate: ${incentives.gst:,.0f}")
    if incentives.fhsa > 0:
        lines.append(f"FHSA Tax Deduction (first year): ${incentives.fhsa:,.0f}")
    if incentives.hbp > 0:
        lines.append(f"Home Buyers' Plan Benefit: ${incentives.hbp:,.0f}")
    lines.append(f"Total First-Year Savings: ${incentives.total:,.0f}")
    return lines
