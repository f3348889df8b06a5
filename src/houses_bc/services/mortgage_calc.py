"""Mortgage calculation utilities.

Monthly payments, the Canadian stress test, income-based affordability,
the quiz pie-chart breakdown, CMHC premiums and credit-profile rate
personalization. All functions are pure and rates are decimals
(``0.0374`` for 3.74%).
"""

import math
from dataclasses import asdict, dataclass

from houses_bc.domain.enums import ApprovalOdds

STRESS_TEST_FLOOR = 0.0525
STRESS_TEST_BUFFER = 0.02
RATE_FLOOR = 0.025

# Quiz breakdown assumptions
QUALIFYING_RATE = 0.045
DEFAULT_AMORTIZATION_YEARS = 25
MAX_GDS = 0.32
MAX_TDS = 0.40
MORTGAGE_SHARE_OF_HOUSING = 0.80  # rest is property tax (15%) and heating (5%)
BUFFER_SHARE_OF_SAVINGS = 0.20
MIN_DOWN_PAYMENT_RATIO = 0.05
CLOSING_COST_RATIO = 0.03


def calculate_monthly_payment(
    principal: float, annual_rate: float, amortization_years: int
) -> float:
    """Standard amortizing payment ``M = P * r(1+r)^n / ((1+r)^n - 1)``.

    Raises:
        ValueError: for a non-positive principal or amortization, or a
            negative rate.
    """
    if principal <= 0 or annual_rate < 0 or amortization_years <= 0:
        raise ValueError("principal, rate and amortization must be positive")

    number_of_payments = amortization_years * 12
    if annual_rate == 0:
        return principal / number_of_payments

    monthly_rate = annual_rate / 12
    growth = (1 + monthly_rate) ** number_of_payments
    return principal * (monthly_rate * growth) / (growth - 1)


def max_principal_for_payment(
    monthly_payment: float, annual_rate: float, amortization_years: int
) -> float:
    """Inverse of :func:`calculate_monthly_payment`."""
    if monthly_payment <= 0:
        return 0.0
    number_of_payments = amortization_years * 12
    if annual_rate == 0:
        return monthly_payment * number_of_payments
    monthly_rate = annual_rate / 12
    return monthly_payment * (1 - (1 + monthly_rate) ** -number_of_payments) / monthly_rate


def get_stress_test_rate(actual_rate: float) -> float:
    """Qualifying rate: the greater of contract rate + 2% and 5.25%."""
    return max(actual_rate + STRESS_TEST_BUFFER, STRESS_TEST_FLOOR)


def calculate_total_interest(
    monthly_payment: float, principal: float, amortization_years: int
) -> float:
    return monthly_payment * amortization_years * 12 - principal


def calculate_max_affordability(
    annual_income: float,
    down_payment: float,
    monthly_debts: float = 0,
    interest_rate: float = 0.05,
    amortization_years: int = DEFAULT_AMORTIZATION_YEARS,
    max_gds: float = MAX_GDS,
    max_tds: float = MAX_TDS,
) -> dict:
    """Maximum home price from GDS/TDS debt-service limits.

    The housing payment is split 80% mortgage, 15% property tax and
    5% heating.
    """
    monthly_income = annual_income / 12
    max_housing_payment = max(
        min(monthly_income * max_gds, monthly_income * max_tds - monthly_debts), 0
    )
    max_mortgage_payment = max_housing_payment * MORTGAGE_SHARE_OF_HOUSING
    max_loan = max_principal_for_payment(max_mortgage_payment, interest_rate, amortization_years)

    return {
        "maxHomePrice": math.floor(max_loan + down_payment),
        "maxLoan": math.floor(max_loan),
        "maxMonthlyPayment": round(max_mortgage_payment),
        "estimatedPropertyTax": round(max_housing_payment * 0.15),
        "estimatedHeating": round(max_housing_payment * 0.05),
    }


@dataclass
class AffordabilityBreakdown:
    """Quiz pie chart. The four components sum exactly to ``affordable_price``."""

    affordable_price: int
    mortgage: int
    down_payment: int
    closing_costs: int
    buffer: int

    def to_dict(self) -> dict:
        return {
            "affordablePrice": self.affordable_price,
            "mortgage": self.mortgage,
            "downPayment": self.down_payment,
            "closingCosts": self.closing_costs,
            "buffer": self.buffer,
        }


def calculate_affordability(
    income: float,
    savings: float,
    has_rrsp: bool = False,
    interest_rate: float = QUALIFYING_RATE,
) -> AffordabilityBreakdown:
    """Split a client's all-in budget into mortgage, down payment, closing and buffer.

    - 20% of savings is held back as a buffer, the rest is cash to close.
    - The mortgage is capped by the GDS limit at ``interest_rate``.
    - The purchase price is capped so cash covers at least 5% down plus
      3% closing costs, and so the loan plus cash covers price plus closing.
    - ``affordable_price`` is the total budget (price + closing + buffer).

    ``has_rrsp`` does not move the breakdown; RRSP withdrawals are counted
    as the HBP incentive instead.
    """
    if income <= 0:
        raise ValueError("income must be positive")
    if savings < 0:
        raise ValueError("savings cannot be negative")

    savings_dollars = math.floor(savings)
    buffer = math.floor(savings_dollars * BUFFER_SHARE_OF_SAVINGS)
    cash = savings_dollars - buffer

    max_loan = calculate_max_affordability(
        income, 0, interest_rate=interest_rate
    )["maxLoan"]

    price_by_cash = cash / (MIN_DOWN_PAYMENT_RATIO + CLOSING_COST_RATIO)
    price_by_loan = (max_loan + cash) / (1 + CLOSING_COST_RATIO)
    purchase_price = math.floor(min(price_by_cash, price_by_loan))

    closing_costs = min(round(purchase_price * CLOSING_COST_RATIO), cash)
    down_payment = cash - closing_costs
    mortgage = max(purchase_price - down_payment, 0)

    return AffordabilityBreakdown(
        affordable_price=mortgage + down_payment + closing_costs + buffer,
        mortgage=mortgage,
        down_payment=down_payment,
        closing_costs=closing_costs,
        buffer=buffer,
    )


def calculate_cmhc_premium(loan_amount: float, home_price: float) -> float:
    """CMHC default insurance premium by loan-to-value band (0 at 20%+ down)."""
    if home_price <= 0 or loan_amount <= 0:
        return 0.0
    loan_to_value = loan_amount / home_price * 100

    if loan_to_value > 95:
        premium_rate = 0.04
    elif loan_to_value > 90:
        premium_rate = 0.031
    elif loan_to_value > 85:
        premium_rate = 0.028
    elif loan_to_value > 80:
        premium_rate = 0.024
    else:
        return 0.0
    return loan_amount * premium_rate


def calculate_closing_costs(home_price: float, down_payment_percent: float) -> dict:
    """Typical BC closing costs. PTT is reported separately as an incentive."""
    loan_amount = home_price * (1 - down_payment_percent / 100)
    legal_fees = 1500
    home_inspection = 600
    appraisal_fee = 300 if down_payment_percent < 20 else 0
    cmhc_premium = (
        calculate_cmhc_premium(loan_amount, home_price) if down_payment_percent < 20 else 0.0
    )
    return {
        "propertyTransferTax": 0,
        "legalFees": legal_fees,
        "homeInspection": home_inspection,
        "appraisalFee": appraisal_fee,
        "cmhcPremium": round(cmhc_premium, 2),
        "totalClosingCosts": round(legal_fees + home_inspection + appraisal_fee + cmhc_premium),
    }


# ---------------------------------------------------------------------------
# Rate personalization
# ---------------------------------------------------------------------------


def personalize_rate(
    base_rate: float,
    credit_score: int,
    down_payment_percent: float,
    is_first_time_buyer: bool = True,
) -> float:
    """Adjust an advertised rate for the client's credit profile.

    Higher credit score or larger down payment never raises the rate.
    """
    adjusted = base_rate

    if credit_score >= 740:
        adjusted -= 0.0025
    elif credit_score >= 680:
        adjusted -= 0.0010
    elif credit_score >= 620:
        adjusted += 0.0010
    elif credit_score >= 600:
        adjusted += 0.0025
    else:
        adjusted += 0.0050

    # Under 20% down is an insured mortgage
    if down_payment_percent < 20:
        adjusted += 0.0010
    elif down_payment_percent >= 35:
        adjusted -= 0.0005

    if is_first_time_buyer:
        adjusted -= 0.0005

    return round(max(adjusted, RATE_FLOOR), 6)


def determine_approval_odds(
    credit_score: int,
    annual_income: float,
    loan_amount: float,
    monthly_payment: float | None = None,
    monthly_debts: float = 0,
) -> ApprovalOdds:
    """Band credit score and payment-to-income ratio into approval odds.

    When ``monthly_payment`` is omitted the loan is priced at 5% over 25 years.
    """
    if annual_income <= 0:
        return ApprovalOdds.LOW
    if monthly_payment is None:
        monthly_payment = (
            calculate_monthly_payment(loan_amount, 0.05, DEFAULT_AMORTIZATION_YEARS)
            if loan_amount > 0
            else 0.0
        )
    dti = (monthly_payment + monthly_debts) * 12 / annual_income

    if credit_score >= 680 and dti < 0.36 and loan_amount <= annual_income * 5:
        return ApprovalOdds.HIGH
    if credit_score < 620 or dti > 0.43 or loan_amount > annual_income * 6:
        return ApprovalOdds.LOW
    return ApprovalOdds.MEDIUM


@dataclass
class MortgageSummary:
    monthly_payment: float
    stress_test_rate: float
    stress_test_payment: float
    total_interest: float
    cmhc_premium: float

    def to_dict(self) -> dict:
        data = asdict(self)
        return {
            "monthlyPayment": data["monthly_payment"],
            "stressTestRate": data["stress_test_rate"],
            "stressTestPayment": data["stress_test_payment"],
            "totalInterest": data["total_interest"],
            "cmhcPremium": data["cmhc_premium"],
        }


def summarize_mortgage(
    principal: float,
    annual_rate: float,
    amortization_years: int = DEFAULT_AMORTIZATION_YEARS,
    down_payment_percent: float | None = None,
) -> MortgageSummary:
    """Payment, stress test, lifetime interest and CMHC premium for one loan."""
    monthly = calculate_monthly_payment(principal, annual_rate, amortization_years)
    stress_rate = get_stress_test_rate(annual_rate)
    stress_payment = calculate_monthly_payment(principal, stress_rate, amortization_years)

    cmhc = 0.0
    if down_payment_percent is not None and 0 <= down_payment_percent < 100:
        home_price = principal / (1 - down_payment_percent / 100)
        cmhc = calculate_cmhc_premium(principal, home_price)

    return MortgageSummary(
        monthly_payment=round(monthly, 2),
        stress_test_rate=round(stress_rate, 6),
        stress_test_payment=round(stress_payment, 2),
        total_interest=round(calculate_total_interest(monthly, principal, amortization_years), 2),
        cmhc_premium=round(cmhc, 2),
    )
