import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from allocation import AllocationEntry, get_adjusted_return, risk_multiplier, weighted_return
from costs import future_monthly_expenses, inflation_adjusted
from drawdown import after_flat_tax, monthly_withdrawal, rental_income
from errors import ValidationError
from projection import PeriodResult, WorkPeriod, future_value, project_work_periods
from returns_presets import HISTORICAL_RETURNS
from taxes import COUNTRIES, blended_pension_tax_rate

logger = logging.getLogger(__name__)


@dataclass
class PartnerInputs:
    current_age: float
    retirement_age: float
    work_periods: List[WorkPeriod] = field(default_factory=list)
    current_savings: float = 0.0
    current_training_fund: float = 0.0
    current_personal_portfolio: float = 0.0
    personal_portfolio_monthly: float = 0.0
    personal_portfolio_return: float = 0.0
    personal_portfolio_tax_rate: float = 25.0


@dataclass
class RetirementInputs:
    current_age: float
    retirement_age: float
    risk_tolerance: str = "moderate"

    current_savings: float = 0.0              # pension balance
    current_training_fund: float = 0.0
    current_personal_portfolio: float = 0.0
    current_crypto: float = 0.0
    current_real_estate: float = 0.0

    training_fund_monthly: float = 0.0
    personal_portfolio_monthly: float = 0.0
    crypto_monthly: float = 0.0
    real_estate_monthly: float = 0.0

    training_fund_return: Optional[float] = None  # None = allocation weighted
    personal_portfolio_return: float = 0.0
    crypto_return: float = 0.0
    real_estate_return: float = 0.0
    training_fund_management_fee: float = 0.0

    personal_portfolio_tax_rate: float = 25.0
    crypto_tax_rate: float = 25.0
    real_estate_tax_rate: float = 25.0
    real_estate_rental_yield: float = 0.0

    inflation_rate: float = 3.0
    current_monthly_expenses: float = 0.0
    joint_monthly_expenses: float = 0.0
    target_replacement: float = 70.0

    # Other monthly income kept through retirement
    annual_bonus: float = 0.0
    quarterly_rsu: float = 0.0
    freelance_income: float = 0.0
    rental_income: float = 0.0
    dividend_income: float = 0.0


@dataclass
class PartnerResult:
    years_to_retirement: float
    total_pension_savings: int
    total_training_fund: int
    total_personal_portfolio: int
    pension_tax_rate: float
    net_pension: int
    net_training_fund_income: int
    net_personal_portfolio_income: int
    social_security: int
    net_income: int
    period_results: List[PeriodResult] = field(default_factory=list)


@dataclass
class RetirementResult:
    years_to_retirement: float

    total_savings: int
    training_fund_value: int
    personal_portfolio_value: int
    crypto_value: int
    real_estate_value: int

    monthly_pension: int
    monthly_training_fund_income: int
    monthly_personal_portfolio_income: int
    monthly_crypto_income: int
    monthly_real_estate_income: int
    real_estate_rental_income: int

    pension_tax: int
    training_fund_tax: int
    personal_portfolio_tax: int
    crypto_tax: int
    real_estate_tax: int

    net_pension: int
    net_training_fund_income: int
    net_personal_portfolio_income: int
    net_crypto_income: int
    net_real_estate_income: int

    social_security: int
    additional_income_total: int
    individual_net_income: int
    partner_net_income: int
    total_net_income: int

    future_monthly_expenses: int
    remaining_after_expenses: int
    remaining_after_expenses_real: int
    inflation_adjusted_income: int
    target_monthly_income: int
    achieves_target: bool
    target_gap: int

    weighted_tax_rate: float          # %
    pension_weighted_return: float    # %, risk adjusted
    training_fund_weighted_return: float
    training_fund_net_return: float
    risk_level: str
    risk_multiplier: float

    period_results: List[PeriodResult] = field(default_factory=list)
    partner: Optional[PartnerResult] = None


def safe_money(value: float) -> int:
    """Round half-up to a whole currency unit; NaN and infinities become 0."""
    if value is None or not math.isfinite(value):
        return 0
    return int(math.floor(value + 0.5))


def safe_rate(value: float, decimals: int = 2) -> float:
    if value is None or not math.isfinite(value):
        return 0.0
    factor = 10 ** decimals
    return math.floor(value * factor + 0.5) / factor


def validate_work_periods(work_periods: Sequence[WorkPeriod]):
    for period in work_periods:
        if not period.country or period.country.lower() not in COUNTRIES:
            raise ValidationError(f"Unsupported country in work period: {period.country!r}")
        if period.end_age < period.start_age:
            raise ValidationError(
                f"Work period ends before it starts ({period.start_age}-{period.end_age})")


def _last_country(work_periods: Sequence[WorkPeriod]):
    if not work_periods:
        return None
    last = max(work_periods, key=lambda p: p.start_age)
    return COUNTRIES.get(last.country.lower())


def _project_partner(partner: PartnerInputs, risk_tolerance: str,
                     pension_allocation, training_fund_allocation,
                     historical_returns) -> Tuple[Optional[PartnerResult], float]:
    years = partner.retirement_age - partner.current_age
    if years <= 0 or not partner.work_periods:
        logger.info("Partner projection skipped (years=%s, periods=%d)", years, len(partner.work_periods))
        return None, 0.0
    validate_work_periods(partner.work_periods)

    pension_base = weighted_return(pension_allocation, years, historical_returns)
    pension, periods = project_work_periods(
        partner.current_savings, partner.work_periods,
        partner.current_age, partner.retirement_age,
        risk_tolerance, default_return=pension_base,
    )

    tf_return = get_adjusted_return(
        weighted_return(training_fund_allocation, years, historical_returns), risk_tolerance)
    tf_monthly = sum(p.monthly_training_fund for p in partner.work_periods)
    training_fund = future_value(partner.current_training_fund, tf_monthly, tf_return, years)

    portfolio = future_value(
        partner.current_personal_portfolio, partner.personal_portfolio_monthly,
        get_adjusted_return(partner.personal_portfolio_return, risk_tolerance), years)

    tax_rate = blended_pension_tax_rate(periods, partner.work_periods)
    gross_pension = monthly_withdrawal(pension, "pension")
    net_pension = gross_pension * (1 - tax_rate)

    last = _last_country(partner.work_periods)
    _, net_tf = after_flat_tax(monthly_withdrawal(training_fund, "training_fund"),
                               last.training_fund_tax * 100 if last else 0.0)
    _, net_portfolio = after_flat_tax(monthly_withdrawal(portfolio, "personal_portfolio"),
                                      partner.personal_portfolio_tax_rate)
    social_security = last.social_security if last else 0.0
    net_income = net_pension + net_tf + net_portfolio + social_security

    result = PartnerResult(
        years_to_retirement=years,
        total_pension_savings=safe_money(pension),
        total_training_fund=safe_money(training_fund),
        total_personal_portfolio=safe_money(portfolio),
        pension_tax_rate=safe_rate(tax_rate * 100),
        net_pension=safe_money(net_pension),
        net_training_fund_income=safe_money(net_tf),
        net_personal_portfolio_income=safe_money(net_portfolio),
        social_security=safe_money(social_security),
        net_income=safe_money(net_income),
        period_results=periods,
    )
    return result, net_income


def calculate_retirement(inputs: RetirementInputs,
                         work_periods: Sequence[WorkPeriod],
                         pension_allocation: Optional[Sequence[AllocationEntry]],
                         training_fund_allocation: Optional[Sequence[AllocationEntry]],
                         historical_returns: Optional[Dict[int, List[float]]] = None,
                         monthly_training_fund_contribution: Optional[float] = None,
                         partner: Optional[PartnerInputs] = None) -> Optional[RetirementResult]:
    """
    Project every asset class to the retirement age and derive the monthly
    retirement income, taxes and target comparison.

    Returns None when the retirement age is not after the current age. All
    monetary fields are rounded only after the full projection is done.
    """
    years = inputs.retirement_age - inputs.current_age
    if years <= 0:
        logger.info("No projection: retirement age %s is not after current age %s",
                    inputs.retirement_age, inputs.current_age)
        return None
    validate_work_periods(work_periods)

    table = HISTORICAL_RETURNS if historical_returns is None else historical_returns
    risk = inputs.risk_tolerance

    pension_base = weighted_return(pension_allocation, years, table)
    tf_base = weighted_return(training_fund_allocation, years, table)
    if inputs.training_fund_return is not None:
        tf_base = inputs.training_fund_return

    pension_weighted = get_adjusted_return(pension_base, risk)
    tf_weighted = get_adjusted_return(tf_base, risk)
    tf_net_return = tf_weighted - inputs.training_fund_management_fee

    total_pension, period_results = project_work_periods(
        inputs.current_savings, work_periods,
        inputs.current_age, inputs.retirement_age,
        risk, default_return=pension_base,
    )

    tf_monthly = (inputs.training_fund_monthly if monthly_training_fund_contribution is None
                  else monthly_training_fund_contribution)
    total_tf = future_value(inputs.current_training_fund, tf_monthly, tf_weighted, years,
                            annual_fee_pct=inputs.training_fund_management_fee)
    total_portfolio = future_value(inputs.current_personal_portfolio, inputs.personal_portfolio_monthly,
                                   get_adjusted_return(inputs.personal_portfolio_return, risk), years)
    total_crypto = future_value(inputs.current_crypto, inputs.crypto_monthly,
                                get_adjusted_return(inputs.crypto_return, risk), years)
    total_real_estate = future_value(inputs.current_real_estate, inputs.real_estate_monthly,
                                     get_adjusted_return(inputs.real_estate_return, risk), years)

    # Monthly income from fixed withdrawal rates
    monthly_pension = monthly_withdrawal(total_pension, "pension")
    monthly_tf = monthly_withdrawal(total_tf, "training_fund")
    monthly_portfolio = monthly_withdrawal(total_portfolio, "personal_portfolio")
    monthly_crypto = monthly_withdrawal(total_crypto, "crypto")
    monthly_real_estate = monthly_withdrawal(total_real_estate, "real_estate")
    rent = rental_income(total_real_estate, inputs.real_estate_rental_yield)

    portfolio_tax, net_portfolio = after_flat_tax(monthly_portfolio, inputs.personal_portfolio_tax_rate)
    crypto_tax, net_crypto = after_flat_tax(monthly_crypto, inputs.crypto_tax_rate)
    real_estate_tax, net_real_estate = after_flat_tax(monthly_real_estate, inputs.real_estate_tax_rate)
    net_real_estate += rent

    pension_tax_rate = blended_pension_tax_rate(period_results, work_periods)
    pension_tax = monthly_pension * pension_tax_rate
    net_pension = monthly_pension - pension_tax

    last = _last_country(work_periods)
    tf_tax = monthly_tf * (last.training_fund_tax if last else 0.0)
    net_tf = monthly_tf - tf_tax
    social_security = last.social_security if last else 0.0

    additional = (inputs.annual_bonus / 12 + inputs.quarterly_rsu / 3 + inputs.freelance_income
                  + inputs.rental_income + inputs.dividend_income)
    individual_net = (net_pension + net_tf + social_security + net_portfolio
                      + net_crypto + net_real_estate + additional)

    partner_result, partner_net = None, 0.0
    if partner is not None:
        partner_result, partner_net = _project_partner(partner, risk, pension_allocation,
                                                       training_fund_allocation, table)
    total_net = individual_net + partner_net

    base_expenses = inputs.current_monthly_expenses
    if partner is not None and inputs.joint_monthly_expenses > 0:
        base_expenses = inputs.joint_monthly_expenses
    future_expenses = future_monthly_expenses(base_expenses, inputs.inflation_rate, years)
    remaining = total_net - future_expenses

    final_salary = max(work_periods, key=lambda p: p.start_age).salary if work_periods else 0.0
    target_income = final_salary * inputs.target_replacement / 100

    logger.debug("Projection done: pension=%.2f tf=%.2f net_income=%.2f",
                 total_pension, total_tf, total_net)

    return RetirementResult(
        years_to_retirement=years,
        total_savings=safe_money(total_pension),
        training_fund_value=safe_money(total_tf),
        personal_portfolio_value=safe_money(total_portfolio),
        crypto_value=safe_money(total_crypto),
        real_estate_value=safe_money(total_real_estate),
        monthly_pension=safe_money(monthly_pension),
        monthly_training_fund_income=safe_money(monthly_tf),
        monthly_personal_portfolio_income=safe_money(monthly_portfolio),
        monthly_crypto_income=safe_money(monthly_crypto),
        monthly_real_estate_income=safe_money(monthly_real_estate),
        real_estate_rental_income=safe_money(rent),
        pension_tax=safe_money(pension_tax),
        training_fund_tax=safe_money(tf_tax),
        personal_portfolio_tax=safe_money(portfolio_tax),
        crypto_tax=safe_money(crypto_tax),
        real_estate_tax=safe_money(real_estate_tax),
        net_pension=safe_money(net_pension),
        net_training_fund_income=safe_money(net_tf),
        net_personal_portfolio_income=safe_money(net_portfolio),
        net_crypto_income=safe_money(net_crypto),
        net_real_estate_income=safe_money(net_real_estate),
        social_security=safe_money(social_security),
        additional_income_total=safe_money(additional),
        individual_net_income=safe_money(individual_net),
        partner_net_income=safe_money(partner_net),
        total_net_income=safe_money(total_net),
        future_monthly_expenses=safe_money(future_expenses),
        remaining_after_expenses=safe_money(remaining),
        remaining_after_expenses_real=safe_money(inflation_adjusted(remaining, inputs.inflation_rate, years)),
        inflation_adjusted_income=safe_money(inflation_adjusted(total_net, inputs.inflation_rate, years)),
        target_monthly_income=safe_money(target_income),
        achieves_target=total_net >= target_income,
        target_gap=safe_money(target_income - total_net),
        weighted_tax_rate=safe_rate(pension_tax_rate * 100),
        pension_weighted_return=pension_weighted,
        training_fund_weighted_return=tf_weighted,
        training_fund_net_return=tf_net_return,
        risk_level=risk or "moderate",
        risk_multiplier=risk_multiplier(risk),
        period_results=period_results,
        partner=partner_result,
    )
