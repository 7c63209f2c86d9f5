import logging
from dataclasses import asdict, dataclass, replace
from typing import Optional

from allocation import weighted_return
from errors import ValidationError
from returns_presets import HISTORICAL_RETURNS, RISK_SCENARIOS
from simulation import RetirementInputs, RetirementResult, calculate_retirement

logger = logging.getLogger(__name__)


def clone_inputs(inputs: RetirementInputs, **overrides) -> RetirementInputs:
    base = asdict(inputs)
    base.update(overrides)
    return RetirementInputs(**base)


def compare(inputs: RetirementInputs, variants: list[tuple[str, dict]], work_periods,
            pension_allocation, training_fund_allocation, **kwargs):
    """
    variants: list of (name, overrides-dict)
    returns: dict name -> RetirementResult (or None when the variant has no horizon)
    """
    res = {}
    for name, edits in variants:
        res[name] = calculate_retirement(clone_inputs(inputs, **edits), work_periods,
                                         pension_allocation, training_fund_allocation, **kwargs)
    return res


def compare_risk_tiers(inputs: RetirementInputs, work_periods, pension_allocation,
                       training_fund_allocation, **kwargs):
    variants = [(tier, {"risk_tolerance": tier}) for tier in RISK_SCENARIOS]
    return compare(inputs, variants, work_periods, pension_allocation,
                   training_fund_allocation, **kwargs)


# Historical shocks applied on top of the user's own assumptions.
# Declines and increases are percentage points off the annual return or rate.
STRESS_SCENARIOS = {
    "financial_crisis_2008": {
        "name": "2008 Financial Crisis",
        "description": "40% stock decline, 30% real estate decline, lower income for 3 years",
        "income_reduction": 15,
        "portfolio_decline": 40,
        "real_estate_decline": 30,
        "inflation_increase": 1,
        "duration": 3,
        "recovery_years": 5,
    },
    "covid_pandemic": {
        "name": "COVID-19 Pandemic 2020",
        "description": "25% income reduction, high volatility, recovery over two years",
        "income_reduction": 25,
        "portfolio_decline": 25,
        "real_estate_decline": 10,
        "inflation_increase": 3,
        "duration": 2,
        "recovery_years": 3,
    },
    "high_inflation": {
        "name": "High Inflation",
        "description": "15% annual inflation and falling purchasing power for 5 years",
        "income_reduction": 5,
        "portfolio_decline": 15,
        "real_estate_decline": 5,
        "inflation_increase": 12,
        "duration": 5,
        "recovery_years": 7,
    },
}


@dataclass
class StressTestResult:
    scenario_id: str
    name: str
    description: str
    result: Optional[RetirementResult]


def stress_inputs(inputs: RetirementInputs, work_periods, scenario: dict,
                  pension_return: float = 0.0):
    """
    Apply a stress scenario to a copy of the inputs and work periods.

    Periods without their own pension return are stressed from
    `pension_return`, the allocation-weighted return they would otherwise use.
    Returns never drop below zero.
    """
    decline = scenario["portfolio_decline"]
    stressed = clone_inputs(
        inputs,
        inflation_rate=inputs.inflation_rate + scenario["inflation_increase"],
        personal_portfolio_return=max(0.0, inputs.personal_portfolio_return - decline),
        real_estate_return=max(0.0, inputs.real_estate_return - scenario["real_estate_decline"]),
        crypto_return=max(0.0, inputs.crypto_return - decline * 1.5),
    )
    keep = 1 - scenario["income_reduction"] / 100
    periods = []
    for p in work_periods:
        base = pension_return if p.pension_return is None else p.pension_return
        periods.append(replace(
            p,
            salary=p.salary * keep,
            monthly_contribution=p.monthly_contribution * keep,
            pension_return=max(0.0, base - decline / 2),
        ))
    return stressed, periods


def run_stress_test(scenario_id: str, inputs: RetirementInputs, work_periods,
                    pension_allocation, training_fund_allocation,
                    historical_returns=None, **kwargs) -> StressTestResult:
    scenario = STRESS_SCENARIOS.get(scenario_id)
    if scenario is None:
        raise ValidationError(f"Unknown stress scenario: {scenario_id!r}")

    years = inputs.retirement_age - inputs.current_age
    table = HISTORICAL_RETURNS if historical_returns is None else historical_returns
    pension_base = weighted_return(pension_allocation, years, table) if years > 0 else 0.0
    stressed, periods = stress_inputs(inputs, work_periods, scenario, pension_base)

    logger.info("Running stress test %s", scenario_id)
    result = calculate_retirement(stressed, periods, pension_allocation, training_fund_allocation,
                                  historical_returns=historical_returns, **kwargs)
    return StressTestResult(scenario_id, scenario["name"], scenario["description"], result)


def compare_stress_tests(inputs: RetirementInputs, work_periods, pension_allocation,
                         training_fund_allocation, **kwargs):
    """Baseline plus every stress scenario, keyed by scenario id."""
    res = {"baseline": calculate_retirement(inputs, work_periods, pension_allocation,
                                            training_fund_allocation, **kwargs)}
    for scenario_id in STRESS_SCENARIOS:
        res[scenario_id] = run_stress_test(scenario_id, inputs, work_periods, pension_allocation,
                                           training_fund_allocation, **kwargs).result
    return res
