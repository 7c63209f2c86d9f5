import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence

import numpy as np
import pandas as pd

from allocation import AllocationEntry, get_adjusted_return, weighted_return
from drawdown import WITHDRAWAL_RATES
from errors import ValidationError
from projection import WorkPeriod, period_years
from returns_presets import ASSET_VOLATILITY, ECONOMIC_REGIMES, HISTORICAL_RETURNS, REGIME_EXPOSURE
from simulation import RetirementInputs, safe_money, validate_work_periods

logger = logging.getLogger(__name__)

ASSETS = ("pension", "training_fund", "personal_portfolio", "real_estate", "crypto")
PERCENTILES = (10, 25, 50, 75, 90)


@dataclass
class MonteCarloConfig:
    num_paths: int = 1000
    seed: Optional[int] = None
    volatility: Dict[str, float] = field(default_factory=lambda: dict(ASSET_VOLATILITY))
    regimes: Dict[str, dict] = field(default_factory=lambda: dict(ECONOMIC_REGIMES))


@dataclass
class MonteCarloResult:
    num_paths: int
    years: int
    target_monthly_income: int
    success_probability: float        # share of paths meeting the target in today's money
    shortfall_probability: float
    average_shortfall: float          # mean shortfall / target over failing paths
    worst_case_shortfall: float
    mean_portfolio: int
    mean_income: int
    portfolio_percentiles: Dict[str, int]
    income_percentiles: Dict[str, int]  # monthly, today's money
    value_at_risk_95: int
    value_at_risk_99: int
    expected_shortfall: int           # mean real income of the worst 5% of paths
    median_max_drawdown: float
    regime_frequency: Dict[str, float]
    yearly: pd.DataFrame = field(repr=False)


def _expected_returns(inputs: RetirementInputs, work_periods: Sequence[WorkPeriod],
                      pension_allocation, training_fund_allocation, years, table) -> Dict[str, float]:
    """Mean annual return (%) per asset, risk adjusted and net of fees."""
    risk = inputs.risk_tolerance
    pension_base = weighted_return(pension_allocation, years, table)

    weights, rates = [], []
    for p in work_periods:
        w = period_years(p.start_age, p.end_age, inputs.current_age, inputs.retirement_age)
        if w > 0:
            base = pension_base if p.pension_return is None else p.pension_return
            weights.append(w)
            rates.append(get_adjusted_return(base, risk) - p.pension_annual_fee)
    pension = float(np.average(rates, weights=weights)) if weights else get_adjusted_return(pension_base, risk)

    tf_base = inputs.training_fund_return
    if tf_base is None:
        tf_base = weighted_return(training_fund_allocation, years, table)

    return {
        "pension": pension,
        "training_fund": get_adjusted_return(tf_base, risk) - inputs.training_fund_management_fee,
        "personal_portfolio": get_adjusted_return(inputs.personal_portfolio_return, risk),
        "real_estate": get_adjusted_return(inputs.real_estate_return, risk),
        "crypto": get_adjusted_return(inputs.crypto_return, risk),
    }


def _yearly_contributions(inputs: RetirementInputs, work_periods: Sequence[WorkPeriod],
                          years: int) -> Dict[str, np.ndarray]:
    ages = inputs.current_age + np.arange(years)
    pension = np.zeros(years)
    for p in work_periods:
        active = (ages >= p.start_age) & (ages < p.end_age)
        pension[active] += 12 * p.monthly_contribution * (1 - p.pension_deposit_fee / 100)
    return {
        "pension": pension,
        "training_fund": np.full(years, 12 * inputs.training_fund_monthly),
        "personal_portfolio": np.full(years, 12 * inputs.personal_portfolio_monthly),
        "real_estate": np.full(years, 12 * inputs.real_estate_monthly),
        "crypto": np.full(years, 12 * inputs.crypto_monthly),
    }


def _draw_returns(rng, mean_pct, vol_pct, shape, lognormal=False) -> np.ndarray:
    # annual returns as fractions
    if lognormal:
        sigma = vol_pct / 100
        mu = np.log1p(max(mean_pct, -99.0) / 100) - sigma ** 2 / 2
        return np.expm1(rng.normal(mu, sigma, shape))
    return rng.normal(mean_pct, vol_pct, shape) / 100


def run_monte_carlo(inputs: RetirementInputs,
                    work_periods: Sequence[WorkPeriod],
                    pension_allocation: Optional[Sequence[AllocationEntry]],
                    training_fund_allocation: Optional[Sequence[AllocationEntry]],
                    config: Optional[MonteCarloConfig] = None,
                    historical_returns=None,
                    target_monthly_income: Optional[float] = None) -> Optional[MonteCarloResult]:
    """
    Simulate yearly returns, inflation and economic regimes for every asset
    over `config.num_paths` paths, vectorised across paths.

    Each year an asset grows by its drawn return times the multiplier of that
    year's regime, then receives the year's contributions. Retirement income
    applies the fixed withdrawal rates to the final balances and is deflated
    by the path's cumulative inflation before it is compared with the target.
    The target defaults to the final salary times the replacement ratio.
    Returns None when there is no horizon.
    """
    config = config or MonteCarloConfig()
    if config.num_paths <= 0:
        raise ValidationError(f"num_paths must be positive, got {config.num_paths}")
    years = int(round(inputs.retirement_age - inputs.current_age))
    if years <= 0:
        logger.info("No Monte Carlo run: retirement age %s is not after current age %s",
                    inputs.retirement_age, inputs.current_age)
        return None
    validate_work_periods(work_periods)

    table = HISTORICAL_RETURNS if historical_returns is None else historical_returns
    n = config.num_paths
    shape = (n, years)
    rng = np.random.default_rng(config.seed)

    names = list(config.regimes)
    probs = np.array([config.regimes[r]["probability"] for r in names], dtype=float)
    regime_idx = rng.choice(len(names), size=shape, p=probs / probs.sum())

    def regime_multiplier(key):
        return np.array([config.regimes[r][key] for r in names])[regime_idx]

    means = _expected_returns(inputs, work_periods, pension_allocation, training_fund_allocation,
                              years, table)
    contributions = _yearly_contributions(inputs, work_periods, years)
    opening = {
        "pension": inputs.current_savings,
        "training_fund": inputs.current_training_fund,
        "personal_portfolio": inputs.current_personal_portfolio,
        "real_estate": inputs.current_real_estate,
        "crypto": inputs.current_crypto,
    }

    total = np.zeros((n, years + 1))
    final = {}
    for asset in ASSETS:
        returns = _draw_returns(rng, means[asset], config.volatility.get(asset, 0.0), shape,
                                lognormal=(asset == "crypto"))
        returns = returns * regime_multiplier(REGIME_EXPOSURE[asset])
        balance = np.full(n, float(opening[asset]))
        total[:, 0] += balance
        for y in range(years):
            balance = balance * (1 + returns[:, y]) + contributions[asset][y]
            total[:, y + 1] += balance
        final[asset] = balance

    inflation = rng.normal(inputs.inflation_rate, config.volatility.get("inflation", 0.0), shape)
    inflation = np.maximum(0.0, inflation * regime_multiplier("inflation")) / 100
    cumulative_inflation = np.prod(1 + inflation, axis=1)

    monthly_income = sum(final[a] * WITHDRAWAL_RATES[a] / 12 for a in ASSETS)
    real_income = monthly_income / cumulative_inflation
    final_total = total[:, -1]

    peak = np.maximum.accumulate(total, axis=1)
    safe_peak = np.where(peak > 0, peak, 1.0)
    max_drawdown = np.where(peak > 0, (peak - total) / safe_peak, 0.0).max(axis=1)

    if target_monthly_income is None:
        final_salary = max(work_periods, key=lambda p: p.start_age).salary if work_periods else 0.0
        target_monthly_income = final_salary * inputs.target_replacement / 100
    target = float(target_monthly_income)

    success = real_income >= target
    shortfall = np.maximum(0.0, target - real_income) / target if target > 0 else np.zeros(n)
    failing = shortfall[shortfall > 0]
    worst = np.sort(real_income)[: int(n * 0.05)]

    def percentiles(arr):
        return {f"p{q}": safe_money(np.percentile(arr, q)) for q in PERCENTILES}

    yearly = pd.DataFrame({
        "year": np.arange(years + 1),
        "age": inputs.current_age + np.arange(years + 1),
        "p10": np.percentile(total, 10, axis=0),
        "p50": np.percentile(total, 50, axis=0),
        "p90": np.percentile(total, 90, axis=0),
    })

    logger.debug("Monte Carlo done: paths=%d years=%d success=%.3f", n, years, success.mean())

    return MonteCarloResult(
        num_paths=n,
        years=years,
        target_monthly_income=safe_money(target),
        success_probability=float(success.mean()),
        shortfall_probability=float(1 - success.mean()),
        average_shortfall=float(failing.mean()) if failing.size else 0.0,
        worst_case_shortfall=float(failing.max()) if failing.size else 0.0,
        mean_portfolio=safe_money(final_total.mean()),
        mean_income=safe_money(real_income.mean()),
        portfolio_percentiles=percentiles(final_total),
        income_percentiles=percentiles(real_income),
        value_at_risk_95=safe_money(np.percentile(final_total, 5)),
        value_at_risk_99=safe_money(np.percentile(final_total, 1)),
        expected_shortfall=safe_money(worst.mean()) if worst.size else 0,
        median_max_drawdown=float(np.median(max_drawdown)),
        regime_frequency={r: float(np.mean(regime_idx == i)) for i, r in enumerate(names)},
        yearly=yearly,
    )
