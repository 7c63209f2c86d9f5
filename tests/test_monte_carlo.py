import numpy as np
import pytest

from errors import ValidationError
from monte_carlo import MonteCarloConfig, run_monte_carlo
from projection import WorkPeriod
from returns_presets import ECONOMIC_REGIMES
from simulation import RetirementInputs


def _steady(**kwargs):
    """No volatility and a single normal-growth regime: every path is identical."""
    vol = {k: 0.0 for k in ("pension", "training_fund", "personal_portfolio",
                            "real_estate", "crypto", "inflation")}
    return MonteCarloConfig(num_paths=20, seed=1, volatility=vol,
                            regimes={"expansion": ECONOMIC_REGIMES["expansion"]}, **kwargs)


def test_steady_zero_return_paths(zero_return_inputs, zero_return_period):
    res = run_monte_carlo(zero_return_inputs, [zero_return_period], None, None, config=_steady())

    assert res.years == 10
    assert res.portfolio_percentiles["p10"] == res.portfolio_percentiles["p90"] == 480_000
    # 4% of pension, portfolio and real estate plus 5% of the training fund
    assert res.mean_income == 1_700
    assert res.target_monthly_income == 10_000
    assert res.success_probability == 0
    assert res.shortfall_probability == 1
    assert res.average_shortfall == pytest.approx(0.83)
    assert res.median_max_drawdown == 0
    assert res.regime_frequency == {"expansion": 1.0}


def test_steady_growth_compounds_yearly(zero_return_inputs):
    period = WorkPeriod("israel", 40, 50, monthly_contribution=1_000.0, pension_return=5.0, salary=20_000)
    res = run_monte_carlo(zero_return_inputs, [period], None, None, config=_steady())

    annuity = 12_000 * (1.05 ** 10 - 1) / 0.05
    expected = 120_000 * 1.05 ** 10 + annuity + 3 * 120_000
    assert res.mean_portfolio == pytest.approx(expected, abs=1)
    assert res.yearly["p50"].iloc[0] == pytest.approx(480_000)
    assert len(res.yearly) == 11


def test_same_seed_same_outcome(golden_inputs, golden_period):
    config = MonteCarloConfig(num_paths=200, seed=7)
    first = run_monte_carlo(golden_inputs, [golden_period], None, None, config=config)
    second = run_monte_carlo(golden_inputs, [golden_period], None, None, config=config)
    assert first.portfolio_percentiles == second.portfolio_percentiles
    assert first.success_probability == second.success_probability


def test_volatility_spreads_outcomes(golden_inputs, golden_period):
    res = run_monte_carlo(golden_inputs, [golden_period], None, None,
                          config=MonteCarloConfig(num_paths=500, seed=42))
    pct = res.portfolio_percentiles
    assert pct["p10"] < pct["p50"] < pct["p90"]
    assert res.value_at_risk_99 <= res.value_at_risk_95 <= pct["p10"]
    assert 0 <= res.success_probability <= 1
    assert res.success_probability + res.shortfall_probability == pytest.approx(1)
    assert sum(res.regime_frequency.values()) == pytest.approx(1)
    assert np.all(res.yearly["p10"] <= res.yearly["p90"])


def test_explicit_target(zero_return_inputs, zero_return_period):
    res = run_monte_carlo(zero_return_inputs, [zero_return_period], None, None,
                          config=_steady(), target_monthly_income=1_500)
    assert res.success_probability == 1
    assert res.average_shortfall == 0


def test_no_horizon_returns_none(golden_period):
    inputs = RetirementInputs(current_age=67, retirement_age=67)
    assert run_monte_carlo(inputs, [golden_period], None, None) is None


def test_path_count_must_be_positive(golden_inputs, golden_period):
    with pytest.raises(ValidationError):
        run_monte_carlo(golden_inputs, [golden_period], None, None,
                        config=MonteCarloConfig(num_paths=0))
