import math

import pytest

from projection import (WorkPeriod, annuity_future_value, balance_schedule, future_value,
                        monthly_rate, period_years, project_work_periods)


def test_period_years_is_clipped_to_plan():
    assert period_years(30, 50, current_age=40, retirement_age=60) == 10
    assert period_years(55, 70, current_age=40, retirement_age=60) == 5
    assert period_years(20, 35, current_age=40, retirement_age=60) == 0


def test_monthly_rate_nets_the_fee():
    assert monthly_rate(8.0, 0.5) == pytest.approx(0.075 / 12)


def test_annuity_at_zero_rate_is_linear():
    assert annuity_future_value(1_000, 0.0, 120) == 120_000


def test_annuity_matches_closed_form():
    r = 0.005
    assert annuity_future_value(100, r, 12) == pytest.approx(100 * ((1 + r) ** 12 - 1) / r)


def test_zero_return_contributions_grow_linearly():
    period = WorkPeriod("israel", 30, 40, monthly_contribution=1_500.0, pension_return=0.0)
    closing, results = project_work_periods(0.0, [period], 30, 67)
    assert closing == 1_500.0 * 120
    assert results[0].growth == closing
    assert not math.isnan(closing)


def test_deposit_fee_reduces_contribution_before_compounding():
    period = WorkPeriod("israel", 30, 40, monthly_contribution=1_000.0,
                        pension_return=0.0, pension_deposit_fee=2.0)
    closing, results = project_work_periods(0.0, [period], 30, 67)
    assert closing == pytest.approx(980.0 * 120)
    assert results[0].contributions == 120_000
    assert results[0].net_contributions == pytest.approx(117_600)


def test_periods_are_processed_in_start_age_order():
    early = WorkPeriod("israel", 30, 40, monthly_contribution=1_000, pension_return=6.0)
    late = WorkPeriod("usa", 40, 50, monthly_contribution=2_000, pension_return=4.0)

    forward, fwd_results = project_work_periods(10_000, [early, late], 30, 50)
    backward, bwd_results = project_work_periods(10_000, [late, early], 30, 50)

    assert forward == backward
    assert [r.country for r in bwd_results] == ["israel", "usa"]
    assert bwd_results[1].opening_balance == bwd_results[0].closing_balance


def test_period_carries_the_running_balance():
    opening = 50_000.0
    period = WorkPeriod("uk", 40, 45, monthly_contribution=500, pension_return=6.0,
                        pension_annual_fee=1.0)
    closing, results = project_work_periods(opening, [period], 40, 67)
    r = 5.0 / 100 / 12
    expected = opening * (1 + r) ** 60 + 500 * ((1 + r) ** 60 - 1) / r
    assert closing == pytest.approx(expected)
    assert results[0].growth == pytest.approx(expected - opening)
    assert results[0].pension_effective_return == pytest.approx(5.0)


def test_periods_outside_plan_are_skipped():
    before = WorkPeriod("israel", 20, 30, monthly_contribution=1_000, pension_return=5.0)
    closing, results = project_work_periods(1_000.0, [before], 35, 67)
    assert closing == 1_000.0
    assert results == []


def test_missing_period_return_uses_default_with_risk_adjustment():
    period = WorkPeriod("israel", 30, 31, monthly_contribution=0.0)
    closing, results = project_work_periods(1_000.0, [period], 30, 67,
                                            risk_tolerance="aggressive", default_return=10.0)
    assert results[0].pension_return == pytest.approx(11.5)
    assert closing == pytest.approx(1_000.0 * (1 + 0.115 / 12) ** 12)


def test_inputs_are_not_mutated():
    periods = [WorkPeriod("usa", 40, 50, 100, pension_return=5.0),
               WorkPeriod("israel", 30, 40, 100, pension_return=5.0)]
    snapshot = list(periods)
    project_work_periods(0.0, periods, 30, 50)
    assert periods == snapshot


def test_balance_schedule_ends_at_future_value():
    df = balance_schedule(10_000, 500, 6.0, 20, annual_fee_pct=0.5)
    assert list(df.columns) == ["year", "balance", "contributed", "growth"]
    assert len(df) == 21
    assert df["balance"].iloc[0] == pytest.approx(10_000)
    assert df["balance"].iloc[-1] == pytest.approx(future_value(10_000, 500, 6.0, 20, 0.5))


def test_balance_schedule_zero_rate():
    df = balance_schedule(0, 100, 0.0, 2)
    assert df["balance"].tolist() == [0, 1_200, 2_400]
    assert (df["growth"] == 0).all()
