import math

import pytest

from errors import CalculationError, ValidationError
from projection import PeriodResult, WorkPeriod
from taxes import (COUNTRIES, Bracket, blended_pension_tax_rate, calculate_net_salary,
                   get_country, income_tax)

ISRAEL = COUNTRIES["israel"].brackets


def _result(country, growth):
    return PeriodResult(country=country, years=10, contributions=0, net_contributions=0,
                        opening_balance=0, closing_balance=growth, growth=growth,
                        pension_return=5, pension_effective_return=5, pension_deposit_fee=0,
                        pension_annual_fee=0, monthly_training_fund=0)


def test_income_exactly_on_boundary_stays_in_lower_bracket():
    walk = income_tax(81_480, ISRAEL)
    assert walk.total_tax == pytest.approx(8_148)
    assert walk.marginal_rate == 0.10
    assert len(walk.details) == 1


def test_income_just_above_boundary_enters_next_bracket():
    walk = income_tax(81_481, ISRAEL)
    assert walk.total_tax == pytest.approx(8_148 + 0.14)
    assert walk.marginal_rate == 0.14


def test_bracket_walk_sums_slices():
    walk = income_tax(100_000, ISRAEL)
    assert walk.total_tax == pytest.approx(8_148 + 18_520 * 0.14)
    assert [d.taxable_amount for d in walk.details] == pytest.approx([81_480, 18_520])


def test_no_income_no_tax():
    walk = income_tax(0, ISRAEL)
    assert walk.total_tax == 0
    assert walk.marginal_rate == 0
    assert walk.details == []


def test_top_bracket_is_open_ended():
    brackets = [Bracket(0, 10, 0.1), Bracket(10, math.inf, 0.5)]
    assert income_tax(1_010, brackets).total_tax == pytest.approx(1 + 500)


def test_israeli_monthly_net_salary():
    res = calculate_net_salary(10_000, "israel")
    # annual: 120k income; tax 13,735.2 less 6,534 credits; NI 14,400; health 3,720
    assert res.income_tax == pytest.approx((13_735.2 - 6_534) / 12)
    assert res.social_insurance == pytest.approx((14_400 + 3_720) / 12)
    assert res.total_tax == pytest.approx(25_321.2 / 12)
    assert res.net_salary == pytest.approx(10_000 - 25_321.2 / 12)
    assert res.marginal_tax_rate == 20.0
    assert res.effective_tax_rate == pytest.approx(21.10, abs=0.01)
    assert res.currency == "ILS"
    assert [item.name for item in res.breakdown.social_insurance_details] == [
        "National Insurance", "Health Insurance"]


def test_annual_and_monthly_agree():
    monthly = calculate_net_salary(8_000, "usa")
    annual = calculate_net_salary(96_000, "usa", is_annual=True)
    assert annual.net_salary == pytest.approx(monthly.net_salary * 12)
    assert annual.marginal_tax_rate == monthly.marginal_tax_rate


def test_uk_personal_allowance_tapers():
    res = calculate_net_salary(110_000, "uk", is_annual=True)
    assert res.breakdown.deductions[0].amount == pytest.approx(12_570 - 5_000)
    full = calculate_net_salary(90_000, "uk", is_annual=True)
    assert full.breakdown.deductions[0].amount == 12_570


def test_social_insurance_respects_ceiling():
    res = calculate_net_salary(1_000_000, "usa", is_annual=True)
    social_security = res.breakdown.social_insurance_details[0]
    assert social_security.amount == pytest.approx(168_600 * 0.062)


def test_credits_never_make_tax_negative():
    res = calculate_net_salary(1_000, "israel")
    assert res.income_tax == 0


def test_negative_salary_is_a_validation_error():
    with pytest.raises(ValidationError):
        calculate_net_salary(-1, "israel")


def test_unknown_country_is_a_calculation_error():
    with pytest.raises(CalculationError):
        calculate_net_salary(10_000, "narnia")
    with pytest.raises(CalculationError):
        get_country("")


def test_blended_rate_weights_by_growth():
    results = [_result("israel", 100.0), _result("uk", 300.0)]
    assert blended_pension_tax_rate(results) == pytest.approx((0.15 * 100 + 0.20 * 300) / 400)


def test_blended_rate_falls_back_to_first_period_country():
    periods = [WorkPeriod("usa", 30, 40, 0), WorkPeriod("israel", 40, 50, 0)]
    assert blended_pension_tax_rate([_result("israel", 0.0)], periods) == 0.12


def test_blended_rate_default_without_periods():
    assert blended_pension_tax_rate([], []) == 0.25
