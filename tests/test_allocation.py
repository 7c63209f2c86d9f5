import pytest

from allocation import (AllocationEntry, get_adjusted_return, nearest_horizon,
                        risk_multiplier, weighted_return)
from returns_presets import HISTORICAL_RETURNS


@pytest.mark.parametrize("years, expected", [
    (1, 5),
    (7.5, 5),        # tie between 5 and 10 keeps the shorter horizon
    (12.5, 10),
    (18, 20),
    (28, 30),
    (45, 30),
])
def test_nearest_horizon(years, expected):
    assert nearest_horizon(years) == expected


@pytest.mark.parametrize("allocations", [None, []])
def test_weighted_return_of_nothing_is_zero(allocations):
    assert weighted_return(allocations, 20) == 0


def test_weighted_return_is_percentage_weighted_sum():
    allocations = [AllocationEntry(0, 60), AllocationEntry(3, 40)]
    expected = 7.2 * 0.6 + 4.8 * 0.4
    assert weighted_return(allocations, 20, HISTORICAL_RETURNS) == pytest.approx(expected)


def test_weighted_return_uses_nearest_bucket():
    allocations = [AllocationEntry(2, 100)]
    assert weighted_return(allocations, 27) == pytest.approx(10.8)   # bucket 25


def test_custom_return_takes_precedence():
    allocations = [AllocationEntry(0, 50, custom_return=12.0), AllocationEntry(1, 50)]
    assert weighted_return(allocations, 30) == pytest.approx(6.0 + 4.75)


def test_zero_custom_return_still_overrides_history():
    allocations = [AllocationEntry(1, 100, custom_return=0.0)]
    assert weighted_return(allocations, 20) == 0


def test_missing_data_degrades_to_zero():
    assert weighted_return([AllocationEntry(99, 100)], 20) == 0
    assert weighted_return([AllocationEntry(0, 100)], 20, historical_returns={}) == 0
    assert weighted_return([AllocationEntry(0, 100)], 20, historical_returns={20: []}) == 0


def test_non_positive_percentages_are_ignored():
    allocations = [AllocationEntry(0, 0), AllocationEntry(1, -10)]
    assert weighted_return(allocations, 20) == 0


def test_percentages_are_not_normalised():
    assert weighted_return([AllocationEntry(1, 50)], 20) == pytest.approx(5.0)


def test_risk_adjustment():
    assert get_adjusted_return(10, "aggressive") == pytest.approx(11.5)
    assert get_adjusted_return(10, "veryConservative") == pytest.approx(7.0)
    assert get_adjusted_return(10, "moderate") == 10
    assert get_adjusted_return(10, "reckless") == 10
    assert risk_multiplier(None) == 1.0
