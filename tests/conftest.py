"""Pytest configuration and fixtures."""
import pytest

from allocation import AllocationEntry
from projection import WorkPeriod
from simulation import RetirementInputs


class FakeClock:
    """Monotonic clock the tests can move forward by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def golden_inputs():
    return RetirementInputs(
        current_age=39,
        retirement_age=67,
        current_savings=100_000,
        current_monthly_expenses=35_000,
        inflation_rate=3.0,
    )


@pytest.fixture
def golden_period():
    return WorkPeriod(
        country="israel",
        start_age=39,
        end_age=67,
        monthly_contribution=4_266.6,
        pension_return=8.0,
        pension_annual_fee=0.5,
        salary=20_000,
    )


@pytest.fixture
def zero_return_inputs():
    return RetirementInputs(
        current_age=40,
        retirement_age=50,
        current_savings=120_000,
        current_training_fund=120_000,
        training_fund_return=0.0,
        current_personal_portfolio=120_000,
        current_real_estate=120_000,
        real_estate_rental_yield=5.0,
        current_monthly_expenses=10_000,
        inflation_rate=0.0,
        target_replacement=50.0,
    )


@pytest.fixture
def zero_return_period():
    return WorkPeriod(country="israel", start_age=40, end_age=50,
                      monthly_contribution=0.0, pension_return=0.0, salary=20_000)


@pytest.fixture
def stock_bond_allocation():
    return [AllocationEntry(index=1, percentage=70), AllocationEntry(index=3, percentage=30)]
