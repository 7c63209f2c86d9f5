import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from allocation import get_adjusted_return

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkPeriod:
    country: str
    start_age: float
    end_age: float
    monthly_contribution: float          # pension deposit per month
    monthly_training_fund: float = 0.0   # read by partner planning only; individuals use training_fund_monthly
    pension_return: Optional[float] = None  # %/yr; None = allocation weighted return
    pension_deposit_fee: float = 0.0     # % taken from every deposit
    pension_annual_fee: float = 0.0      # %/yr management fee
    salary: float = 0.0                  # monthly gross


@dataclass
class PeriodResult:
    country: str
    years: float
    contributions: float
    net_contributions: float
    opening_balance: float
    closing_balance: float
    growth: float                        # closing - opening
    pension_return: float                # risk adjusted, %/yr
    pension_effective_return: float      # after the annual fee
    pension_deposit_fee: float
    pension_annual_fee: float
    monthly_training_fund: float


def period_years(start_age: float, end_age: float, current_age: float, retirement_age: float) -> float:
    return max(0, min(end_age, retirement_age) - max(start_age, current_age))


def monthly_rate(annual_return_pct: float, annual_fee_pct: float = 0.0) -> float:
    return (annual_return_pct - annual_fee_pct) / 100 / 12


def grow_balance(balance: float, rate: float, months: float) -> float:
    return balance * (1 + rate) ** months


def annuity_future_value(payment: float, rate: float, months: float) -> float:
    """
    Future value of equal payments made at the end of each month.
    At a rate of exactly zero the formula's limit, payment * months, is used.
    """
    if rate == 0:
        return payment * months
    return payment * ((1 + rate) ** months - 1) / rate


def future_value(balance: float, payment: float, annual_return_pct: float,
                 years: float, annual_fee_pct: float = 0.0) -> float:
    r = monthly_rate(annual_return_pct, annual_fee_pct)
    n = years * 12
    return grow_balance(balance, r, n) + annuity_future_value(payment, r, n)


def project_work_periods(opening_balance: float,
                         work_periods: Sequence[WorkPeriod],
                         current_age: float,
                         retirement_age: float,
                         risk_tolerance: Optional[str] = "moderate",
                         default_return: float = 0.0) -> Tuple[float, List[PeriodResult]]:
    """
    Compound the pension balance across a career of work periods.

    Periods are processed by ascending start age; each one starts from the
    balance the previous one left. Periods outside [current_age, retirement_age)
    contribute nothing and produce no PeriodResult.
    """
    balance = opening_balance
    results = []
    for period in sorted(work_periods, key=lambda p: p.start_age):
        years = period_years(period.start_age, period.end_age, current_age, retirement_age)
        if years <= 0:
            logger.debug("Skipping %s period %s-%s: outside the plan", period.country,
                         period.start_age, period.end_age)
            continue

        base = default_return if period.pension_return is None else period.pension_return
        adjusted = get_adjusted_return(base, risk_tolerance)
        effective = adjusted - period.pension_annual_fee
        r = monthly_rate(effective)
        months = years * 12

        net_monthly = period.monthly_contribution * (1 - period.pension_deposit_fee / 100)
        closing = grow_balance(balance, r, months) + annuity_future_value(net_monthly, r, months)

        results.append(PeriodResult(
            country=period.country,
            years=years,
            contributions=period.monthly_contribution * months,
            net_contributions=net_monthly * months,
            opening_balance=balance,
            closing_balance=closing,
            growth=closing - balance,
            pension_return=adjusted,
            pension_effective_return=effective,
            pension_deposit_fee=period.pension_deposit_fee,
            pension_annual_fee=period.pension_annual_fee,
            monthly_training_fund=period.monthly_training_fund,
        ))
        balance = closing
    return balance, results


def balance_schedule(opening_balance: float, monthly_contribution: float,
                     annual_return_pct: float, years: int,
                     annual_fee_pct: float = 0.0) -> pd.DataFrame:
    """Year-end balances, cumulative contributions and growth for a single asset."""
    r = monthly_rate(annual_return_pct, annual_fee_pct)
    year = np.arange(years + 1)
    months = year * 12
    factor = (1 + r) ** months
    if r == 0:
        from_contrib = monthly_contribution * months
    else:
        from_contrib = monthly_contribution * (factor - 1) / r
    balance = opening_balance * factor + from_contrib
    contributed = opening_balance + monthly_contribution * months
    return pd.DataFrame({
        "year": year,
        "balance": balance,
        "contributed": contributed,
        "growth": balance - contributed,
    })
