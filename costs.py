import numpy as np
import pandas as pd


def future_monthly_expenses(monthly_expenses: float, inflation_pct: float, years: float) -> float:
    return monthly_expenses * (1 + inflation_pct / 100) ** years


def inflation_adjusted(amount: float, inflation_pct: float, years: float) -> float:
    """Express a future nominal amount in today's money."""
    return amount / (1 + inflation_pct / 100) ** years


def project_expenses(monthly_expenses: float, inflation_pct: float, years: int) -> pd.DataFrame:
    """
    Returns a DataFrame with nominal monthly and annual expenses for each
    year from today (year 0) to `years`, plus the same figures in today's money.
    """
    idx = np.arange(years + 1)
    multiplier = (1 + inflation_pct / 100) ** idx
    out = pd.DataFrame({
        "year": idx,
        "monthly_nominal": monthly_expenses * multiplier,
        "monthly_real_today": np.full(len(idx), float(monthly_expenses)),
    })
    out["annual_nominal"] = out["monthly_nominal"] * 12
    out["annual_real_today"] = out["monthly_real_today"] * 12
    return out
