# Fixed withdrawal-rate policy used to turn a projected balance into a
# sustainable monthly income. These are policy constants, not inputs.
WITHDRAWAL_RATES = {
    "pension": 0.04,
    "training_fund": 0.05,
    "personal_portfolio": 0.04,
    "crypto": 0.04,
    "real_estate": 0.04,
}


def monthly_withdrawal(balance: float, asset: str) -> float:
    return balance * WITHDRAWAL_RATES[asset] / 12


def rental_income(balance: float, rental_yield_pct: float) -> float:
    return balance * (rental_yield_pct / 100) / 12


def after_flat_tax(gross: float, tax_rate_pct: float) -> tuple[float, float]:
    """Returns (tax, net) for income taxed at a flat percentage."""
    tax = gross * (tax_rate_pct / 100)
    return tax, gross - tax
