import json
from dataclasses import asdict, fields
from datetime import datetime

import numpy as np
import pandas as pd

from currency import ExchangeRateSnapshot
from simulation import RetirementResult

# Whole-currency fields of a RetirementResult, in report order
MONEY_FIELDS = [
    f.name for f in fields(RetirementResult)
    if f.type in (int, "int")
]


def summary_frame(result: RetirementResult) -> pd.DataFrame:
    return pd.DataFrame({
        "field": MONEY_FIELDS,
        "value": [getattr(result, name) for name in MONEY_FIELDS],
    })


def periods_frame(result: RetirementResult) -> pd.DataFrame:
    return pd.DataFrame([asdict(p) for p in result.period_results])


def export_summary(result: RetirementResult) -> tuple[str, bytes]:
    return "retirement_summary.csv", summary_frame(result).to_csv(index=False).encode()


def _json_default(o):
    # numpy scalars/arrays and timestamps that may sneak into results
    if isinstance(o, np.ndarray):
        return o.tolist()
    if isinstance(o, (np.float32, np.float64, np.int32, np.int64)):
        return o.item()
    if isinstance(o, datetime):
        return o.isoformat()
    raise TypeError(f"Object of type {o.__class__.__name__} is not JSON serializable")


def export_result(result: RetirementResult) -> tuple[str, bytes]:
    """Full result, including period and partner detail, as JSON."""
    blob = json.dumps(asdict(result), indent=2, default=_json_default, ensure_ascii=False)
    return "retirement_result.json", blob.encode()


def convert_result(result: RetirementResult, rates: ExchangeRateSnapshot, currency: str) -> dict:
    """
    Display copy of the whole-currency fields in another currency.
    The projection itself stays in the base currency.
    """
    rate = rates.get_rate(rates.base, currency)
    return {name: getattr(result, name) * rate for name in MONEY_FIELDS}
