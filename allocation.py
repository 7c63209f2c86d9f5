import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from returns_presets import HISTORICAL_RETURNS, HORIZONS, RISK_SCENARIOS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AllocationEntry:
    index: int                            # position in the historical returns row
    percentage: float                     # 0-100, not normalised
    custom_return: Optional[float] = None  # overrides the historical figure


def nearest_horizon(years: float, horizons: Sequence[int] = HORIZONS) -> int:
    """Closest available horizon; on a tie the earlier (shorter) one wins."""
    best = horizons[0]
    for h in horizons[1:]:
        if abs(h - years) < abs(best - years):
            best = h
    return best


def _historical_rate(table: Dict[int, List[float]], horizon: int, index: int) -> float:
    row = table.get(horizon) if table else None
    if not row or index < 0 or index >= len(row):
        return 0.0
    return row[index] or 0.0


def weighted_return(allocations: Optional[Iterable[AllocationEntry]],
                    time_horizon: float = 20,
                    historical_returns: Optional[Dict[int, List[float]]] = None) -> float:
    """
    Percentage-weighted annual return (%) of an allocation for the given horizon.
    Missing allocations, buckets or asset rows degrade to 0 instead of raising.
    """
    if not allocations:
        return 0.0
    table = HISTORICAL_RETURNS if historical_returns is None else historical_returns
    horizon = nearest_horizon(time_horizon)

    total_return = 0.0
    total_pct = 0.0
    for entry in allocations:
        if entry.percentage > 0:
            if entry.custom_return is not None:
                rate = entry.custom_return
            else:
                rate = _historical_rate(table, horizon, entry.index)
            total_return += rate * entry.percentage / 100
            total_pct += entry.percentage

    if total_pct <= 0:
        logger.debug("Allocation has no positive weights; weighted return is 0")
        return 0.0
    return total_return


def risk_multiplier(risk_tolerance: Optional[str]) -> float:
    scenario = RISK_SCENARIOS.get(risk_tolerance) if risk_tolerance else None
    return scenario["multiplier"] if scenario else 1.0


def get_adjusted_return(base_return: float, risk_tolerance: Optional[str] = "moderate") -> float:
    return base_return * risk_multiplier(risk_tolerance)
