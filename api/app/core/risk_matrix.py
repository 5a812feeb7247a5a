"""Read-side aggregation over risk rows.

Pure functions: they take already-loaded risks and compute dashboard views.
Nothing is cached, so every call reflects the rows it is given. ``now`` may be
naive UTC or timezone-aware; it is compared against naive UTC columns.
"""
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Tuple

from app.core.risk_constants import MAX_SCALE, MIN_SCALE, RISK_LEVEL_ORDER
from app.core.risk_scoring import calculate_risk_score, risk_level
from app.core.time import as_naive_utc


def aggregate_matrix(risks: Iterable) -> Dict[Tuple[int, int], int]:
    """Count risks per occupied (probability, impact) cell."""
    counts: Dict[Tuple[int, int], int] = {}
    for risk in risks:
        key = (risk.probability, risk.impact)
        counts[key] = counts.get(key, 0) + 1
    return counts


def build_heat_grid(risks: Iterable) -> List[dict]:
    """
    Full 5x5 heat map, zero-filled.

    Rows run from the highest probability down so the grid renders
    top-to-bottom the way the dashboard draws it.
    """
    counts = aggregate_matrix(risks)
    cells = []
    for probability in range(MAX_SCALE, MIN_SCALE - 1, -1):
        for impact in range(MIN_SCALE, MAX_SCALE + 1):
            cells.append({
                "probability": probability,
                "impact": impact,
                "score": calculate_risk_score(probability, impact),
                "risk_level": risk_level(probability, impact).value,
                "count": counts.get((probability, impact), 0),
            })
    return cells


def level_distribution(risks: Iterable) -> Dict[str, int]:
    """Risk count per level, highest level first, zero-filled."""
    distribution = {level.value: 0 for level in RISK_LEVEL_ORDER}
    for risk in risks:
        distribution[risk.risk_level] = distribution.get(risk.risk_level, 0) + 1
    return distribution


def overdue_reviews(risks: Iterable, now: datetime) -> list:
    """Risks whose next review date is set and strictly before ``now``."""
    now = as_naive_utc(now)
    overdue = [
        risk for risk in risks
        if risk.next_review_date is not None and risk.next_review_date < now
    ]
    overdue.sort(key=lambda risk: risk.next_review_date)
    return overdue


def upcoming_reviews(risks: Iterable, now: datetime, days: int) -> list:
    """Risks due for review between ``now`` and ``now + days``, inclusive."""
    now = as_naive_utc(now)
    horizon = now + timedelta(days=days)
    upcoming = [
        risk for risk in risks
        if risk.next_review_date is not None and now <= risk.next_review_date <= horizon
    ]
    upcoming.sort(key=lambda risk: risk.next_review_date)
    return upcoming
