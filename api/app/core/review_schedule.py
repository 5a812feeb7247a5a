"""Review cadence helpers: monitoring frequency -> next review date."""
from datetime import datetime
from typing import Optional

from dateutil.relativedelta import relativedelta

from app.core.risk_constants import MonitoringFrequency

FREQUENCY_MONTHS = {
    MonitoringFrequency.MONTHLY: 1,
    MonitoringFrequency.QUARTERLY: 3,
    MonitoringFrequency.SEMI_ANNUAL: 6,
    MonitoringFrequency.ANNUAL: 12,
}


def calculate_next_review_date(
    reviewed_at: datetime, frequency: Optional[str]
) -> Optional[datetime]:
    """
    Next review due date after a review at ``reviewed_at``.

    Month arithmetic clamps to the end of shorter months
    (Jan 31 + 1 month = Feb 28/29).

    Returns None when no monitoring frequency is set.
    """
    if not frequency:
        return None
    months = FREQUENCY_MONTHS[MonitoringFrequency(frequency)]
    return reviewed_at + relativedelta(months=months)
