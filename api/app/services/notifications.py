"""Notification trigger.

Delivery (email, in-app) belongs to an external service. The engine only
emits events through a ``NotificationSink``, queued as a sidecar job.
"""
import logging
from typing import Any, Dict, Protocol

logger = logging.getLogger(__name__)

EVENT_RISK_ASSIGNED = "risk_assigned"
EVENT_RISK_CRITICAL = "risk_critical"


class NotificationSink(Protocol):
    def notify(self, event: str, payload: Dict[str, Any]) -> None:
        ...


class LoggingNotificationSink:
    """Hands events to the log stream for pickup by the delivery service."""

    def notify(self, event: str, payload: Dict[str, Any]) -> None:
        logger.info("Notification event=%s payload=%s", event, payload)
