"""Budget alert package."""

from expense_tracker.alerts.alerter import (
    ThresholdAlerter,
    build_alert_message,
    evaluate_alert_level,
)
from expense_tracker.alerts.dispatch import AlertDispatcher

__all__ = [
    "AlertDispatcher",
    "ThresholdAlerter",
    "build_alert_message",
    "evaluate_alert_level",
]
