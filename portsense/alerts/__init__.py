"""Alert rules, cooldown suppression, and alert persistence."""

from portsense.alerts.cooldown import COOLDOWN_LOOKBACK, filter_with_cooldown
from portsense.alerts.engine import RuleEngine, RuleView
from portsense.alerts.rules import DEFAULT_RULES, AlertRule, alert_message, alert_title
from portsense.alerts.service import AlertService

__all__ = [
    "COOLDOWN_LOOKBACK",
    "DEFAULT_RULES",
    "AlertRule",
    "AlertService",
    "RuleEngine",
    "RuleView",
    "alert_message",
    "alert_title",
    "filter_with_cooldown",
]
