import logging
from datetime import time
from decimal import Decimal
from database.db_manager import DatabaseManager
from utils.constants import (
    BUDGET_ALERT_ENABLED_KEY, BUDGET_THRESHOLD_KEY, DAILY_REMINDER_KEY,
    DAILY_REMINDER_TIME_KEY, DEFAULT_BUDGET_THRESHOLD, DEFAULT_DAILY_REMINDER_TIME,
    NOTIFICATION_SETTING_KEYS, NOTIFICATIONS_AUTHORIZED_KEY, SUBSCRIPTION_ALERTS_KEY,
)
from utils.currency import parse_amount
from utils.date_helpers import parse_clock

logger = logging.getLogger(__name__)


class SettingsService:
    """Notification preferences stored in app_settings.

    Callbacks registered with on_threshold_change run after the threshold is
    written, so the budget tracker can re-arm the current month.
    """

    def __init__(self, db: DatabaseManager):
        self._db = db
        self._threshold_listeners = []

    def on_threshold_change(self, callback):
        self._threshold_listeners.append(callback)

    def _get_bool(self, key: str) -> bool:
        return self._db.get_setting(key, "0") == "1"

    def _set_bool(self, key: str, value: bool):
        self._db.set_setting(key, "1" if value else "0")

    @property
    def budget_alert_enabled(self) -> bool:
        return self._get_bool(BUDGET_ALERT_ENABLED_KEY)

    @budget_alert_enabled.setter
    def budget_alert_enabled(self, value: bool):
        self._set_bool(BUDGET_ALERT_ENABLED_KEY, value)

    @property
    def budget_threshold(self) -> Decimal:
        """Fraction of budget for the early warning; unset or zero means 0.80."""
        raw = self._db.get_setting(BUDGET_THRESHOLD_KEY, "")
        try:
            value = parse_amount(raw) if raw else Decimal("0")
        except ValueError:
            logger.warning("Stored budget threshold %r is invalid", raw)
            value = Decimal("0")
        return value if value > 0 else DEFAULT_BUDGET_THRESHOLD

    @budget_threshold.setter
    def budget_threshold(self, value):
        value = parse_amount(value)
        if not Decimal("0") < value <= Decimal("1"):
            raise ValueError("Threshold must be between 0 and 1.")
        self._db.set_setting(BUDGET_THRESHOLD_KEY, str(value))
        for callback in self._threshold_listeners:
            callback(value)

    @property
    def subscription_alerts_enabled(self) -> bool:
        return self._get_bool(SUBSCRIPTION_ALERTS_KEY)

    @subscription_alerts_enabled.setter
    def subscription_alerts_enabled(self, value: bool):
        self._set_bool(SUBSCRIPTION_ALERTS_KEY, value)

    @property
    def daily_reminder_enabled(self) -> bool:
        return self._get_bool(DAILY_REMINDER_KEY)

    @daily_reminder_enabled.setter
    def daily_reminder_enabled(self, value: bool):
        self._set_bool(DAILY_REMINDER_KEY, value)

    @property
    def daily_reminder_time(self) -> time:
        raw = self._db.get_setting(DAILY_REMINDER_TIME_KEY, DEFAULT_DAILY_REMINDER_TIME)
        return parse_clock(raw, DEFAULT_DAILY_REMINDER_TIME)

    @daily_reminder_time.setter
    def daily_reminder_time(self, value: time):
        self._db.set_setting(DAILY_REMINDER_TIME_KEY, value.strftime("%H:%M"))

    @property
    def notifications_authorized(self) -> bool:
        return self._get_bool(NOTIFICATIONS_AUTHORIZED_KEY)

    @notifications_authorized.setter
    def notifications_authorized(self, value: bool):
        self._set_bool(NOTIFICATIONS_AUTHORIZED_KEY, value)

    def reset(self):
        """Forget every notification preference (authorization is kept)."""
        for key in NOTIFICATION_SETTING_KEYS:
            self._db.delete_setting(key)
