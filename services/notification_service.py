import logging
import sqlite3
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Callable
from models.alert import BUDGET_EXCEEDED, BudgetAlert
from models.notification import PendingNotification
from models.recurring_template import RecurringTemplate
from database.notification_dao import NotificationDAO
from services.settings_service import SettingsService
from utils.constants import (
    BUDGET_ALERT_ID, DAILY_REMINDER_ID, SUBSCRIPTION_ALERT_HOUR, SUBSCRIPTION_PREFIX,
)
from utils.currency import format_currency, format_percent
from utils.date_helpers import add_months, format_datetime, now

logger = logging.getLogger(__name__)


def budget_alert_message(
    alert: BudgetAlert, spending: Decimal, budget: Decimal, symbol: str = "$"
) -> tuple[str, str]:
    """Return (title, body) for a budget alert."""
    if alert.kind == BUDGET_EXCEEDED:
        over = spending - budget
        if over > 0:
            body = (
                f"You've spent {format_currency(spending, symbol)} of your "
                f"{format_currency(budget, symbol)} budget "
                f"({format_currency(over, symbol)} over)"
            )
        else:
            body = "You've reached 100% of your monthly budget"
        return "Budget Exceeded", body
    return "Budget Warning", f"You've spent {format_percent(alert.progress)} of your monthly budget"


def subscription_id(template: RecurringTemplate) -> str:
    return SUBSCRIPTION_PREFIX + template.id


class NotificationService:
    """Local notification scheduler backed by the pending_notifications table.

    Everything here is best-effort: when notifications are not authorized, or
    the store rejects a write, the request is skipped and logged.
    """

    def __init__(self, notification_dao: NotificationDAO, settings: SettingsService, symbol: str = "$"):
        self._dao = notification_dao
        self._settings = settings
        self._symbol = symbol

    # ── Permission ────────────────────────────────────────────────────────────

    def request_authorization(self, granted: bool = True) -> bool:
        self._settings.notifications_authorized = granted
        return granted

    @property
    def is_authorized(self) -> bool:
        return self._settings.notifications_authorized

    # ── Collaborator contract ─────────────────────────────────────────────────

    def schedule_at(
        self,
        when: datetime,
        title: str,
        body: str,
        notification_id: str,
        category: str = "",
        repeats: str = "",
    ) -> bool:
        """Queue a notification. Returns False when it was skipped."""
        try:
            if not self.is_authorized:
                logger.info("Notifications not authorized, skipping %s", notification_id)
                return False
            self._dao.upsert(PendingNotification(
                id=notification_id, title=title, body=body, fire_at=when,
                category=category, repeats=repeats,
            ))
        except sqlite3.Error as exc:
            logger.error("Could not schedule notification %s: %s", notification_id, exc)
            return False
        return True

    def cancel(self, id_or_prefix: str) -> int:
        """Cancel the request with this id and any whose id extends it."""
        try:
            return self._dao.delete_by_prefix(id_or_prefix)
        except sqlite3.Error as exc:
            logger.error("Could not cancel notification %s: %s", id_or_prefix, exc)
            return 0

    def pending(self) -> list[PendingNotification]:
        return self._dao.get_pending()

    def delivered(self) -> list[PendingNotification]:
        return self._dao.get_delivered()

    def clear_delivered(self):
        self._dao.delete_delivered()

    def deliver_due(self, as_of: datetime | None = None) -> list[PendingNotification]:
        """Mark every request whose time has come as delivered and return them.
        Repeating requests leave a delivered copy and move to their next time."""
        ref = as_of or now()
        delivered = []
        for n in self._dao.get_due(format_datetime(ref)):
            if n.repeats:
                copy = PendingNotification(
                    id=f"{n.id}#{format_datetime(n.fire_at)}", title=n.title, body=n.body,
                    fire_at=n.fire_at, category=n.category, delivered=True,
                )
                self._dao.upsert(copy)
                n.fire_at = self._advance(n.fire_at, n.repeats, ref)
                self._dao.upsert(n)
                delivered.append(copy)
            else:
                self._dao.mark_delivered(n.id)
                n.delivered = True
                delivered.append(n)
        return delivered

    def cancel_all(self):
        try:
            self._dao.delete_all()
        except sqlite3.Error as exc:
            logger.error("Could not cancel notifications: %s", exc)

    def _advance(self, fire_at: datetime, repeats: str, ref: datetime) -> datetime:
        nxt = fire_at
        n = 0
        while nxt <= ref:
            n += 1
            if repeats == "daily":
                nxt = fire_at + timedelta(days=n)
            else:
                nxt = datetime.combine(add_months(fire_at.date(), n), fire_at.time())
        return nxt

    # ── Budget alert ──────────────────────────────────────────────────────────

    def dispatch_budget_alert(
        self, alert: BudgetAlert, spending: Decimal, budget: Decimal, when: datetime | None = None
    ) -> bool:
        ref = when or now()
        title, body = budget_alert_message(alert, spending, budget, self._symbol)
        return self.schedule_at(
            ref, title, body, f"{BUDGET_ALERT_ID}_{ref.timestamp():.0f}", category="budget",
        )

    # ── Daily reminder ────────────────────────────────────────────────────────

    def schedule_daily_reminder(self, enabled: bool, at: time, when: datetime | None = None) -> bool:
        self.cancel(DAILY_REMINDER_ID)
        if not enabled:
            return False
        ref = when or now()
        fire_at = datetime.combine(ref.date(), at)
        if fire_at <= ref:
            fire_at += timedelta(days=1)
        return self.schedule_at(
            fire_at, "Track Your Expenses", "Don't forget to log your expenses for today!",
            DAILY_REMINDER_ID, category="daily", repeats="daily",
        )

    # ── Subscription alerts ───────────────────────────────────────────────────

    def schedule_subscription_alert(
        self,
        template: RecurringTemplate,
        enabled: bool,
        due: date,
        when: datetime | None = None,
    ) -> int:
        """Schedule a day-before reminder and an on-the-day alert for the
        template's next due date. Returns how many were queued."""
        identifier = subscription_id(template)
        self.cancel(identifier)
        if not enabled or not template.is_active:
            return 0

        ref = when or now()
        body = f"{template.name} - {format_currency(template.amount, self._symbol)}"
        on_day = datetime.combine(due, time(SUBSCRIPTION_ALERT_HOUR))
        reminder = on_day - timedelta(days=1)
        queued = 0
        if reminder > ref and self.schedule_at(
            reminder, "Upcoming Subscription", body, identifier + "_reminder",
            category="subscription",
        ):
            queued += 1
        if on_day > ref and self.schedule_at(
            on_day, "Subscription Due Today", body, identifier,
            category="subscription", repeats="monthly",
        ):
            queued += 1
        return queued

    def update_all_subscription_alerts(
        self,
        templates: list[RecurringTemplate],
        enabled: bool,
        next_due: Callable[[RecurringTemplate], date],
        when: datetime | None = None,
    ) -> int:
        self.cancel(SUBSCRIPTION_PREFIX)
        if not enabled:
            return 0
        return sum(
            self.schedule_subscription_alert(t, True, next_due(t), when)
            for t in templates if t.is_active
        )
