"""Application engine: runs the load pipeline (materialize recurring
templates, recompute spending, evaluate budget alerts, dispatch at most one
notification) and fronts every user action that changes data.

Presentation layers observe changes through subscribe(); callbacks receive
(event, payload) where event is one of EVENTS.
"""
import logging
import sqlite3
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from typing import Callable
from models.alert import BudgetAlert
from models.category import Category
from models.recurring_template import RecurringTemplate
from models.transaction import Transaction
from services.budget_service import BudgetService
from services.category_service import CategoryService
from services.notification_service import NotificationService
from services.recurring_service import RecurringService
from services.settings_service import SettingsService
from services.transaction_service import TransactionService
from utils.constants import QUICK_ADD_NOTES, SUBSCRIPTION_PREFIX, TRANSACTION_TYPES
from utils.currency import parse_amount
from utils.date_helpers import month_key, now

logger = logging.getLogger(__name__)

EVENTS = ("transactions_changed", "templates_changed", "budget_changed", "alert", "data_reset")


@dataclass
class MonthlySummary:
    month: date
    expenses: Decimal
    income: Decimal
    budget: Decimal
    progress: Decimal           # capped at 1 for display
    is_over_budget: bool
    expenses_by_category: list[tuple[Category, Decimal]] = field(default_factory=list)
    income_by_category: list[tuple[Category, Decimal]] = field(default_factory=list)

    @property
    def balance(self) -> Decimal:
        return self.income - self.expenses


@dataclass
class LoadResult:
    new_transactions: list[Transaction]
    alert: BudgetAlert | None = None


class ExpenseService:
    def __init__(
        self,
        tx_service: TransactionService,
        category_service: CategoryService,
        recurring_service: RecurringService,
        budget_service: BudgetService,
        settings: SettingsService,
        notifications: NotificationService,
        clock: Callable[[], datetime] = now,
    ):
        self._tx = tx_service
        self._categories = category_service
        self._recurring = recurring_service
        self._budget = budget_service
        self._settings = settings
        self._notifications = notifications
        self._clock = clock
        self._listeners: list[Callable[[str, object], None]] = []
        self._settings.on_threshold_change(self._on_threshold_change)

    # ── Observers ─────────────────────────────────────────────────────────────

    def subscribe(self, callback: Callable[[str, object], None]) -> Callable[[], None]:
        """Register a change listener. Returns a function that unregisters it."""
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)
        return unsubscribe

    def _emit(self, event: str, payload=None):
        for callback in list(self._listeners):
            try:
                callback(event, payload)
            except Exception:
                logger.exception("Listener failed on %s", event)

    # ── Load pipeline ─────────────────────────────────────────────────────────

    def load_data(self) -> LoadResult:
        ref = self._clock().date()
        self._recurring.load()
        created = self._recurring.process_due(ref)
        if created:
            self._emit("transactions_changed", created)
        alert = self.check_budget()
        return LoadResult(new_transactions=created, alert=alert)

    def check_budget(self) -> BudgetAlert | None:
        """Recompute this month's spending and dispatch an alert if one is due."""
        current = self._clock()
        try:
            enabled = self._settings.budget_alert_enabled
            threshold = self._settings.budget_threshold
            budget = self._budget.get_monthly_budget()
            spending = self._budget.current_spending(current.date())
        except sqlite3.Error as exc:
            logger.error("Skipping budget check, store unavailable: %s", exc)
            return None

        alert = self._budget.evaluate(
            spending, budget, threshold, month_key(current.date()), enabled=enabled,
        )
        if alert:
            self._notifications.dispatch_budget_alert(alert, spending, budget, current)
            self._emit("alert", alert)
        return alert

    def on_foreground(self) -> int:
        """Maintenance hook for app activation: drop stale month state."""
        return self._budget.sweep_stale(self._clock().date())

    # ── Transactions ──────────────────────────────────────────────────────────

    def add_transaction(
        self, type_: str, amount, category_id: int, when: datetime, note: str | None = None
    ) -> Transaction:
        tx = self._tx.create(type_, amount, category_id, when, note)
        self._emit("transactions_changed", [tx])
        self.check_budget()
        return tx

    def update_transaction(
        self, tx_id: int, type_: str, amount, category_id: int, when: datetime, note: str | None = None
    ) -> Transaction:
        tx = self._tx.update(tx_id, type_, amount, category_id, when, note)
        self._emit("transactions_changed", [tx])
        self.check_budget()
        return tx

    def delete_transaction(self, tx_id: int):
        self._tx.delete(tx_id)
        self._emit("transactions_changed", [])
        self.check_budget()

    def quick_add(self, type_: str, amount, category_ref: str | int | None = None) -> Transaction | None:
        """External quick-add entry point. Non-positive amounts are ignored."""
        if type_ not in TRANSACTION_TYPES:
            raise ValueError(f"Invalid type: {type_}")
        amount = parse_amount(amount)
        if amount <= 0:
            return None
        category = self._categories.resolve(category_ref)
        tx = self._tx.create(type_, amount, category.id, self._clock(), QUICK_ADD_NOTES[type_])
        logger.info("Quick-added %s %s to %s", type_, amount, category.name)
        self._emit("transactions_changed", [tx])
        self.check_budget()
        return tx

    # ── Recurring templates ───────────────────────────────────────────────────

    def add_template(
        self, name: str, amount, category_id: int, day_of_month: int,
        type_: str = "expense", is_active: bool = True,
    ) -> RecurringTemplate:
        template = self._recurring.add(name, amount, category_id, day_of_month, type_, is_active)
        return self._after_template_change(template)

    def update_template(
        self, template_id: str, name: str, amount, category_id: int, day_of_month: int,
        type_: str, is_active: bool = True,
    ) -> RecurringTemplate | None:
        template = self._recurring.update(
            template_id, name, amount, category_id, day_of_month, type_, is_active
        )
        if template:
            return self._after_template_change(template)
        return None

    def toggle_template(self, template_id: str) -> RecurringTemplate | None:
        template = self._recurring.toggle_active(template_id)
        if template:
            self._schedule_subscription(template)
            self._emit("templates_changed", template)
        return template

    def delete_template(self, template_id: str) -> bool:
        removed = self._recurring.delete(template_id)
        self._notifications.cancel(SUBSCRIPTION_PREFIX + template_id)
        if removed:
            self._emit("templates_changed", None)
        return removed

    def _after_template_change(self, template: RecurringTemplate) -> RecurringTemplate:
        created = self._recurring.process_due(self._clock().date())
        current = self._recurring.get_by_id(template.id) or template
        self._schedule_subscription(current)
        self._emit("templates_changed", current)
        if created:
            self._emit("transactions_changed", created)
            self.check_budget()
        return current

    def _schedule_subscription(self, template: RecurringTemplate):
        current = self._clock()
        self._notifications.schedule_subscription_alert(
            template,
            self._settings.subscription_alerts_enabled,
            self._recurring.next_due_date(template, current.date()),
            current,
        )

    # ── Settings ──────────────────────────────────────────────────────────────

    def set_monthly_budget(self, amount) -> Decimal:
        value = self._budget.set_monthly_budget(amount)
        self._budget.reset_current_month(self._clock().date())
        self._emit("budget_changed", value)
        return value

    def set_budget_threshold(self, value):
        self._settings.budget_threshold = value

    def _on_threshold_change(self, value):
        self._budget.reset_current_month(self._clock().date())
        self._emit("budget_changed", value)

    def set_budget_alert_enabled(self, enabled: bool):
        self._settings.budget_alert_enabled = enabled

    def set_subscription_alerts_enabled(self, enabled: bool) -> int:
        self._settings.subscription_alerts_enabled = enabled
        current = self._clock()
        return self._notifications.update_all_subscription_alerts(
            self._recurring.get_all(),
            enabled,
            lambda t: self._recurring.next_due_date(t, current.date()),
            current,
        )

    def set_daily_reminder(self, enabled: bool, at: time | None = None) -> bool:
        self._settings.daily_reminder_enabled = enabled
        if at is not None:
            self._settings.daily_reminder_time = at
        return self._notifications.schedule_daily_reminder(
            enabled, self._settings.daily_reminder_time, self._clock()
        )

    # ── Summaries ─────────────────────────────────────────────────────────────

    def monthly_summary(self, month: date | None = None) -> MonthlySummary:
        ref = month or self._clock().date()
        expenses = self._tx.get_monthly_total(ref, "expense")
        income = self._tx.get_monthly_total(ref, "income")
        budget = self._budget.get_monthly_budget()
        return MonthlySummary(
            month=ref,
            expenses=expenses,
            income=income,
            budget=budget,
            progress=self._budget.progress(expenses, budget),
            is_over_budget=budget > 0 and expenses > budget,
            expenses_by_category=self._by_category(ref, "expense"),
            income_by_category=self._by_category(ref, "income"),
        )

    def _by_category(self, month: date, type_: str) -> list[tuple[Category, Decimal]]:
        totals = self._tx.get_totals_by_category(month, type_)
        rows = []
        for category_id, amount in totals.items():
            category = self._categories.get_by_id(category_id)
            if category:
                rows.append((category, amount))
        return sorted(rows, key=lambda r: r[1], reverse=True)

    # ── Reset ─────────────────────────────────────────────────────────────────

    def reset_all_data(self):
        """Erase transactions, categories (defaults restored), templates,
        budget, notification preferences and alert state."""
        self._notifications.cancel_all()
        self._tx.delete_all()
        self._categories.reset()
        self._recurring.clear()
        self._budget.clear_monthly_budget()
        self._budget.clear_all_state()
        self._settings.reset()
        logger.info("All data reset")
        self._emit("data_reset", None)
