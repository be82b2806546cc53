import logging
import sqlite3
from datetime import date
from decimal import Decimal
from models.alert import BudgetAlert, budget_exceeded, threshold_crossed
from models.budget_state import BudgetNotificationState
from database.budget_state_dao import BudgetStateDAO
from database.db_manager import DatabaseManager
from database.transaction_dao import TransactionDAO
from utils.constants import MONTHLY_BUDGET_KEY
from utils.currency import parse_amount
from utils.date_helpers import month_bounds, month_key, today

logger = logging.getLogger(__name__)

ONE = Decimal("1")


class BudgetService:
    """Monthly budget figure plus the threshold alert state machine.

    Each (year, month) carries two flags, threshold_notified and
    budget_notified. An evaluation fires at most one alert, sets only the
    flag of the alert it fired, and clears both flags whenever progress is
    below the threshold so later crossings fire again.
    """

    def __init__(self, db: DatabaseManager, state_dao: BudgetStateDAO, tx_dao: TransactionDAO):
        self._db = db
        self._state_dao = state_dao
        self._tx_dao = tx_dao
        self._fallback: dict[tuple[int, int], BudgetNotificationState] = {}

    # ── Budget figure ─────────────────────────────────────────────────────────

    def get_monthly_budget(self) -> Decimal:
        raw = self._db.get_setting(MONTHLY_BUDGET_KEY, "0")
        try:
            return parse_amount(raw)
        except ValueError:
            logger.warning("Stored monthly budget %r is invalid, using 0", raw)
            return Decimal("0")

    def set_monthly_budget(self, amount) -> Decimal:
        amount = parse_amount(amount)
        if amount < 0:
            raise ValueError("Budget must be non-negative.")
        self._db.set_setting(MONTHLY_BUDGET_KEY, str(amount))
        return amount

    def clear_monthly_budget(self):
        self._db.delete_setting(MONTHLY_BUDGET_KEY)

    def current_spending(self, ref: date | None = None) -> Decimal:
        start, end = month_bounds(ref or today())
        return self._tx_dao.get_total(start, end, "expense")

    def progress(self, spending: Decimal, budget: Decimal) -> Decimal:
        """Spending / budget, capped at 1 for display; 0 without a budget."""
        if budget <= 0:
            return Decimal("0")
        return min(spending / budget, ONE)

    # ── Threshold tracker ─────────────────────────────────────────────────────

    def evaluate(
        self,
        current_spending: Decimal,
        budget: Decimal,
        threshold,
        month: tuple[int, int],
        enabled: bool = True,
    ) -> BudgetAlert | None:
        """Return the alert to dispatch for this spending level, if any."""
        if not enabled or budget <= 0:
            return None

        threshold = parse_amount(threshold)
        progress = current_spending / budget
        state = self._load_state(month)

        if progress < threshold:
            state.threshold_notified = False
            state.budget_notified = False

        crossed_threshold = progress >= threshold and not state.threshold_notified
        exceeded_budget = progress >= ONE and not state.budget_notified

        alert = None
        if exceeded_budget:
            alert = budget_exceeded(progress)
            state.budget_notified = True
        elif crossed_threshold:
            alert = threshold_crossed(progress)
            state.threshold_notified = True

        state.progress = progress
        self._save_state(state)

        if alert:
            logger.info("Budget alert %s at %.2f for %d-%02d", alert.kind, progress, *month)
        return alert

    def get_state(self, month: tuple[int, int]) -> BudgetNotificationState:
        return self._load_state(month)

    def reset_current_month(self, ref: date | None = None):
        """Settings-change hook: re-arm both alerts for the current month."""
        year, month = month_key(ref or today())
        cached = self._fallback.get((year, month))
        if cached:
            cached.threshold_notified = False
            cached.budget_notified = False
        try:
            self._state_dao.reset_flags(year, month)
        except sqlite3.Error as exc:
            logger.error("Could not reset budget alert flags: %s", exc)

    def sweep_stale(self, ref: date | None = None) -> int:
        """Drop stored alert state for every month but the current one."""
        current = month_key(ref or today())
        self._fallback = {k: v for k, v in self._fallback.items() if k == current}
        try:
            removed = self._state_dao.delete_all_except(*current)
        except sqlite3.Error as exc:
            logger.error("Budget state sweep failed: %s", exc)
            return 0
        if removed:
            logger.debug("Swept %d stale budget state key(s)", removed)
        return removed

    def clear_all_state(self):
        self._fallback.clear()
        self._state_dao.delete_all()

    def _load_state(self, month: tuple[int, int]) -> BudgetNotificationState:
        try:
            return self._state_dao.get(*month)
        except sqlite3.Error as exc:
            logger.warning("Budget state unavailable, using in-memory copy: %s", exc)
            return self._fallback.get(month) or BudgetNotificationState(*month)

    def _save_state(self, state: BudgetNotificationState):
        self._fallback[state.key] = state
        try:
            self._state_dao.save(state)
        except sqlite3.Error as exc:
            logger.error("Could not save budget alert state: %s", exc)
