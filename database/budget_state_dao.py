import re
from decimal import Decimal, InvalidOperation
from database.db_manager import DatabaseManager
from models.budget_state import BudgetNotificationState

_STATE_KEY = re.compile(r"^(\d+)_(\d+)_(thresholdNotified|budgetNotified|progress)$")


def state_key(year: int, month: int, field: str) -> str:
    return f"{year}_{month}_{field}"


class BudgetStateDAO:
    """Persists per-month budget notification flags in the app_settings key space
    (<year>_<month>_thresholdNotified, _budgetNotified, _progress)."""

    def __init__(self, db: DatabaseManager):
        self._db = db

    def get(self, year: int, month: int) -> BudgetNotificationState:
        """Return the stored state, or a fresh all-false state when absent."""
        threshold = self._db.get_setting(state_key(year, month, "thresholdNotified"), "0")
        budget = self._db.get_setting(state_key(year, month, "budgetNotified"), "0")
        progress_raw = self._db.get_setting(state_key(year, month, "progress"), "")
        try:
            progress = Decimal(progress_raw) if progress_raw else None
        except InvalidOperation:
            progress = None
        return BudgetNotificationState(
            year=year,
            month=month,
            threshold_notified=threshold == "1",
            budget_notified=budget == "1",
            progress=progress,
        )

    def save(self, state: BudgetNotificationState) -> None:
        values = {
            state_key(state.year, state.month, "thresholdNotified"): "1" if state.threshold_notified else "0",
            state_key(state.year, state.month, "budgetNotified"): "1" if state.budget_notified else "0",
        }
        if state.progress is not None:
            values[state_key(state.year, state.month, "progress")] = str(state.progress)
        self._db.set_settings(values)

    def reset_flags(self, year: int, month: int) -> None:
        """Clear both notified flags for the month; progress is left alone."""
        self._db.set_settings({
            state_key(year, month, "thresholdNotified"): "0",
            state_key(year, month, "budgetNotified"): "0",
        })

    def stored_months(self) -> set[tuple[int, int]]:
        months = set()
        for key in self._db.get_setting_keys():
            match = _STATE_KEY.match(key)
            if match:
                months.add((int(match.group(1)), int(match.group(2))))
        return months

    def delete_all_except(self, year: int, month: int) -> int:
        """Purge every month's state except (year, month). Returns keys removed."""
        stale = []
        for key in self._db.get_setting_keys():
            match = _STATE_KEY.match(key)
            if match and (int(match.group(1)), int(match.group(2))) != (year, month):
                stale.append(key)
        conn = self._db.get_connection()
        conn.executemany("DELETE FROM app_settings WHERE key = ?", [(k,) for k in stale])
        conn.commit()
        return len(stale)

    def delete_all(self) -> None:
        conn = self._db.get_connection()
        keys = [k for k in self._db.get_setting_keys() if _STATE_KEY.match(k)]
        conn.executemany("DELETE FROM app_settings WHERE key = ?", [(k,) for k in keys])
        conn.commit()
