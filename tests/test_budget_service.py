import sqlite3
from datetime import date
from decimal import Decimal

import pytest

from models.alert import BUDGET_EXCEEDED, THRESHOLD_CROSSED
from utils.constants import MONTHLY_BUDGET_KEY

MARCH = (2025, 3)
BUDGET = Decimal("100")
THRESHOLD = Decimal("0.80")


@pytest.fixture
def budget(services):
    return services["budget"]


def run(budget, spendings, month=MARCH):
    """Evaluate each spending level in order; return the alert kinds (or None)."""
    kinds = []
    for spending in spendings:
        alert = budget.evaluate(Decimal(spending), BUDGET, THRESHOLD, month)
        kinds.append(alert.kind if alert else None)
    return kinds


class TestBudgetFigure:
    def test_defaults_to_zero(self, budget):
        assert budget.get_monthly_budget() == Decimal("0")

    def test_set_and_read_back_exactly(self, db, budget):
        assert budget.set_monthly_budget("1500.10") == Decimal("1500.10")
        assert db.get_setting(MONTHLY_BUDGET_KEY) == "1500.10"
        assert budget.get_monthly_budget() == Decimal("1500.10")

    def test_negative_budget_rejected(self, budget):
        with pytest.raises(ValueError):
            budget.set_monthly_budget("-1")

    def test_invalid_stored_budget_reads_as_zero(self, db, budget):
        db.set_setting(MONTHLY_BUDGET_KEY, "lots")
        assert budget.get_monthly_budget() == Decimal("0")

    def test_progress_is_capped_for_display(self, budget):
        assert budget.progress(Decimal("50"), BUDGET) == Decimal("0.5")
        assert budget.progress(Decimal("250"), BUDGET) == Decimal("1")
        assert budget.progress(Decimal("50"), Decimal("0")) == Decimal("0")


class TestThresholdTracker:
    def test_single_warning_while_above_threshold(self, budget):
        assert run(budget, ["50", "85", "90"]) == [None, THRESHOLD_CROSSED, None]

    def test_dropping_below_threshold_rearms(self, budget):
        assert run(budget, ["85", "50", "90"]) == [THRESHOLD_CROSSED, None, THRESHOLD_CROSSED]

    def test_jump_straight_past_budget_fires_exceeded_only(self, budget):
        assert run(budget, ["0", "120"]) == [None, BUDGET_EXCEEDED]

    def test_exceeded_wins_when_both_crossed(self, budget):
        alert = budget.evaluate(Decimal("100"), BUDGET, THRESHOLD, MARCH)
        assert alert.kind == BUDGET_EXCEEDED
        state = budget.get_state(MARCH)
        assert state.budget_notified is True
        assert state.threshold_notified is False

    def test_warning_follows_exceeded_on_next_evaluation(self, budget):
        assert run(budget, ["120", "120", "130"]) == [BUDGET_EXCEEDED, THRESHOLD_CROSSED, None]

    def test_warning_then_exceeded_each_fire_once(self, budget):
        assert run(budget, ["85", "101", "150"]) == [THRESHOLD_CROSSED, BUDGET_EXCEEDED, None]

    def test_disabled_alerts_do_nothing(self, budget):
        assert budget.evaluate(Decimal("500"), BUDGET, THRESHOLD, MARCH, enabled=False) is None
        assert budget.get_state(MARCH).progress is None

    def test_zero_budget_does_nothing(self, budget):
        assert budget.evaluate(Decimal("500"), Decimal("0"), THRESHOLD, MARCH) is None

    def test_months_are_independent(self, budget):
        assert run(budget, ["85"], month=(2025, 2)) == [THRESHOLD_CROSSED]
        assert run(budget, ["85"], month=MARCH) == [THRESHOLD_CROSSED]

    def test_state_is_persisted_in_settings(self, db, budget):
        budget.evaluate(Decimal("85"), BUDGET, THRESHOLD, MARCH)
        assert db.get_setting("2025_3_thresholdNotified") == "1"
        assert db.get_setting("2025_3_budgetNotified") == "0"
        assert Decimal(db.get_setting("2025_3_progress")) == Decimal("0.85")

    def test_reset_current_month_rearms_but_keeps_progress(self, budget):
        run(budget, ["85", "120"])
        budget.reset_current_month(date(2025, 3, 20))
        state = budget.get_state(MARCH)
        assert not state.threshold_notified
        assert not state.budget_notified
        assert state.progress == Decimal("1.2")
        assert run(budget, ["120"]) == [BUDGET_EXCEEDED]

    def test_store_failure_falls_back_to_memory(self, monkeypatch, budget):
        def broken(*args):
            raise sqlite3.OperationalError("database is locked")

        monkeypatch.setattr(budget._state_dao, "get", broken)
        monkeypatch.setattr(budget._state_dao, "save", broken)
        assert run(budget, ["85", "90"]) == [THRESHOLD_CROSSED, None]


class TestSweep:
    def test_only_current_month_survives(self, db, budget):
        run(budget, ["85"], month=(2024, 12))
        run(budget, ["85"], month=(2025, 2))
        run(budget, ["85"], month=MARCH)

        removed = budget.sweep_stale(date(2025, 3, 10))

        assert removed == 6
        assert budget._state_dao.stored_months() == {MARCH}
        assert db.get_setting("2025_3_thresholdNotified") == "1"

    def test_sweep_leaves_other_settings_alone(self, db, budget):
        budget.set_monthly_budget("100")
        db.set_setting("2025_budget_note", "keep")
        run(budget, ["85"], month=(2025, 2))

        budget.sweep_stale(date(2025, 3, 10))

        assert budget.get_monthly_budget() == BUDGET
        assert db.get_setting("2025_budget_note") == "keep"

    def test_clear_all_state(self, budget):
        run(budget, ["85"], month=(2025, 2))
        run(budget, ["85"], month=MARCH)
        budget.clear_all_state()
        assert budget._state_dao.stored_months() == set()
