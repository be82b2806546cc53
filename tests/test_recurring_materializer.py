from datetime import date, datetime
from decimal import Decimal

from models.recurring_template import RecurringTemplate
from models.transaction import Transaction
from services.recurring_service import (
    process_recurring_templates,
    should_process,
    target_date,
)


def netflix(**overrides) -> RecurringTemplate:
    fields = dict(
        name="Netflix",
        amount=Decimal("15.00"),
        category_id=3,
        day_of_month=5,
        type="expense",
        is_active=True,
        last_processed_date=None,
    )
    fields.update(overrides)
    return RecurringTemplate(**fields)


def saved(tx: Transaction, tx_id: int) -> Transaction:
    tx.id = tx_id
    return tx


class TestDayClamping:
    def test_day_above_range_is_clamped_to_31(self):
        assert netflix(day_of_month=45).day_of_month == 31

    def test_day_below_range_is_clamped_to_1(self):
        assert netflix(day_of_month=0).day_of_month == 1
        assert netflix(day_of_month=-7).day_of_month == 1

    def test_day_in_range_is_kept(self):
        assert netflix(day_of_month=17).day_of_month == 17


class TestShouldProcess:
    def test_never_processed_waits_for_day(self):
        assert not should_process(netflix(), date(2025, 3, 4))
        assert should_process(netflix(), date(2025, 3, 5))
        assert should_process(netflix(), date(2025, 3, 20))

    def test_processed_this_month_is_skipped(self):
        t = netflix(last_processed_date=date(2025, 3, 5))
        assert not should_process(t, date(2025, 3, 28))

    def test_processed_last_month_waits_for_day_then_fires(self):
        t = netflix(last_processed_date=date(2025, 3, 5))
        assert not should_process(t, date(2025, 4, 4))
        assert should_process(t, date(2025, 4, 5))

    def test_same_month_number_in_another_year_fires(self):
        t = netflix(last_processed_date=date(2024, 3, 5))
        assert should_process(t, date(2025, 3, 5))

    def test_year_rollover(self):
        t = netflix(last_processed_date=date(2024, 12, 5))
        assert should_process(t, date(2025, 1, 6))

    def test_inactive_is_never_processed(self):
        assert not should_process(netflix(is_active=False), date(2025, 3, 10))


class TestEndToEnd:
    def test_netflix_materializes_once_on_march_5(self):
        template = netflix()
        today = date(2025, 3, 5)

        new, updated = process_recurring_templates([template], [], today)

        assert len(new) == 1
        tx = new[0]
        assert tx.date == datetime(2025, 3, 5)
        assert tx.note == "Netflix"
        assert tx.amount == Decimal("15.00")
        assert tx.type == "expense"
        assert tx.category_id == 3
        assert tx.source_template_id == template.id
        assert updated[0].last_processed_date == today

        again, updated_again = process_recurring_templates(updated, [saved(tx, 1)], today)
        assert again == []
        assert updated_again[0].last_processed_date == today

    def test_repeated_calls_in_month_create_at_most_one(self):
        templates = [netflix()]
        existing = []
        created = 0
        for day in (5, 6, 6, 17, 31):
            new, templates = process_recurring_templates(templates, existing, date(2025, 3, day))
            existing += [saved(tx, len(existing) + 1) for tx in new]
            created += len(new)
        assert created == 1

    def test_next_month_produces_a_second_instance(self):
        new, templates = process_recurring_templates([netflix()], [], date(2025, 3, 5))
        existing = [saved(new[0], 1)]

        none, templates = process_recurring_templates(templates, existing, date(2025, 4, 4))
        assert none == []

        april, templates = process_recurring_templates(templates, existing, date(2025, 4, 5))
        assert len(april) == 1
        assert april[0].date == datetime(2025, 4, 5)
        assert templates[0].last_processed_date == date(2025, 4, 5)

    def test_template_added_after_its_day_is_processed_immediately(self):
        new, _ = process_recurring_templates([netflix(day_of_month=2)], [], date(2025, 3, 20))
        assert len(new) == 1
        assert new[0].date == datetime(2025, 3, 2)

    def test_inputs_are_not_mutated(self):
        template = netflix()
        process_recurring_templates([template], [], date(2025, 3, 5))
        assert template.last_processed_date is None

    def test_inactive_template_left_untouched(self):
        template = netflix(is_active=False)
        new, updated = process_recurring_templates([template], [], date(2025, 3, 5))
        assert new == []
        assert updated == [template]


class TestExistingMatches:
    def _manual(self, note, **overrides):
        fields = dict(
            id=10, type="expense", amount=Decimal("15.00"), category_id=3,
            date=datetime(2025, 3, 1, 12), note=note,
        )
        fields.update(overrides)
        return Transaction(**fields)

    def test_unlinked_transaction_with_name_in_note_satisfies(self):
        existing = [self._manual("Netflix family plan")]
        new, updated = process_recurring_templates([netflix()], existing, date(2025, 3, 5))
        assert new == []
        assert updated[0].last_processed_date == date(2025, 3, 5)

    def test_unlinked_transaction_needs_every_field_to_match(self):
        near_misses = [
            self._manual("Netflix", amount=Decimal("15.01")),
            self._manual("Netflix", category_id=4),
            self._manual("Netflix", type="income"),
            self._manual("netflix"),
            self._manual(None),
        ]
        for tx in near_misses:
            new, _ = process_recurring_templates([netflix()], [tx], date(2025, 3, 5))
            assert len(new) == 1, tx

    def test_match_outside_current_month_is_ignored(self):
        existing = [self._manual("Netflix", date=datetime(2025, 2, 5))]
        new, _ = process_recurring_templates([netflix()], existing, date(2025, 3, 5))
        assert len(new) == 1

    def test_linked_transaction_survives_template_rename(self):
        template = netflix(last_processed_date=None)
        linked = self._manual("Netflix", source_template_id=template.id)
        renamed = RecurringTemplate(
            id=template.id, name="Streaming", amount=template.amount,
            category_id=template.category_id, day_of_month=5,
        )
        new, _ = process_recurring_templates([renamed], [linked], date(2025, 3, 5))
        assert new == []

    def test_transaction_linked_to_another_template_does_not_satisfy(self):
        linked = self._manual("Netflix", source_template_id="someone-else")
        new, _ = process_recurring_templates([netflix()], [linked], date(2025, 3, 5))
        assert len(new) == 1

    def test_two_identical_templates_each_materialize(self):
        first, second = netflix(), netflix()
        new, _ = process_recurring_templates([first, second], [], date(2025, 3, 5))
        assert {tx.source_template_id for tx in new} == {first.id, second.id}


class TestTargetDate:
    def test_existing_day_is_used(self):
        assert target_date(netflix(day_of_month=28), date(2025, 2, 28)) == datetime(2025, 2, 28)

    def test_missing_day_falls_back_to_today(self):
        assert target_date(netflix(day_of_month=31), date(2025, 4, 30)) == datetime(2025, 4, 30)
        assert target_date(netflix(day_of_month=30), date(2025, 2, 28)) == datetime(2025, 2, 28)

    def test_day_31_template_does_not_fire_in_a_30_day_month(self):
        template = netflix(day_of_month=31, last_processed_date=date(2025, 3, 31))
        for day in range(1, 31):
            new, _ = process_recurring_templates([template], [], date(2025, 4, day))
            assert new == []
