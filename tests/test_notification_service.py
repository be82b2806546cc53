from datetime import date, datetime, time
from decimal import Decimal

import pytest

from models.alert import budget_exceeded, threshold_crossed
from models.recurring_template import RecurringTemplate
from services.notification_service import budget_alert_message, subscription_id
from utils.constants import DAILY_REMINDER_ID, SUBSCRIPTION_PREFIX

NOW = datetime(2025, 3, 5, 10, 30)


@pytest.fixture
def notifications(services):
    svc = services["notifications"]
    svc.request_authorization(True)
    return svc


def gym(**overrides) -> RecurringTemplate:
    fields = dict(name="Gym", amount=Decimal("29.99"), category_id=1, day_of_month=15)
    fields.update(overrides)
    return RecurringTemplate(**fields)


class TestMessages:
    def test_threshold_warning(self):
        title, body = budget_alert_message(
            threshold_crossed(Decimal("0.85")), Decimal("85"), Decimal("100")
        )
        assert title == "Budget Warning"
        assert body == "You've spent 85% of your monthly budget"

    def test_exceeded_with_overage(self):
        title, body = budget_alert_message(
            budget_exceeded(Decimal("1.2")), Decimal("120"), Decimal("100")
        )
        assert title == "Budget Exceeded"
        assert body == "You've spent $120.00 of your $100.00 budget ($20.00 over)"

    def test_exactly_at_budget(self):
        _, body = budget_alert_message(budget_exceeded(Decimal("1")), Decimal("100"), Decimal("100"))
        assert body == "You've reached 100% of your monthly budget"


class TestScheduling:
    def test_unauthorized_requests_are_skipped(self, services):
        svc = services["notifications"]
        assert svc.is_authorized is False
        assert svc.schedule_at(NOW, "t", "b", "x") is False
        assert svc.pending() == []

    def test_same_id_replaces_earlier_request(self, notifications):
        notifications.schedule_at(NOW, "first", "b", "x")
        notifications.schedule_at(NOW, "second", "b", "x")
        assert [n.title for n in notifications.pending()] == ["second"]

    def test_cancel_by_prefix(self, notifications):
        notifications.schedule_at(NOW, "a", "b", "subscription_1")
        notifications.schedule_at(NOW, "a", "b", "subscription_1_reminder")
        notifications.schedule_at(NOW, "a", "b", "subscription_2")
        notifications.schedule_at(NOW, "a", "b", "other")

        assert notifications.cancel("subscription_1") == 2
        assert sorted(n.id for n in notifications.pending()) == ["other", "subscription_2"]

    def test_prefix_wildcards_are_literal(self, notifications):
        notifications.schedule_at(NOW, "a", "b", "subscriptionX1")
        assert notifications.cancel(SUBSCRIPTION_PREFIX) == 0

    def test_deliver_due_marks_one_shot_requests(self, notifications):
        notifications.schedule_at(NOW, "now", "b", "a")
        notifications.schedule_at(datetime(2025, 3, 6), "later", "b", "b")

        delivered = notifications.deliver_due(NOW)

        assert [n.id for n in delivered] == ["a"]
        assert [n.id for n in notifications.pending()] == ["b"]
        assert [n.id for n in notifications.delivered()] == ["a"]
        assert notifications.deliver_due(NOW) == []

    def test_clear_delivered(self, notifications):
        notifications.schedule_at(NOW, "now", "b", "a")
        notifications.deliver_due(NOW)
        notifications.clear_delivered()
        assert notifications.delivered() == []


class TestDailyReminder:
    def test_scheduled_for_today_when_still_ahead(self, notifications):
        assert notifications.schedule_daily_reminder(True, time(20, 0), NOW)
        (pending,) = notifications.pending()
        assert pending.id == DAILY_REMINDER_ID
        assert pending.fire_at == datetime(2025, 3, 5, 20, 0)
        assert pending.repeats == "daily"

    def test_rolls_to_tomorrow_when_time_passed(self, notifications):
        notifications.schedule_daily_reminder(True, time(8, 0), NOW)
        assert notifications.pending()[0].fire_at == datetime(2025, 3, 6, 8, 0)

    def test_disabling_cancels(self, notifications):
        notifications.schedule_daily_reminder(True, time(20, 0), NOW)
        assert notifications.schedule_daily_reminder(False, time(20, 0), NOW) is False
        assert notifications.pending() == []

    def test_repeating_delivery_moves_to_next_day(self, notifications):
        notifications.schedule_daily_reminder(True, time(20, 0), NOW)

        delivered = notifications.deliver_due(datetime(2025, 3, 5, 21, 0))

        assert len(delivered) == 1
        assert delivered[0].title == "Track Your Expenses"
        (pending,) = notifications.pending()
        assert pending.id == DAILY_REMINDER_ID
        assert pending.fire_at == datetime(2025, 3, 6, 20, 0)

    def test_missed_days_collapse_into_one_delivery(self, notifications):
        notifications.schedule_daily_reminder(True, time(20, 0), NOW)
        delivered = notifications.deliver_due(datetime(2025, 3, 9, 12, 0))
        assert len(delivered) == 1
        assert notifications.pending()[0].fire_at == datetime(2025, 3, 9, 20, 0)


class TestSubscriptionAlerts:
    def test_reminder_and_due_day_alert(self, notifications):
        template = gym()
        assert notifications.schedule_subscription_alert(template, True, date(2025, 3, 15), NOW) == 2

        by_id = {n.id: n for n in notifications.pending()}
        identifier = subscription_id(template)
        assert by_id[identifier + "_reminder"].fire_at == datetime(2025, 3, 14, 9, 0)
        assert by_id[identifier + "_reminder"].title == "Upcoming Subscription"
        assert by_id[identifier].fire_at == datetime(2025, 3, 15, 9, 0)
        assert by_id[identifier].title == "Subscription Due Today"
        assert by_id[identifier].body == "Gym - $29.99"
        assert by_id[identifier].repeats == "monthly"

    def test_past_times_are_not_scheduled(self, notifications):
        assert notifications.schedule_subscription_alert(gym(), True, date(2025, 3, 6), NOW) == 1
        assert notifications.schedule_subscription_alert(gym(), True, date(2025, 3, 5), NOW) == 0

    def test_disabled_or_inactive_cancels_existing(self, notifications):
        template = gym()
        notifications.schedule_subscription_alert(template, True, date(2025, 3, 15), NOW)
        assert notifications.schedule_subscription_alert(template, False, date(2025, 3, 15), NOW) == 0
        assert notifications.pending() == []

        notifications.schedule_subscription_alert(template, True, date(2025, 3, 15), NOW)
        template.is_active = False
        assert notifications.schedule_subscription_alert(template, True, date(2025, 3, 15), NOW) == 0
        assert notifications.pending() == []

    def test_monthly_repeat_advances_one_month(self, notifications):
        template = gym(day_of_month=31)
        notifications.schedule_subscription_alert(template, True, date(2025, 3, 31), NOW)
        notifications.deliver_due(datetime(2025, 3, 31, 12, 0))
        remaining = {n.id: n for n in notifications.pending()}
        assert remaining[subscription_id(template)].fire_at == datetime(2025, 4, 30, 9, 0)

    def test_update_all_reschedules_active_templates(self, notifications):
        active, paused = gym(), gym(name="Old", is_active=False)
        notifications.schedule_at(NOW, "stale", "b", SUBSCRIPTION_PREFIX + "gone")

        queued = notifications.update_all_subscription_alerts(
            [active, paused], True, lambda t: date(2025, 3, 15), NOW
        )

        assert queued == 2
        assert {n.id for n in notifications.pending()} == {
            subscription_id(active), subscription_id(active) + "_reminder"
        }

    def test_update_all_disabled_clears_everything(self, notifications):
        notifications.schedule_subscription_alert(gym(), True, date(2025, 3, 15), NOW)
        assert notifications.update_all_subscription_alerts([gym()], False, lambda t: None, NOW) == 0
        assert notifications.pending() == []
