"""Recurring template store: the whole list is serialized as one JSON value
in app_settings (load-all / save-all, never field-level)."""
import json
import logging
from datetime import datetime
from database.db_manager import DatabaseManager
from models.recurring_template import RecurringTemplate
from utils.constants import RECURRING_TEMPLATES_KEY, TRANSACTION_TYPES
from utils.currency import parse_amount
from utils.date_helpers import format_date, parse_date

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = (
    "id", "name", "amount", "category_id", "day_of_month",
    "type", "is_active", "created_at", "updated_at",
)


class CorruptTemplateData(ValueError):
    pass


class RecurringTemplateDAO:
    def __init__(self, db: DatabaseManager):
        self._db = db

    def _to_dict(self, t: RecurringTemplate) -> dict:
        return {
            "id": t.id,
            "name": t.name,
            "amount": str(t.amount),
            "category_id": t.category_id,
            "day_of_month": t.day_of_month,
            "type": t.type,
            "is_active": t.is_active,
            "created_at": t.created_at.isoformat(),
            "updated_at": t.updated_at.isoformat(),
            "last_processed_date": (
                format_date(t.last_processed_date) if t.last_processed_date else None
            ),
        }

    def _from_dict(self, data) -> RecurringTemplate:
        if not isinstance(data, dict):
            raise CorruptTemplateData(f"Template entry is not an object: {data!r}")
        missing = [f for f in _REQUIRED_FIELDS if f not in data]
        if missing:
            raise CorruptTemplateData(f"Template entry missing {', '.join(missing)}")
        if data["type"] not in TRANSACTION_TYPES:
            raise CorruptTemplateData(f"Unknown template type {data['type']!r}")

        last_raw = data.get("last_processed_date")
        last = parse_date(last_raw) if last_raw else None
        if last_raw and last is None:
            raise CorruptTemplateData(f"Bad last_processed_date {last_raw!r}")
        try:
            return RecurringTemplate(
                id=str(data["id"]),
                name=str(data["name"]),
                amount=parse_amount(data["amount"]),
                category_id=int(data["category_id"]),
                day_of_month=int(data["day_of_month"]),
                type=data["type"],
                is_active=bool(data["is_active"]),
                created_at=datetime.fromisoformat(data["created_at"]),
                updated_at=datetime.fromisoformat(data["updated_at"]),
                last_processed_date=last,
            )
        except (TypeError, ValueError) as exc:
            raise CorruptTemplateData(str(exc)) from exc

    def load_all(self) -> list[RecurringTemplate]:
        """Load every template. Malformed data discards the whole collection."""
        raw = self._db.get_setting(RECURRING_TEMPLATES_KEY, "")
        if not raw:
            return []
        try:
            payload = json.loads(raw)
            if not isinstance(payload, list):
                raise CorruptTemplateData("Stored templates are not a list")
            return [self._from_dict(entry) for entry in payload]
        except (json.JSONDecodeError, CorruptTemplateData) as exc:
            logger.warning("Recurring template data is invalid, clearing: %s", exc)
            self.clear()
            return []

    def save_all(self, templates: list[RecurringTemplate]):
        payload = json.dumps([self._to_dict(t) for t in templates])
        self._db.set_setting(RECURRING_TEMPLATES_KEY, payload)

    def clear(self):
        self._db.delete_setting(RECURRING_TEMPLATES_KEY)
