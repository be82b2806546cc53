import dataclasses
import logging
import sqlite3
from datetime import date, datetime
from decimal import Decimal
from models.recurring_template import RecurringTemplate
from models.transaction import Transaction
from database.category_dao import CategoryDAO
from database.recurring_template_dao import RecurringTemplateDAO
from database.transaction_dao import TransactionDAO
from utils.constants import TRANSACTION_TYPES
from utils.currency import parse_amount
from utils.date_helpers import (
    clamp_day_to_month, compose_date, month_bounds, month_key, start_of_day, today,
)

logger = logging.getLogger(__name__)


# ── Materializer ──────────────────────────────────────────────────────────────


def should_process(template: RecurringTemplate, ref: date) -> bool:
    """True when the template has not produced this month's instance yet and
    its day of month has been reached."""
    if not template.is_active:
        return False
    if ref.day < template.day_of_month:
        return False
    last = template.last_processed_date
    if last is None:
        return True
    return month_key(last) != month_key(ref)


def target_date(template: RecurringTemplate, ref: date) -> datetime:
    """Date the materialized transaction is booked on.

    When day_of_month does not exist in ref's month (31 in April) this falls
    back to ref itself rather than the month's last day.
    """
    composed = compose_date(ref.year, ref.month, template.day_of_month)
    return start_of_day(composed or ref)


def satisfies(template: RecurringTemplate, tx: Transaction) -> bool:
    """Whether an existing transaction already accounts for the template.

    Transactions carrying a source_template_id match only their own template.
    Transactions without one (entered by hand, or created before the link
    existed) fall back to matching category, amount, type and a note that
    contains the template name. A hand-entered note mentioning the name can
    therefore still suppress that month's instance.
    """
    if tx.source_template_id is not None:
        return tx.source_template_id == template.id
    return (
        tx.category_id == template.category_id
        and tx.amount == template.amount
        and tx.type == template.type
        and tx.note is not None
        and template.name in tx.note
    )


def process_recurring_templates(
    templates: list[RecurringTemplate],
    existing_transactions: list[Transaction],
    ref: date,
) -> tuple[list[Transaction], list[RecurringTemplate]]:
    """
    Decide which templates owe a transaction for ref's month.
    Returns (new unsaved transactions, full template list with advanced
    last_processed_date markers). Inputs are not mutated.
    """
    month_start, month_end = month_bounds(ref)
    this_month = [
        tx for tx in existing_transactions
        if tx.date is not None and month_start <= tx.date < month_end
    ]
    new_transactions: list[Transaction] = []
    updated: list[RecurringTemplate] = []

    for template in templates:
        if not should_process(template, ref):
            updated.append(template)
            continue

        already = any(satisfies(template, tx) for tx in this_month + new_transactions)
        if not already:
            new_transactions.append(Transaction(
                id=None,
                type=template.type,
                amount=template.amount,
                category_id=template.category_id,
                date=target_date(template, ref),
                note=template.name,
                source_template_id=template.id,
            ))
        updated.append(dataclasses.replace(template, last_processed_date=ref))

    return new_transactions, updated


# ── Template management ───────────────────────────────────────────────────────


class RecurringService:
    def __init__(
        self, template_dao: RecurringTemplateDAO, tx_dao: TransactionDAO, category_dao: CategoryDAO
    ):
        self._dao = template_dao
        self._tx_dao = tx_dao
        self._category_dao = category_dao
        self._templates: list[RecurringTemplate] = []

    def load(self) -> list[RecurringTemplate]:
        try:
            self._templates = self._dao.load_all()
        except sqlite3.Error as exc:
            logger.error("Could not load recurring templates: %s", exc)
            self._templates = []
        return self.get_all()

    def get_all(self) -> list[RecurringTemplate]:
        return list(self._templates)

    def get_active(self) -> list[RecurringTemplate]:
        return [t for t in self._templates if t.is_active]

    def get_by_id(self, template_id: str) -> RecurringTemplate | None:
        for t in self._templates:
            if t.id == template_id:
                return t
        return None

    def add(
        self,
        name: str,
        amount,
        category_id: int,
        day_of_month: int,
        type_: str = "expense",
        is_active: bool = True,
    ) -> RecurringTemplate:
        amount = self._validate(name, amount, type_, category_id)
        template = RecurringTemplate(
            name=name.strip(),
            amount=amount,
            category_id=category_id,
            day_of_month=day_of_month,
            type=type_,
            is_active=is_active,
        )
        self._templates.append(template)
        self._persist()
        return template

    def update(
        self,
        template_id: str,
        name: str,
        amount,
        category_id: int,
        day_of_month: int,
        type_: str,
        is_active: bool = True,
    ) -> RecurringTemplate | None:
        """Replace a template's user-editable fields. Returns None for unknown ids."""
        amount = self._validate(name, amount, type_, category_id)
        for i, current in enumerate(self._templates):
            if current.id != template_id:
                continue
            updated = RecurringTemplate(
                id=current.id,
                name=name.strip(),
                amount=amount,
                category_id=category_id,
                day_of_month=day_of_month,
                type=type_,
                is_active=is_active,
                created_at=current.created_at,
                updated_at=datetime.now(),
                last_processed_date=current.last_processed_date,
            )
            self._templates[i] = updated
            self._persist()
            return updated
        return None

    def toggle_active(self, template_id: str) -> RecurringTemplate | None:
        for i, current in enumerate(self._templates):
            if current.id == template_id:
                updated = dataclasses.replace(
                    current, is_active=not current.is_active, updated_at=datetime.now()
                )
                self._templates[i] = updated
                self._persist()
                return updated
        return None

    def delete(self, template_id: str) -> bool:
        """Remove a template. Unknown ids are a no-op; returns whether one was removed."""
        before = len(self._templates)
        self._templates = [t for t in self._templates if t.id != template_id]
        if len(self._templates) == before:
            logger.debug("No recurring template with id %s", template_id)
            return False
        self._persist()
        return True

    def clear(self):
        self._templates = []
        try:
            self._dao.clear()
        except sqlite3.Error as exc:
            logger.error("Could not clear recurring templates: %s", exc)

    def process_due(self, reference_date: date | None = None) -> list[Transaction]:
        """
        Materialize this month's instance of every due template.
        Never raises: store failures are logged and the affected templates keep
        their previous marker so the next call retries.
        """
        ref = reference_date or today()
        start, end = month_bounds(ref)
        try:
            existing = self._tx_dao.get_in_range(start, end)
        except sqlite3.Error as exc:
            logger.error("Skipping recurring processing, transactions unavailable: %s", exc)
            return []

        new_transactions, updated = process_recurring_templates(self._templates, existing, ref)
        if updated == self._templates:
            return []

        created: list[Transaction] = []
        failed: set[str] = set()
        for tx in new_transactions:
            try:
                created.append(self._tx_dao.create(
                    type_=tx.type,
                    amount=tx.amount,
                    category_id=tx.category_id,
                    date=tx.date,
                    note=tx.note,
                    source_template_id=tx.source_template_id,
                ))
            except sqlite3.Error as exc:
                logger.error("Could not save recurring transaction %r: %s", tx.note, exc)
                failed.add(tx.source_template_id)

        previous = {t.id: t for t in self._templates}
        self._templates = [previous[t.id] if t.id in failed else t for t in updated]
        self._persist()

        if created:
            logger.info("Materialized %d recurring transaction(s) for %s", len(created), ref)
        return created

    def next_due_date(self, template: RecurringTemplate, after: date | None = None) -> date:
        """First occurrence strictly after `after`, day clamped to the month's length."""
        ref = after or today()
        day = clamp_day_to_month(ref.year, ref.month, template.day_of_month)
        if ref.day < day:
            return date(ref.year, ref.month, day)
        y, m = (ref.year + 1, 1) if ref.month == 12 else (ref.year, ref.month + 1)
        return date(y, m, clamp_day_to_month(y, m, template.day_of_month))

    def _persist(self) -> bool:
        try:
            self._dao.save_all(self._templates)
            return True
        except sqlite3.Error as exc:
            logger.error("Could not save recurring templates: %s", exc)
            return False

    def _validate(self, name, amount, type_, category_id) -> Decimal:
        if not name or not name.strip():
            raise ValueError("Name cannot be empty.")
        if type_ not in TRANSACTION_TYPES:
            raise ValueError("Type must be expense or income.")
        amount = parse_amount(amount)
        if amount <= 0:
            raise ValueError("Amount must be positive.")
        if self._category_dao.get_by_id(category_id) is None:
            raise ValueError(f"Unknown category: {category_id}")
        return amount
