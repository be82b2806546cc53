from datetime import date, datetime
from decimal import Decimal
from models.transaction import Transaction
from database.category_dao import CategoryDAO
from database.transaction_dao import TransactionDAO
from utils.constants import TRANSACTION_TYPES
from utils.currency import parse_amount
from utils.date_helpers import day_bounds, month_bounds


class TransactionService:
    def __init__(self, tx_dao: TransactionDAO, category_dao: CategoryDAO):
        self._dao = tx_dao
        self._category_dao = category_dao

    def get_all(self) -> list[Transaction]:
        return self._dao.get_all()

    def get_by_id(self, tx_id: int) -> Transaction | None:
        return self._dao.get_by_id(tx_id)

    def get_for_month(
        self,
        month: date,
        type_filter: str | None = None,
        category_id: int | None = None,
    ) -> list[Transaction]:
        start, end = month_bounds(month)
        return self._dao.get_in_range(start, end, type_filter, category_id)

    def get_daily_total(self, day: date, type_filter: str | None = None) -> Decimal:
        start, end = day_bounds(day)
        return self._dao.get_total(start, end, type_filter)

    def get_monthly_total(self, month: date, type_filter: str | None = None) -> Decimal:
        start, end = month_bounds(month)
        return self._dao.get_total(start, end, type_filter)

    def get_totals_by_category(self, month: date, type_filter: str) -> dict[int, Decimal]:
        start, end = month_bounds(month)
        return self._dao.get_totals_by_category(start, end, type_filter)

    def create(
        self,
        type_: str,
        amount,
        category_id: int,
        date: datetime,
        note: str | None = None,
    ) -> Transaction:
        amount = self._validate(type_, amount, category_id)
        return self._dao.create(
            type_=type_,
            amount=amount,
            category_id=category_id,
            date=date,
            note=note or None,
        )

    def update(
        self,
        tx_id: int,
        type_: str,
        amount,
        category_id: int,
        date: datetime,
        note: str | None = None,
    ) -> Transaction:
        amount = self._validate(type_, amount, category_id)
        updated = self._dao.update(tx_id, type_, amount, category_id, date, note or None)
        if updated is None:
            raise ValueError(f"No transaction with id {tx_id}.")
        return updated

    def delete(self, tx_id: int):
        self._dao.delete(tx_id)

    def delete_all(self):
        self._dao.delete_all()

    def _validate(self, type_: str, amount, category_id: int) -> Decimal:
        if type_ not in TRANSACTION_TYPES:
            raise ValueError(f"Invalid type: {type_}")
        amount = parse_amount(amount)
        if amount <= 0:
            raise ValueError("Amount must be positive.")
        if self._category_dao.get_by_id(category_id) is None:
            raise ValueError(f"Unknown category: {category_id}")
        return amount
