from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Optional
from database.db_manager import DatabaseManager
from models.transaction import Transaction
from utils.date_helpers import format_datetime, parse_datetime


class TransactionDAO:
    """Transaction store. Amounts are persisted as decimal text, dates as
    'YYYY-MM-DD HH:MM:SS' so string comparison orders chronologically."""

    def __init__(self, db: DatabaseManager):
        self._db = db

    def _row_to_model(self, row) -> Transaction:
        return Transaction(
            id=row["id"],
            type=row["type"],
            amount=Decimal(row["amount"]),
            category_id=row["category_id"],
            date=parse_datetime(row["date"]),
            note=row["note"],
            category_name=row["category_name"] if "category_name" in row.keys() else "",
            source_template_id=row["source_template_id"],
            created_at=parse_datetime(row["created_at"]),
            updated_at=parse_datetime(row["updated_at"]),
        )

    def _select(self) -> str:
        return """
            SELECT t.*,
                   COALESCE(c.name, '') AS category_name
            FROM transactions t
            LEFT JOIN categories c ON t.category_id = c.id
        """

    def get_all(self) -> list[Transaction]:
        conn = self._db.get_connection()
        rows = conn.execute(
            self._select() + " ORDER BY t.date DESC, t.id DESC"
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    def get_by_id(self, tx_id: int) -> Optional[Transaction]:
        conn = self._db.get_connection()
        row = conn.execute(
            self._select() + " WHERE t.id = ?", (tx_id,)
        ).fetchone()
        return self._row_to_model(row) if row else None

    def get_in_range(
        self,
        start: datetime,
        end: datetime,
        type_filter: str | None = None,
        category_id: int | None = None,
    ) -> list[Transaction]:
        """Transactions with start <= date < end, newest first."""
        conn = self._db.get_connection()
        sql = self._select() + " WHERE t.date >= ? AND t.date < ?"
        params: list = [format_datetime(start), format_datetime(end)]

        if type_filter:
            sql += " AND t.type = ?"
            params.append(type_filter)
        if category_id is not None:
            sql += " AND t.category_id = ?"
            params.append(category_id)

        sql += " ORDER BY t.date DESC, t.id DESC"
        rows = conn.execute(sql, params).fetchall()
        return [self._row_to_model(r) for r in rows]

    def count_for_category(self, category_id: int) -> int:
        conn = self._db.get_connection()
        return conn.execute(
            "SELECT COUNT(*) FROM transactions WHERE category_id = ?", (category_id,)
        ).fetchone()[0]

    def get_total(self, start: datetime, end: datetime, type_filter: str | None = None) -> Decimal:
        """Exact decimal sum over [start, end); summed in Python, not SQL REAL."""
        return sum(
            (tx.amount for tx in self.get_in_range(start, end, type_filter)),
            Decimal("0"),
        )

    def get_totals_by_category(
        self, start: datetime, end: datetime, type_filter: str
    ) -> dict[int, Decimal]:
        totals: dict[int, Decimal] = defaultdict(Decimal)
        for tx in self.get_in_range(start, end, type_filter):
            totals[tx.category_id] += tx.amount
        return dict(totals)

    def create(
        self,
        type_: str,
        amount: Decimal,
        category_id: int,
        date: datetime,
        note: str | None = None,
        source_template_id: str | None = None,
    ) -> Transaction:
        conn = self._db.get_connection()
        stamp = format_datetime(datetime.now())
        cursor = conn.execute(
            """INSERT INTO transactions
               (type, amount, category_id, note, date, source_template_id,
                created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                type_, str(amount), category_id, note, format_datetime(date),
                source_template_id, stamp, stamp,
            ),
        )
        conn.commit()
        return self.get_by_id(cursor.lastrowid)

    def update(
        self,
        tx_id: int,
        type_: str,
        amount: Decimal,
        category_id: int,
        date: datetime,
        note: str | None = None,
    ) -> Optional[Transaction]:
        conn = self._db.get_connection()
        conn.execute(
            """UPDATE transactions
               SET type=?, amount=?, category_id=?, note=?, date=?, updated_at=?
               WHERE id=?""",
            (type_, str(amount), category_id, note, format_datetime(date),
             format_datetime(datetime.now()), tx_id),
        )
        conn.commit()
        return self.get_by_id(tx_id)

    def delete(self, tx_id: int):
        conn = self._db.get_connection()
        conn.execute("DELETE FROM transactions WHERE id = ?", (tx_id,))
        conn.commit()

    def delete_all(self):
        conn = self._db.get_connection()
        conn.execute("DELETE FROM transactions")
        conn.commit()
