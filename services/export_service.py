"""Export transactions as CSV (Date, Type, Category, Amount, Note, Created At),
newest first.
"""
import csv
import io
import logging
import os
from datetime import date, datetime
from models.transaction import Transaction
from services.category_service import CategoryService
from services.transaction_service import TransactionService
from utils.currency import format_currency
from utils.date_helpers import format_datetime, format_month, now

logger = logging.getLogger(__name__)

CSV_HEADER = ["Date", "Type", "Category", "Amount", "Note", "Created At"]


class ExportService:
    def __init__(self, tx_service: TransactionService, category_service: CategoryService, symbol: str = "$"):
        self._tx = tx_service
        self._categories = category_service
        self._symbol = symbol

    def generate_csv(self, month: date | None = None) -> str:
        """CSV text for every transaction, or only those in month's month."""
        transactions = self._tx.get_for_month(month) if month else self._tx.get_all()
        transactions = sorted(transactions, key=lambda t: t.date, reverse=True)

        names = {}
        buf = io.StringIO()
        writer = csv.writer(buf, lineterminator="\n")
        writer.writerow(CSV_HEADER)
        for tx in transactions:
            if tx.category_id not in names:
                names[tx.category_id] = self._categories.name_for(tx.category_id)
            writer.writerow(self._row(tx, names[tx.category_id]))
        return buf.getvalue()

    def export_csv(self, folder: str, month: date | None = None, when: datetime | None = None) -> str:
        """Write the CSV into folder and return the file path."""
        os.makedirs(folder, exist_ok=True)
        path = os.path.join(folder, self.file_name(month, when))
        content = self.generate_csv(month)
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        logger.info("Exported transactions to %s", path)
        return path

    @staticmethod
    def file_name(month: date | None = None, when: datetime | None = None) -> str:
        if month:
            return f"Pockets_Export_{format_month(month)}.csv"
        return f"Pockets_Export_{(when or now()).strftime('%Y-%m-%d_%H%M%S')}.csv"

    def _row(self, tx: Transaction, category_name: str) -> list[str]:
        return [
            format_datetime(tx.date),
            tx.type.capitalize(),
            category_name,
            format_currency(tx.amount, self._symbol),
            tx.note or "",
            format_datetime(tx.created_at) if tx.created_at else "",
        ]
