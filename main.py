import argparse
import logging
import os
import sys
from datetime import datetime

# Ensure project root is on sys.path when run directly
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from database.db_manager import DatabaseManager
from database.budget_state_dao import BudgetStateDAO
from database.category_dao import CategoryDAO
from database.notification_dao import NotificationDAO
from database.recurring_template_dao import RecurringTemplateDAO
from database.transaction_dao import TransactionDAO

from services.budget_service import BudgetService
from services.category_service import CategoryService
from services.expense_service import ExpenseService
from services.export_service import ExportService
from services.notification_service import NotificationService
from services.recurring_service import RecurringService
from services.settings_service import SettingsService
from services.transaction_service import TransactionService

from utils.app_config import get_db_folder, get_log_level
from utils.constants import APP_NAME
from utils.currency import format_currency, format_percent
from utils.date_helpers import friendly_month, now, parse_date, parse_month

logger = logging.getLogger(__name__)


def build_services(db: DatabaseManager, clock=now) -> dict:
    """Composition root: every DAO and service is created once, here."""
    # ── DAOs ─────────────────────────────────────────────────────────────────
    category_dao = CategoryDAO(db)
    tx_dao = TransactionDAO(db)
    template_dao = RecurringTemplateDAO(db)
    state_dao = BudgetStateDAO(db)
    notification_dao = NotificationDAO(db)

    # ── Services ─────────────────────────────────────────────────────────────
    settings = SettingsService(db)
    tx_svc = TransactionService(tx_dao, category_dao)
    category_svc = CategoryService(category_dao, tx_dao, template_dao)
    recurring_svc = RecurringService(template_dao, tx_dao, category_dao)
    budget_svc = BudgetService(db, state_dao, tx_dao)
    notification_svc = NotificationService(notification_dao, settings)
    expense_svc = ExpenseService(
        tx_service=tx_svc,
        category_service=category_svc,
        recurring_service=recurring_svc,
        budget_service=budget_svc,
        settings=settings,
        notifications=notification_svc,
        clock=clock,
    )
    export_svc = ExportService(tx_svc, category_svc)
    return {
        "settings": settings,
        "transactions": tx_svc,
        "categories": category_svc,
        "recurring": recurring_svc,
        "budget": budget_svc,
        "notifications": notification_svc,
        "expenses": expense_svc,
        "export": export_svc,
    }


def configure_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog="pockets", description=f"{APP_NAME} expense tracker")
    parser.add_argument("--today", help="Override the current date (YYYY-MM-DD)")
    parser.add_argument("--db-folder", help="Folder holding the database file")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("run", help="Process recurring items, check the budget and show a summary")
    sub.add_parser("notify", help="Show delivered notifications")
    sub.add_parser("sweep", help="Drop budget alert state for past months")
    export = sub.add_parser("export", help="Write transactions to a CSV file")
    export.add_argument("--folder", default=".", help="Destination folder (default: current)")
    export.add_argument("--month", help="Only export one month (YYYY-MM)")
    for kind in ("expense", "income"):
        quick = sub.add_parser(f"quick-add-{kind}", help=f"Quickly add an {kind}")
        quick.add_argument("amount")
        quick.add_argument("--category", help="Category id or name (default: Other)")
    return parser.parse_args(argv)


def make_clock(today_override: str | None):
    if not today_override:
        return now
    day = parse_date(today_override)
    if day is None:
        raise SystemExit(f"Invalid --today value: {today_override}")

    def clock() -> datetime:
        return datetime.combine(day, now().time())
    return clock


def print_summary(services: dict):
    summary = services["expenses"].monthly_summary()
    print(friendly_month(summary.month))
    print(f"  Expenses: {format_currency(summary.expenses)}")
    print(f"  Income:   {format_currency(summary.income)}")
    print(f"  Balance:  {format_currency(summary.balance)}")
    today_spent = services["transactions"].get_daily_total(summary.month, "expense")
    print(f"  Today:    {format_currency(today_spent)}")
    if summary.budget > 0:
        state = "over budget" if summary.is_over_budget else f"{format_percent(summary.progress)} used"
        print(f"  Budget:   {format_currency(summary.budget)} ({state})")
    for category, amount in summary.expenses_by_category:
        print(f"    {category.icon} {category.name}: {format_currency(amount)}")


def main(argv=None):
    # ── Bootstrap: read DB folder and log level from pre-DB config ────────────
    args = parse_args(argv)
    configure_logging(get_log_level())
    clock = make_clock(args.today)

    # ── Database ─────────────────────────────────────────────────────────────
    db = DatabaseManager.open(db_folder=args.db_folder or get_db_folder())
    services = build_services(db, clock)
    expenses = services["expenses"]
    command = args.command or "run"

    try:
        if command.startswith("quick-add-"):
            kind = command.removeprefix("quick-add-")
            try:
                tx = expenses.quick_add(kind, args.amount, args.category)
            except ValueError as exc:
                print(f"Invalid input: {exc}", file=sys.stderr)
                return 2
            if tx is None:
                print("Nothing added (amount must be positive).")
            else:
                print(f"Added {kind} of {format_currency(tx.amount)} to {tx.category_name}")
        elif command == "sweep":
            removed = expenses.on_foreground()
            print(f"Removed {removed} stale budget state entr{'y' if removed == 1 else 'ies'}")
        elif command == "export":
            month = None
            if args.month:
                month = parse_month(args.month)
                if month is None:
                    print(f"Invalid --month value: {args.month}", file=sys.stderr)
                    return 2
            path = services["export"].export_csv(args.folder, month, clock())
            print(f"Exported to {path}")
        elif command == "notify":
            delivered = services["notifications"].deliver_due(clock())
            notifications = delivered or services["notifications"].delivered()
            from ui.notification_window import NotificationWindow
            NotificationWindow(notifications, services["notifications"]).mainloop()
        else:
            expenses.on_foreground()
            result = expenses.load_data()
            for tx in result.new_transactions:
                print(f"Recurring: {tx.note} {format_currency(tx.amount)} on {tx.date:%Y-%m-%d}")
            for n in services["notifications"].deliver_due(clock()):
                print(f"[{n.title}] {n.body}")
            print_summary(services)
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
