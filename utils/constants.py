from decimal import Decimal

APP_NAME = "Pockets"
DB_FILE = "pockets.db"

DATE_FORMAT = "%Y-%m-%d"
DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"
MONTH_FORMAT = "%Y-%m"

TRANSACTION_TYPES = ("expense", "income")

DEFAULT_BUDGET_THRESHOLD = Decimal("0.80")
DEFAULT_DAILY_REMINDER_TIME = "20:00"
SUBSCRIPTION_ALERT_HOUR = 9

DEFAULT_CATEGORY_NAME = "Other"
QUICK_ADD_NOTES = {
    "expense": "Quick Added Expense",
    "income": "Quick Added Income",
}

DEFAULT_CATEGORIES = [
    {"name": "Food",          "icon": "🍔", "color_hex": "#FF9800"},
    {"name": "Transport",     "icon": "🚗", "color_hex": "#2196F3"},
    {"name": "Shopping",      "icon": "🛍", "color_hex": "#E91E63"},
    {"name": "Entertainment", "icon": "🎬", "color_hex": "#FF5722"},
    {"name": "Bills",         "icon": "🧾", "color_hex": "#9C27B0"},
    {"name": "Health",        "icon": "💊", "color_hex": "#00BCD4"},
    {"name": "Salary",        "icon": "💰", "color_hex": "#4CAF50"},
    {"name": "Other",         "icon": "📦", "color_hex": "#888888"},
]

# ── Settings keys ─────────────────────────────────────────────────────────────

MONTHLY_BUDGET_KEY = "monthly_budget"
RECURRING_TEMPLATES_KEY = "recurring_templates"
BUDGET_ALERT_ENABLED_KEY = "notification_budget_alert"
BUDGET_THRESHOLD_KEY = "notification_budget_threshold"
SUBSCRIPTION_ALERTS_KEY = "notification_subscription_alerts"
DAILY_REMINDER_KEY = "notification_daily_reminder"
DAILY_REMINDER_TIME_KEY = "notification_daily_reminder_time"
NOTIFICATIONS_AUTHORIZED_KEY = "notifications_authorized"

NOTIFICATION_SETTING_KEYS = (
    BUDGET_ALERT_ENABLED_KEY,
    BUDGET_THRESHOLD_KEY,
    SUBSCRIPTION_ALERTS_KEY,
    DAILY_REMINDER_KEY,
    DAILY_REMINDER_TIME_KEY,
)

# ── Notification identifiers ──────────────────────────────────────────────────

DAILY_REMINDER_ID = "dailyExpenseReminder"
BUDGET_ALERT_ID = "budgetAlert"
SUBSCRIPTION_PREFIX = "subscription_"
