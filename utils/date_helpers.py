from datetime import date, datetime, time, timedelta
import calendar
from utils.constants import DATE_FORMAT, DATETIME_FORMAT, MONTH_FORMAT


def today() -> date:
    return date.today()


def now() -> datetime:
    return datetime.now()


def parse_date(date_str: str) -> date | None:
    """Parse a date string in YYYY-MM-DD format, returning None on failure."""
    if not date_str:
        return None
    for fmt in ("%Y-%m-%d", "%Y/%m/%d", "%Y.%m.%d"):
        try:
            return datetime.strptime(date_str, fmt).date()
        except ValueError:
            continue
    return None


def parse_datetime(value: str) -> datetime | None:
    """Parse a stored timestamp; accepts 'YYYY-MM-DD HH:MM:SS', ISO 8601, or a bare date."""
    if not value:
        return None
    for fmt in (DATETIME_FORMAT, "%Y-%m-%dT%H:%M:%S", "%Y-%m-%dT%H:%M:%S.%f"):
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    d = parse_date(value)
    return datetime.combine(d, time()) if d else None


def format_date(d: date) -> str:
    return d.strftime(DATE_FORMAT)


def format_datetime(dt: datetime) -> str:
    return dt.strftime(DATETIME_FORMAT)


def format_month(d: date) -> str:
    return d.strftime(MONTH_FORMAT)


def month_key(d: date) -> tuple[int, int]:
    """(year, month) pair scoping per-month state."""
    return d.year, d.month


def start_of_day(d: date) -> datetime:
    return datetime.combine(d, time())


def month_bounds(d: date) -> tuple[datetime, datetime]:
    """Return the half-open [start, end) datetime range of d's month."""
    start = datetime(d.year, d.month, 1)
    if d.month == 12:
        end = datetime(d.year + 1, 1, 1)
    else:
        end = datetime(d.year, d.month + 1, 1)
    return start, end


def day_bounds(d: date) -> tuple[datetime, datetime]:
    start = start_of_day(d)
    return start, start + timedelta(days=1)


def compose_date(year: int, month: int, day: int) -> date | None:
    """Return date(year, month, day), or None when that day does not exist."""
    try:
        return date(year, month, day)
    except ValueError:
        return None


def clamp_day_to_month(year: int, month: int, day: int) -> int:
    """Clamp day to valid range for the given year/month."""
    max_day = calendar.monthrange(year, month)[1]
    return min(day, max_day)


def add_months(d: date, n: int) -> date:
    """Add n months to date d, clamping day to month end."""
    month = d.month - 1 + n
    year = d.year + month // 12
    month = month % 12 + 1
    day = clamp_day_to_month(year, month, d.day)
    return d.replace(year=year, month=month, day=day)


def parse_clock(value: str, default: str = "20:00") -> time:
    """Parse 'HH:MM' into a time, falling back to default on bad input."""
    for candidate in (value, default):
        try:
            return datetime.strptime(candidate, "%H:%M").time()
        except (TypeError, ValueError):
            continue
    return time(20, 0)


def friendly_month(d: date) -> str:
    """e.g. 'February 2026'."""
    return d.strftime("%B %Y")


def parse_month(value: str) -> date | None:
    """Parse 'YYYY-MM' into the first day of that month, None on failure."""
    try:
        return datetime.strptime(value, MONTH_FORMAT).date()
    except (TypeError, ValueError):
        return None
