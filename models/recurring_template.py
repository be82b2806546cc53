import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

MIN_DAY_OF_MONTH = 1
MAX_DAY_OF_MONTH = 31


def clamp_day_of_month(day: int) -> int:
    return min(max(day, MIN_DAY_OF_MONTH), MAX_DAY_OF_MONTH)


@dataclass
class RecurringTemplate:
    name: str
    amount: Decimal
    category_id: int
    day_of_month: int       # 1-31; out-of-range input is clamped, never rejected
    type: str = "expense"   # 'expense' | 'income'
    is_active: bool = True
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)
    last_processed_date: Optional[date] = None

    def __post_init__(self):
        self.day_of_month = clamp_day_of_month(int(self.day_of_month))
