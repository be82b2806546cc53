from dataclasses import dataclass
from decimal import Decimal
from typing import Optional


@dataclass
class BudgetNotificationState:
    year: int
    month: int
    threshold_notified: bool = False
    budget_notified: bool = False
    progress: Optional[Decimal] = None  # diagnostics only

    @property
    def key(self) -> tuple[int, int]:
        return self.year, self.month
