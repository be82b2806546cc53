from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional


@dataclass
class Transaction:
    id: Optional[int]       # None until persisted
    type: str               # 'expense' | 'income'
    amount: Decimal
    category_id: int
    date: datetime
    note: Optional[str] = None
    category_name: str = ""
    source_template_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_income(self) -> bool:
        return self.type == "income"

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.is_income else -self.amount
