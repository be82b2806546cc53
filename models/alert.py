from dataclasses import dataclass
from decimal import Decimal

THRESHOLD_CROSSED = "threshold_crossed"
BUDGET_EXCEEDED = "budget_exceeded"


@dataclass(frozen=True)
class BudgetAlert:
    kind: str           # 'threshold_crossed' | 'budget_exceeded'
    progress: Decimal   # spending / budget


def threshold_crossed(progress: Decimal) -> BudgetAlert:
    return BudgetAlert(THRESHOLD_CROSSED, progress)


def budget_exceeded(progress: Decimal) -> BudgetAlert:
    return BudgetAlert(BUDGET_EXCEEDED, progress)
