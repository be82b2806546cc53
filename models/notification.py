from dataclasses import dataclass
from datetime import datetime


@dataclass
class PendingNotification:
    id: str
    title: str
    body: str
    fire_at: datetime
    category: str = ""      # 'budget' | 'subscription' | 'daily'
    repeats: str = ""       # '' | 'daily' | 'monthly'
    delivered: bool = False
