from dataclasses import dataclass


@dataclass
class Category:
    id: int
    name: str
    icon: str = "📦"
    color_hex: str = "#888888"
    is_default: bool = False
