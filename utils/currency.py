from decimal import Decimal, ROUND_HALF_UP

_CENT = Decimal("0.01")


def format_currency(amount: Decimal, symbol: str = "$") -> str:
    """Format a Decimal as currency string, e.g. '$1,234.56'."""
    return f"{symbol}{amount.quantize(_CENT, rounding=ROUND_HALF_UP):,.2f}"


def format_percent(fraction: Decimal) -> str:
    """0.853 -> '85%'."""
    return f"{(fraction * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP)}%"


def parse_amount(value) -> Decimal:
    """Parse a user/stored amount into an exact Decimal.

    Accepts str (current encoding), int, or float (legacy encoding; converted
    through its shortest repr so 15.0 becomes Decimal('15.0'), not the binary
    expansion). Raises ValueError on anything else.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid amount: {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(repr(value)) if isinstance(value, float) else Decimal(value)
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except ArithmeticError:
            raise ValueError(f"Invalid amount: {value!r}") from None
    else:
        raise ValueError(f"Invalid amount: {value!r}")
    if not result.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    return result
