"""Display formatting for amounts and dates."""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from harvest_ledger.config import get_settings


def group_indian(digits: str) -> str:
    """Insert Indian-style separators: last three digits, then pairs."""
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def format_number(value: Decimal | int | float) -> str:
    """Format a number with Indian grouping and at most two decimals."""
    amount = Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    whole, _, fraction = format(abs(amount), "f").partition(".")
    fraction = fraction.rstrip("0")
    text = group_indian(whole)
    if fraction:
        text = f"{text}.{fraction}"
    return f"{sign}{text}"


def format_currency(value: Decimal | int | float, symbol: str | None = None) -> str:
    """Format an amount as currency, e.g. ``₹12,34,567``."""
    if symbol is None:
        symbol = get_settings().currency_symbol
    return f"{symbol}{format_number(value)}"


def format_date(day: date) -> str:
    """Format a date as ``dd/mm/yyyy``."""
    return day.strftime("%d/%m/%Y")


def format_acres(value: Decimal) -> str:
    """Acres to one decimal place, as shown in the summary."""
    return format(Decimal(value).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP), "f")
