"""Bill numbering and bill total calculation."""

from collections.abc import Iterable, Mapping
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

# Allocation never drops below this floor, giving a 4-digit starting range.
BILL_NO_FLOOR = 1000
FIRST_BILL_NO = BILL_NO_FLOOR + 1


def parse_bill_no(value: Any) -> int | None:
    """Coerce a stored bill number to an int, or None if it is not numeric."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    if not number.is_finite():
        return None
    return int(number)


def _bill_no_of(record: Any) -> int:
    if isinstance(record, Mapping):
        raw = record.get("billNo")
    else:
        raw = getattr(record, "bill_no", None)
    return parse_bill_no(raw) or 0


def next_bill_no(existing: Iterable[Any]) -> int:
    """Allocate the bill number for a new record.

    Takes the highest bill number among `existing` (records or raw persisted
    mappings; missing or non-numeric numbers count as 0). Below the floor the
    sequence starts at 1001, otherwise it continues from the maximum, so
    numbers are never reused after a deletion.
    """
    highest = max((_bill_no_of(record) for record in existing), default=0)
    if highest < BILL_NO_FLOOR:
        return FIRST_BILL_NO
    return highest + 1


def compute_total(acres: Decimal, rate: Decimal) -> Decimal:
    """Bill total for a job, rounded to a whole currency unit."""
    return (acres * rate).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
