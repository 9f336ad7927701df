"""Billing and expense records and their persisted JSON shape.

Persisted documents use the camelCase field names of existing saved
data (``billNo``, ``paidAmount``, ``isSettled``...). Older documents may carry
numbers as strings or omit fields added later; ``from_dict`` accepts both.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any
from uuid import uuid4

from harvest_ledger.billing import parse_bill_no
from harvest_ledger.errors import ValidationError
from harvest_ledger.reconciler import BillStatus, reconcile

FARMERS_KEY = "farmers"
EXPENSES_KEY = "expenses"

DEFAULT_EXPENSE_CATEGORY = "Misc"


class RecordKind(str, Enum):
    """The two record collections."""

    FARMER = "farmer"
    EXPENSE = "expense"


def new_record_id() -> str:
    """Generate an opaque record identifier."""
    return str(uuid4())


def to_decimal(value: Any, field_name: str) -> Decimal:
    """Parse a numeric field that may have been stored as a string."""
    if isinstance(value, Decimal):
        return value
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number", fields=[field_name])
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation as e:
        raise ValidationError(
            f"{field_name} must be a number", fields=[field_name]
        ) from e
    if not number.is_finite():
        raise ValidationError(f"{field_name} must be a number", fields=[field_name])
    return number


def to_date(value: Any, field_name: str = "date") -> date:
    """Parse a calendar date stored as ``YYYY-MM-DD`` (a time part is ignored)."""
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError as e:
        raise ValidationError(
            f"{field_name} must be a date (YYYY-MM-DD)", fields=[field_name]
        ) from e


def decimal_to_json(value: Decimal) -> int | float:
    """Render a Decimal as a JSON number, integral values as ints."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _require_id(data: Mapping[str, Any]) -> str:
    record_id = data.get("id")
    if not record_id:
        raise ValidationError("record has no id", fields=["id"])
    return str(record_id)


@dataclass(frozen=True)
class BillingRecord:
    """One harvesting job billed to one farmer.

    ``total`` is fixed when the bill is issued. ``stored_status`` is whatever
    status the record was persisted with; it is only consulted to migrate
    records that predate ``paid_amount``. Use ``status`` and ``balance`` for
    the derived values.
    """

    id: str
    name: str
    date: date
    place: str
    contact: str
    acres: Decimal
    rate: Decimal
    total: Decimal
    bill_no: int | None = None
    crop: str = ""
    paid_amount: Decimal | None = None
    is_settled: bool = False
    comments: str = ""
    stored_status: str | None = None

    @property
    def status(self) -> BillStatus:
        return reconcile(self).status

    @property
    def balance(self) -> Decimal:
        return reconcile(self).balance

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the persisted JSON shape."""
        state = reconcile(self)
        return {
            "id": self.id,
            "billNo": self.bill_no,
            "name": self.name,
            "date": self.date.isoformat(),
            "contact": self.contact,
            "place": self.place,
            "crop": self.crop,
            "acres": decimal_to_json(self.acres),
            "rate": decimal_to_json(self.rate),
            "total": decimal_to_json(self.total),
            "paidAmount": decimal_to_json(state.paid_amount),
            "status": state.status.value,
            "isSettled": self.is_settled,
            "comments": self.comments,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> BillingRecord:
        """Parse a persisted record, tolerating older schema revisions."""
        paid = data.get("paidAmount")
        return cls(
            id=_require_id(data),
            bill_no=parse_bill_no(data.get("billNo")),
            name=_text(data.get("name")),
            date=to_date(data.get("date")),
            contact=_text(data.get("contact")),
            place=_text(data.get("place")),
            crop=_text(data.get("crop")),
            acres=to_decimal(data.get("acres", 0), "acres"),
            rate=to_decimal(data.get("rate", 0), "rate"),
            total=to_decimal(data.get("total", 0), "total"),
            paid_amount=None if paid is None else to_decimal(paid, "paidAmount"),
            is_settled=bool(data.get("isSettled", False)),
            comments=_text(data.get("comments")),
            stored_status=data.get("status"),
        )


@dataclass(frozen=True)
class ExpenseRecord:
    """One operating expense."""

    id: str
    date: date
    amount: Decimal
    category: str = ""
    desc: str = ""

    @property
    def category_label(self) -> str:
        return self.category.strip() or DEFAULT_EXPENSE_CATEGORY

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "category": self.category,
            "desc": self.desc,
            "amount": decimal_to_json(self.amount),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ExpenseRecord:
        return cls(
            id=_require_id(data),
            date=to_date(data.get("date")),
            category=_text(data.get("category")),
            desc=_text(data.get("desc")),
            amount=to_decimal(data.get("amount"), "amount"),
        )


Record = BillingRecord | ExpenseRecord
