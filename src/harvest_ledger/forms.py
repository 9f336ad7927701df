"""Form intake: raw field values in, validated records out.

Form fields arrive as the strings a user typed. Validation either produces a
complete record or raises ``ValidationError`` naming every offending field;
nothing is partially saved.
"""

import re
from dataclasses import dataclass, fields
from decimal import Decimal

from harvest_ledger.billing import compute_total
from harvest_ledger.errors import ValidationError
from harvest_ledger.reconciler import reconcile
from harvest_ledger.records import (
    BillingRecord,
    ExpenseRecord,
    decimal_to_json,
    new_record_id,
    to_date,
    to_decimal,
)

CONTACT_PATTERN = re.compile(r"^\d{10}$")

FARMER_REQUIRED = {
    "name": "Name",
    "date": "Date",
    "place": "Place",
    "crop": "Crop",
    "acres": "Acres",
    "rate": "Rate",
}
EXPENSE_REQUIRED = {"date": "Date", "amount": "Amount"}


def _missing(form: object, required: dict[str, str]) -> list[str]:
    return [name for name in required if not str(getattr(form, name)).strip()]


def _require(form: object, required: dict[str, str]) -> None:
    missing = _missing(form, required)
    if missing:
        labels = ", ".join(required[name] for name in missing)
        raise ValidationError(f"Please fill all required fields: {labels}", fields=missing)


@dataclass
class FarmerForm:
    """Raw values of the billing record form. ``record_id`` is set when editing."""

    name: str = ""
    date: str = ""
    place: str = ""
    crop: str = ""
    contact: str = ""
    acres: str = ""
    rate: str = ""
    paid: str = "0"
    is_settled: bool = False
    comments: str = ""
    record_id: str | None = None

    @classmethod
    def from_record(cls, record: BillingRecord) -> "FarmerForm":
        """Prefill the form for editing an existing record."""
        return cls(
            name=record.name,
            date=record.date.isoformat(),
            place=record.place,
            crop=record.crop,
            contact=record.contact,
            acres=str(decimal_to_json(record.acres)),
            rate=str(decimal_to_json(record.rate)),
            paid=str(decimal_to_json(reconcile(record).paid_amount)),
            is_settled=record.is_settled,
            comments=record.comments,
            record_id=record.id,
        )

    def updated(self, **changes: object) -> "FarmerForm":
        """Return a copy with the given non-None fields replaced."""
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        values.update({key: value for key, value in changes.items() if value is not None})
        return FarmerForm(**values)


@dataclass
class ExpenseForm:
    """Raw values of the expense form."""

    date: str = ""
    amount: str = ""
    category: str = ""
    desc: str = ""
    record_id: str | None = None


def build_billing_record(form: FarmerForm) -> BillingRecord:
    """Validate the farmer form and build the record to save.

    The total is computed from acres and rate here and then fixed. The bill
    number is left for the store to assign or preserve.

    Raises:
        ValidationError: If a required field is empty or a value is malformed.
    """
    _require(form, FARMER_REQUIRED)

    contact = form.contact.strip()
    if not CONTACT_PATTERN.match(contact):
        raise ValidationError(
            "Please enter a valid 10-digit mobile number.", fields=["contact"]
        )

    acres = to_decimal(form.acres, "acres")
    if acres <= 0:
        raise ValidationError("Acres must be greater than zero", fields=["acres"])

    rate = to_decimal(form.rate, "rate")
    if rate < 0:
        raise ValidationError("Rate must not be negative", fields=["rate"])

    paid = to_decimal(form.paid.strip() or "0", "paidAmount")
    if paid < 0:
        raise ValidationError("Paid amount must not be negative", fields=["paidAmount"])

    return BillingRecord(
        id=form.record_id or new_record_id(),
        name=form.name.strip(),
        date=to_date(form.date),
        place=form.place.strip(),
        crop=form.crop.strip(),
        contact=contact,
        acres=acres,
        rate=rate,
        total=compute_total(acres, rate),
        paid_amount=paid,
        is_settled=form.is_settled,
        comments=form.comments,
    )


def build_expense_record(form: ExpenseForm) -> ExpenseRecord:
    """Validate the expense form and build the record to save.

    Raises:
        ValidationError: If the date or amount is empty or malformed.
    """
    _require(form, EXPENSE_REQUIRED)

    amount = to_decimal(form.amount, "amount")
    if amount < Decimal("0"):
        raise ValidationError("Amount must not be negative", fields=["amount"])

    return ExpenseRecord(
        id=form.record_id or new_record_id(),
        date=to_date(form.date),
        amount=amount,
        category=form.category.strip(),
        desc=form.desc.strip(),
    )
