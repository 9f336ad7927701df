"""Status reconciliation for billing records.

A record's settlement status is never read from storage. It is derived from
the paid amount, the bill total and the manual settlement flag every time a
record is looked at:

- paid >= total (with a non-zero total)  -> Paid
- 0 < paid < total                        -> Partial
- paid == 0                               -> Pending
- is_settled                              -> Settled, whatever the numbers say

Records written before payments were tracked have no paid amount at all. For
those the legacy status decides: a record stored as "Paid" is taken to be
fully paid, anything else as unpaid. That migration is applied once when
records are loaded and the migrated value is authoritative afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from harvest_ledger.records import BillingRecord

ZERO = Decimal("0")

OVERDUE_AFTER_DAYS = 30
OVERDUE_MONTHS_AFTER_DAYS = 60
DAYS_PER_MONTH = 30


class BillStatus(str, Enum):
    """Settlement state of a bill."""

    PENDING = "Pending"
    PARTIAL = "Partial"
    PAID = "Paid"
    SETTLED = "Settled"


@dataclass(frozen=True)
class Reconciliation:
    """Derived payment state of one billing record."""

    paid_amount: Decimal
    balance: Decimal
    status: BillStatus


@dataclass(frozen=True)
class OverdueNotice:
    """Warning shown next to an unpaid balance that has been open too long."""

    days: int
    duration: str

    @property
    def label(self) -> str:
        return f"Due {self.duration}"


def migrated_paid_amount(record: BillingRecord) -> Decimal:
    """Return the paid amount, inferring it from the legacy status if absent."""
    if record.paid_amount is not None:
        return record.paid_amount
    if record.stored_status == BillStatus.PAID.value:
        return record.total
    return ZERO


def migrate(record: BillingRecord) -> BillingRecord:
    """Fill in the paid amount of a record from an older schema.

    Records that already carry a paid amount are returned unchanged, so
    migrating twice is the same as migrating once.
    """
    if record.paid_amount is not None:
        return record
    return replace(record, paid_amount=migrated_paid_amount(record))


def derive_status(paid_amount: Decimal, total: Decimal, is_settled: bool) -> BillStatus:
    """Map the numeric payment state and settlement flag to a status."""
    if is_settled:
        return BillStatus.SETTLED
    # A zero-total bill with nothing paid is Pending, not Paid: nothing paid
    # always reads as Pending, as on the entry form.
    if total > 0 and paid_amount >= total:
        return BillStatus.PAID
    if paid_amount > 0:
        return BillStatus.PARTIAL
    return BillStatus.PENDING


def reconcile(record: BillingRecord) -> Reconciliation:
    """Derive the authoritative paid amount, balance and status of a record."""
    paid_amount = migrated_paid_amount(record)
    return Reconciliation(
        paid_amount=paid_amount,
        balance=record.total - paid_amount,
        status=derive_status(paid_amount, record.total, record.is_settled),
    )


def overdue_notice(
    record: BillingRecord,
    today: date,
    after_days: int = OVERDUE_AFTER_DAYS,
    months_after_days: int = OVERDUE_MONTHS_AFTER_DAYS,
) -> OverdueNotice | None:
    """Return an overdue warning for an open balance older than `after_days`.

    Durations up to `months_after_days` are given in days, longer ones in
    whole 30-day months.
    """
    if record.is_settled or reconcile(record).balance <= 0:
        return None

    days = (today - record.date).days
    if days <= after_days:
        return None

    if days > months_after_days:
        duration = f"{days // DAYS_PER_MONTH} months"
    else:
        duration = f"{days} days"
    return OverdueNotice(days=days, duration=duration)
