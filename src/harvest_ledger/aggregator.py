"""Financial summaries and chart rollups over the record collections.

All functions are pure: they take the records to aggregate and return new
values. Amounts are summed as Decimals; paid amounts and balances always come
from the reconciler, never from stored status.
"""

import calendar
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum

from harvest_ledger.reconciler import reconcile
from harvest_ledger.records import BillingRecord, ExpenseRecord

ZERO = Decimal("0")
UNKNOWN_CROP = "Unknown"


class DateRangePreset(str, Enum):
    """Quick date filters offered next to the record list."""

    TODAY = "today"
    YESTERDAY = "yesterday"
    MONTH = "month"
    ALL = "all"


def date_range_preset(
    preset: DateRangePreset | str, today: date
) -> tuple[date | None, date | None]:
    """Resolve a preset into an inclusive (start, end) range.

    ``month`` runs from the first of the current month to today; ``all`` has
    no bounds.
    """
    preset = DateRangePreset(preset)
    if preset is DateRangePreset.TODAY:
        return today, today
    if preset is DateRangePreset.YESTERDAY:
        yesterday = today - timedelta(days=1)
        return yesterday, yesterday
    if preset is DateRangePreset.MONTH:
        return today.replace(day=1), today
    return None, None


@dataclass(frozen=True)
class RecordFilter:
    """Text and date filter over farmer records.

    ``text`` is matched case-insensitively as a substring of the name, place,
    contact, crop or bill number. ``start`` and ``end`` bound the job date
    inclusively; either may be omitted.
    """

    text: str = ""
    start: date | None = None
    end: date | None = None

    def matches(self, record: BillingRecord) -> bool:
        if self.start is not None and record.date < self.start:
            return False
        if self.end is not None and record.date > self.end:
            return False

        term = self.text.strip().lower()
        if not term:
            return True

        haystack = (
            record.name,
            record.place,
            record.contact,
            record.crop,
            "" if record.bill_no is None else str(record.bill_no),
        )
        return any(term in value.lower() for value in haystack)

    def apply(self, records: Iterable[BillingRecord]) -> list[BillingRecord]:
        return [record for record in records if self.matches(record)]


@dataclass(frozen=True)
class FarmerSummary:
    """Totals shown above the farmer list."""

    revenue: Decimal = ZERO
    acres: Decimal = ZERO
    pending: Decimal = ZERO
    count: int = 0


@dataclass
class MonthlyBucket:
    """Cash collected and spent within one calendar month."""

    year: int
    month: int
    collected: Decimal = ZERO
    expenses: Decimal = ZERO

    @property
    def key(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    @property
    def label(self) -> str:
        return f"{calendar.month_abbr[self.month]} {self.year}"


@dataclass
class Analytics:
    """Everything the analytics view charts."""

    net_profit: Decimal
    monthly: list[MonthlyBucket] = field(default_factory=list)
    crops: dict[str, Decimal] = field(default_factory=dict)
    expense_categories: dict[str, Decimal] = field(default_factory=dict)


def summarize_farmers(
    records: Iterable[BillingRecord], record_filter: RecordFilter | None = None
) -> FarmerSummary:
    """Sum billed revenue, acres and outstanding balance over filtered records."""
    if record_filter is not None:
        records = record_filter.apply(records)

    revenue = acres = pending = ZERO
    count = 0
    for record in records:
        revenue += record.total
        acres += record.acres
        pending += reconcile(record).balance
        count += 1
    return FarmerSummary(revenue=revenue, acres=acres, pending=pending, count=count)


def expense_total(expenses: Iterable[ExpenseRecord]) -> Decimal:
    return sum((expense.amount for expense in expenses), ZERO)


def collected_total(records: Iterable[BillingRecord]) -> Decimal:
    """Cash actually received across farmer records."""
    return sum((reconcile(record).paid_amount for record in records), ZERO)


def net_profit(
    records: Iterable[BillingRecord], expenses: Iterable[ExpenseRecord]
) -> Decimal:
    """Collected cash minus expenses, over all records regardless of filters."""
    return collected_total(records) - expense_total(expenses)


def monthly_rollup(
    records: Iterable[BillingRecord], expenses: Iterable[ExpenseRecord]
) -> list[MonthlyBucket]:
    """Group collected cash and expenses by calendar month, oldest first."""
    buckets: dict[tuple[int, int], MonthlyBucket] = {}

    def bucket_for(day: date) -> MonthlyBucket:
        key = (day.year, day.month)
        if key not in buckets:
            buckets[key] = MonthlyBucket(year=day.year, month=day.month)
        return buckets[key]

    for record in records:
        bucket_for(record.date).collected += reconcile(record).paid_amount
    for expense in expenses:
        bucket_for(expense.date).expenses += expense.amount

    return [buckets[key] for key in sorted(buckets)]


def crop_label(crop: str) -> str:
    """Normalize a crop name for grouping: trimmed, lowercased, capitalized."""
    normalized = crop.strip().lower()
    if not normalized:
        return UNKNOWN_CROP
    return normalized[0].upper() + normalized[1:]


def crop_rollup(records: Iterable[BillingRecord]) -> dict[str, Decimal]:
    """Sum acres per normalized crop name, in order of first appearance."""
    acres: dict[str, Decimal] = {}
    for record in records:
        label = crop_label(record.crop)
        acres[label] = acres.get(label, ZERO) + record.acres
    return acres


def expense_category_rollup(expenses: Iterable[ExpenseRecord]) -> dict[str, Decimal]:
    """Sum expense amounts per category; blank categories count as Misc."""
    totals: dict[str, Decimal] = {}
    for expense in expenses:
        label = expense.category_label
        totals[label] = totals.get(label, ZERO) + expense.amount
    return totals


def build_analytics(
    records: list[BillingRecord], expenses: list[ExpenseRecord]
) -> Analytics:
    return Analytics(
        net_profit=net_profit(records, expenses),
        monthly=monthly_rollup(records, expenses),
        crops=crop_rollup(records),
        expense_categories=expense_category_rollup(expenses),
    )


def suggestions(records: Iterable[BillingRecord]) -> tuple[list[str], list[str]]:
    """Distinct non-empty places and crops, sorted, for form autocompletion."""
    places: set[str] = set()
    crops: set[str] = set()
    for record in records:
        if record.place:
            places.add(record.place)
        if record.crop:
            crops.add(record.crop)
    return sorted(places), sorted(crops)
