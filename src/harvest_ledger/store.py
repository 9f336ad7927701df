"""In-memory record store: the single owner of the record collections.

Every mutation goes through ``RecordStore``. After each mutation the store
publishes a ``LedgerEvent`` to its hooks; persistence to the replicas is one
such hook. Hooks run synchronously and a failing hook never undoes the
mutation that triggered it.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import replace
from typing import Any

import structlog

from harvest_ledger.billing import next_bill_no
from harvest_ledger.errors import ValidationError
from harvest_ledger.events import (
    LedgerEvent,
    expense_saved,
    farmer_saved,
    ledger_loaded,
    record_deleted,
)
from harvest_ledger.reconciler import migrate
from harvest_ledger.records import (
    EXPENSES_KEY,
    FARMERS_KEY,
    BillingRecord,
    ExpenseRecord,
    Record,
    RecordKind,
)

logger = structlog.get_logger(__name__)

SCHEMA_VERSION = 1


def sort_newest_first(records: list[Any]) -> list[Any]:
    """Sort records by date, newest first. Equal dates keep their order."""
    return sorted(records, key=lambda record: record.date, reverse=True)


def parse_payload(
    payload: Mapping[str, Any],
) -> tuple[list[BillingRecord], list[ExpenseRecord]]:
    """Validate and parse a persisted document into migrated records.

    Raises:
        ValidationError: If either collection is missing or a record is malformed.
    """
    if not isinstance(payload, Mapping):
        raise ValidationError("database must be a JSON object")

    missing = [
        key
        for key in (FARMERS_KEY, EXPENSES_KEY)
        if not isinstance(payload.get(key), list)
    ]
    if missing:
        raise ValidationError(
            f"invalid database: missing {' and '.join(missing)}", fields=missing
        )

    for key in (FARMERS_KEY, EXPENSES_KEY):
        for position, item in enumerate(payload[key]):
            if not isinstance(item, Mapping):
                raise ValidationError(
                    f"invalid database: {key}[{position}] is not a record", fields=[key]
                )

    farmers = [migrate(BillingRecord.from_dict(item)) for item in payload[FARMERS_KEY]]
    expenses = [ExpenseRecord.from_dict(item) for item in payload[EXPENSES_KEY]]
    return farmers, expenses


class RecordStore:
    """Owns the farmer and expense collections.

    Usage:
        store = RecordStore()
        store.add_hook(replicas)
        saved = store.upsert(record)
        store.delete(saved.id)
    """

    def __init__(
        self,
        farmers: list[BillingRecord] | None = None,
        expenses: list[ExpenseRecord] | None = None,
    ):
        self._farmers: list[BillingRecord] = [migrate(f) for f in farmers or []]
        self._expenses: list[ExpenseRecord] = list(expenses or [])
        self._hooks: list[Callable[[LedgerEvent], None]] = []
        self._logger = logger.bind(component="record_store")

    @property
    def farmers(self) -> list[BillingRecord]:
        """Farmer records in insertion order."""
        return list(self._farmers)

    @property
    def expenses(self) -> list[ExpenseRecord]:
        """Expense records in insertion order."""
        return list(self._expenses)

    def add_hook(self, hook: Callable[[LedgerEvent], None]) -> None:
        """Add a hook to be called after every mutation."""
        self._hooks.append(hook)

    def remove_hook(self, hook: Callable[[LedgerEvent], None]) -> None:
        """Remove a mutation hook."""
        if hook in self._hooks:
            self._hooks.remove(hook)

    def get(self, record_id: str) -> Record | None:
        """Look up a record of either kind by id."""
        for record in (*self._farmers, *self._expenses):
            if record.id == record_id:
                return record
        return None

    def list(self, kind: RecordKind) -> list[Record]:
        """Return one collection sorted newest date first."""
        if kind is RecordKind.FARMER:
            return sort_newest_first(self._farmers)
        return sort_newest_first(self._expenses)

    def upsert(self, record: Record) -> Record:
        """Insert a record, or replace the record with the same id in place.

        A billing record that replaces an existing one always keeps the
        existing bill number. A new billing record is always given the next
        number in sequence; any number it carries is ignored.

        Returns:
            The record as stored.
        """
        if isinstance(record, BillingRecord):
            return self._upsert_farmer(record)
        return self._upsert_expense(record)

    def _upsert_farmer(self, record: BillingRecord) -> BillingRecord:
        record = migrate(record)
        index = self._index_of(self._farmers, record.id)

        if index is None:
            record = replace(record, bill_no=next_bill_no(self._farmers))
            self._farmers.append(record)
        else:
            bill_no = self._farmers[index].bill_no
            if bill_no is None:
                bill_no = next_bill_no(self._farmers)
            record = replace(record, bill_no=bill_no)
            self._farmers[index] = record

        self._logger.info(
            "farmer_saved",
            record_id=record.id,
            bill_no=record.bill_no,
            created=index is None,
        )
        self._publish(farmer_saved(record.id, record.bill_no, created=index is None))
        return record

    def _upsert_expense(self, record: ExpenseRecord) -> ExpenseRecord:
        index = self._index_of(self._expenses, record.id)
        if index is None:
            self._expenses.append(record)
        else:
            self._expenses[index] = record

        self._logger.info("expense_saved", record_id=record.id, created=index is None)
        self._publish(expense_saved(record.id, created=index is None))
        return record

    def delete(self, record_id: str) -> bool:
        """Remove a record by id from whichever collection holds it.

        Deleting an unknown id is a no-op.

        Returns:
            True if a record was removed.
        """
        for collection, is_farmer in ((self._farmers, True), (self._expenses, False)):
            index = self._index_of(collection, record_id)
            if index is not None:
                del collection[index]
                self._logger.info("record_deleted", record_id=record_id, farmer=is_farmer)
                self._publish(record_deleted(record_id, farmer=is_farmer))
                return True

        self._logger.debug("delete_unknown_record", record_id=record_id)
        return False

    def load_all(self, payload: Mapping[str, Any]) -> None:
        """Replace both collections with the contents of a persisted document.

        Raises:
            ValidationError: If the document lacks either collection. The
                current collections are left untouched.
        """
        farmers, expenses = parse_payload(payload)
        self._farmers = farmers
        self._expenses = expenses

        self._logger.info("ledger_loaded", farmers=len(farmers), expenses=len(expenses))
        self._publish(ledger_loaded(len(farmers), len(expenses)))

    def snapshot(self) -> dict[str, Any]:
        """Return the full persisted structure of both collections."""
        return {
            "schemaVersion": SCHEMA_VERSION,
            FARMERS_KEY: [record.to_dict() for record in self._farmers],
            EXPENSES_KEY: [record.to_dict() for record in self._expenses],
        }

    @staticmethod
    def _index_of(collection: list[Any], record_id: str) -> int | None:
        for index, record in enumerate(collection):
            if record.id == record_id:
                return index
        return None

    def _publish(self, event: LedgerEvent) -> None:
        for hook in self._hooks:
            try:
                hook(event)
            except Exception as e:
                self._logger.error(
                    "store_hook_error",
                    event_type=event.event_type.value,
                    error=str(e),
                )
