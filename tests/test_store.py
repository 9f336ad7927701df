"""Tests for the record store."""

from dataclasses import replace
from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from harvest_ledger.errors import ValidationError
from harvest_ledger.events import EventType
from harvest_ledger.records import RecordKind
from harvest_ledger.store import RecordStore, parse_payload, sort_newest_first


@pytest.fixture
def store():
    return RecordStore()


class TestUpsert:
    """Tests for RecordStore.upsert()."""

    def test_new_farmer_is_appended_with_bill_no(self, store, make_farmer):
        first = store.upsert(make_farmer())
        second = store.upsert(make_farmer())

        assert first.bill_no == 1001
        assert second.bill_no == 1002
        assert [f.id for f in store.farmers] == [first.id, second.id]

    def test_update_replaces_in_place(self, store, make_farmer):
        a = store.upsert(make_farmer(id="a"))
        store.upsert(make_farmer(id="b"))
        store.upsert(replace(a, name="Changed"))

        assert [f.id for f in store.farmers] == ["a", "b"]
        assert store.get("a").name == "Changed"

    def test_update_never_changes_bill_no(self, store, make_farmer):
        saved = store.upsert(make_farmer(id="a"))

        altered = store.upsert(replace(saved, bill_no=9999))
        omitted = store.upsert(replace(saved, bill_no=None))

        assert altered.bill_no == saved.bill_no
        assert omitted.bill_no == saved.bill_no
        assert store.get("a").bill_no == saved.bill_no

    def test_legacy_record_without_bill_no_gets_one_on_update(self, store, make_farmer):
        store = RecordStore(farmers=[make_farmer(id="old", bill_no=None)])
        updated = store.upsert(make_farmer(id="old", name="Edited"))
        assert updated.bill_no == 1001

    def test_new_record_ignores_supplied_bill_no(self, store, make_farmer):
        assert store.upsert(make_farmer(bill_no=5)).bill_no == 1001
        assert store.upsert(make_farmer(bill_no=1500)).bill_no == 1002

    def test_new_record_cannot_reuse_deleted_bill_no(self, store, make_farmer):
        first = store.upsert(make_farmer())
        store.upsert(make_farmer())
        store.delete(first.id)

        reused = store.upsert(make_farmer(bill_no=first.bill_no))

        assert reused.bill_no == 1003
        assert sorted(f.bill_no for f in store.farmers) == [1002, 1003]

    def test_colliding_bill_no_is_reallocated(self, store, make_farmer):
        store.upsert(make_farmer())
        duplicate = store.upsert(make_farmer(bill_no=1001))
        assert duplicate.bill_no == 1002

    def test_deleting_oldest_bill_does_not_restart_sequence(self, store, make_farmer):
        first = store.upsert(make_farmer())
        store.upsert(make_farmer())
        store.delete(first.id)

        assert store.upsert(make_farmer()).bill_no == 1003

    def test_upsert_migrates_legacy_paid_amount(self, store, make_farmer):
        saved = store.upsert(make_farmer(paid_amount=None, stored_status="Paid"))
        assert saved.paid_amount == Decimal("6000")

    def test_expense_upsert(self, store, make_expense):
        expense = store.upsert(make_expense(id="e1"))
        store.upsert(replace(expense, amount=Decimal("900")))

        assert len(store.expenses) == 1
        assert store.get("e1").amount == Decimal("900")


class TestDelete:
    """Tests for RecordStore.delete()."""

    def test_delete_removes_record(self, store, make_farmer, make_expense):
        farmer = store.upsert(make_farmer())
        expense = store.upsert(make_expense())

        assert store.delete(farmer.id) is True
        assert store.delete(expense.id) is True
        assert store.farmers == []
        assert store.expenses == []

    def test_delete_is_idempotent(self, store, make_farmer):
        kept = store.upsert(make_farmer(id="keep"))
        gone = store.upsert(make_farmer(id="gone"))

        assert store.delete(gone.id) is True
        after_first = store.farmers
        assert store.delete(gone.id) is False
        assert store.farmers == after_first == [kept]


class TestList:
    """Tests for sorted listings."""

    def test_newest_first(self, store, make_farmer):
        store.upsert(make_farmer(id="jan", date=date(2024, 1, 10)))
        store.upsert(make_farmer(id="mar", date=date(2024, 3, 10)))
        store.upsert(make_farmer(id="feb", date=date(2024, 2, 10)))

        assert [f.id for f in store.list(RecordKind.FARMER)] == ["mar", "feb", "jan"]

    def test_ties_keep_insertion_order(self, store, make_farmer):
        for record_id in ("first", "second", "third"):
            store.upsert(make_farmer(id=record_id, date=date(2024, 1, 10)))

        assert [f.id for f in store.list(RecordKind.FARMER)] == ["first", "second", "third"]

    def test_expenses_sorted_too(self, store, make_expense):
        store.upsert(make_expense(id="old", date=date(2023, 5, 1)))
        store.upsert(make_expense(id="new", date=date(2024, 5, 1)))
        assert [e.id for e in store.list(RecordKind.EXPENSE)] == ["new", "old"]

    def test_listing_does_not_reorder_store(self, store, make_farmer):
        store.upsert(make_farmer(id="old", date=date(2023, 1, 1)))
        store.upsert(make_farmer(id="new", date=date(2024, 1, 1)))
        store.list(RecordKind.FARMER)
        assert [f.id for f in store.farmers] == ["old", "new"]

    def test_sort_newest_first_is_stable(self, make_farmer):
        records = [make_farmer(id=str(i), date=date(2024, 1, 1 + i % 2)) for i in range(4)]
        assert [r.id for r in sort_newest_first(records)] == ["1", "3", "0", "2"]


class TestLoadAll:
    """Tests for bulk replacement from a database document."""

    def test_replaces_both_collections(self, store, make_farmer, legacy_payload):
        store.upsert(make_farmer(id="existing"))
        store.load_all(legacy_payload)

        assert [f.id for f in store.farmers] == ["old-1", "old-2"]
        assert [e.id for e in store.expenses] == ["exp-1"]
        assert store.get("existing") is None

    def test_migrates_once_on_load(self, store, legacy_payload):
        store.load_all(legacy_payload)
        paid, pending = store.farmers

        assert paid.paid_amount == Decimal("5600")
        assert pending.paid_amount == Decimal("0")

    @pytest.mark.parametrize(
        "payload",
        [{}, {"farmers": []}, {"expenses": []}, {"farmers": None, "expenses": []}, []],
    )
    def test_rejects_incomplete_payload(self, store, make_farmer, payload):
        store.upsert(make_farmer(id="keep"))

        with pytest.raises(ValidationError):
            store.load_all(payload)

        assert [f.id for f in store.farmers] == ["keep"]

    def test_malformed_record_leaves_store_untouched(self, store, make_farmer):
        store.upsert(make_farmer(id="keep"))
        payload = {"farmers": [{"id": "bad", "date": "not a date"}], "expenses": []}

        with pytest.raises(ValidationError):
            store.load_all(payload)
        assert [f.id for f in store.farmers] == ["keep"]

    def test_snapshot_round_trip(self, store, make_farmer, make_expense):
        store.upsert(make_farmer(is_settled=True, paid_amount=Decimal("100")))
        store.upsert(make_farmer(acres=Decimal("2.5")))
        store.upsert(make_expense())
        snapshot = store.snapshot()

        reloaded = RecordStore()
        reloaded.load_all(snapshot)

        assert [f.to_dict() for f in reloaded.farmers] == [f.to_dict() for f in store.farmers]
        assert [f.bill_no for f in reloaded.farmers] == [1001, 1002]
        assert reloaded.farmers[0].is_settled is True
        assert reloaded.expenses == store.expenses
        assert reloaded.snapshot() == snapshot

    def test_parse_payload_names_missing_collections(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_payload({})
        assert exc_info.value.fields == ["farmers", "expenses"]

    @pytest.mark.parametrize(
        ("payload", "field"),
        [
            ({"farmers": ["oops"], "expenses": []}, "farmers"),
            ({"farmers": [], "expenses": [None]}, "expenses"),
        ],
    )
    def test_parse_payload_rejects_entries_that_are_not_records(self, payload, field):
        with pytest.raises(ValidationError) as exc_info:
            parse_payload(payload)
        assert exc_info.value.fields == [field]


class TestHooks:
    """Tests for mutation hooks."""

    def test_hook_receives_each_mutation(self, store, make_farmer, make_expense, legacy_payload):
        hook = MagicMock()
        store.add_hook(hook)

        farmer = store.upsert(make_farmer())
        store.upsert(make_expense())
        store.delete(farmer.id)
        store.delete(farmer.id)
        store.load_all(legacy_payload)

        types = [call.args[0].event_type for call in hook.call_args_list]
        assert types == [
            EventType.FARMER_SAVED,
            EventType.EXPENSE_SAVED,
            EventType.FARMER_DELETED,
            EventType.LEDGER_LOADED,
        ]

    def test_failing_hook_does_not_undo_mutation(self, store, make_farmer):
        store.add_hook(MagicMock(side_effect=RuntimeError("disk on fire")))
        later = MagicMock()
        store.add_hook(later)

        saved = store.upsert(make_farmer())

        assert store.get(saved.id) == saved
        later.assert_called_once()

    def test_hook_error_is_logged_not_raised(self, store, make_farmer, make_expense):
        store.add_hook(MagicMock(side_effect=OSError("read-only")))

        farmer = store.upsert(make_farmer())
        store.upsert(make_expense())
        assert store.delete(farmer.id) is True
        store.load_all(store.snapshot())

        assert store.farmers == []
        assert len(store.expenses) == 1

    def test_remove_hook(self, store, make_farmer):
        hook = MagicMock()
        store.add_hook(hook)
        store.remove_hook(hook)
        store.upsert(make_farmer())
        hook.assert_not_called()
