"""Application service tying the record store to its replicas and views.

``Ledger`` is what a front end talks to. It accepts raw form values and file
paths, runs them through validation and the store, and hands back read-only
views. Replica write failures never abort an edit; they are collected as
warnings which the front end drains with ``drain_warnings()``.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import cast

import structlog

from harvest_ledger.aggregator import (
    Analytics,
    FarmerSummary,
    RecordFilter,
    build_analytics,
    expense_total,
    suggestions,
    summarize_farmers,
)
from harvest_ledger.config import FlatSettings, get_settings
from harvest_ledger.errors import ValidationError
from harvest_ledger.exporting import (
    export_backup,
    export_farmers_xlsx,
    spreadsheet_filename,
)
from harvest_ledger.forms import (
    ExpenseForm,
    FarmerForm,
    build_billing_record,
    build_expense_record,
)
from harvest_ledger.persistence import BackupFile, LocalCache, ReplicaSet
from harvest_ledger.reconciler import (
    OverdueNotice,
    Reconciliation,
    overdue_notice,
    reconcile,
)
from harvest_ledger.records import BillingRecord, ExpenseRecord, RecordKind
from harvest_ledger.sharing import save_receipt, share_message, whatsapp_url
from harvest_ledger.store import RecordStore, parse_payload

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class FarmerRow:
    """One line of the farmer list with its derived state."""

    record: BillingRecord
    state: Reconciliation
    overdue: OverdueNotice | None = None


@dataclass
class FarmerView:
    """The filtered farmer list, newest first, with its totals."""

    rows: list[FarmerRow] = field(default_factory=list)
    summary: FarmerSummary = field(default_factory=FarmerSummary)
    places: list[str] = field(default_factory=list)
    crops: list[str] = field(default_factory=list)


@dataclass
class ExpenseView:
    rows: list[ExpenseRecord] = field(default_factory=list)
    total: Decimal = Decimal("0")


class Ledger:
    """Record keeping for one harvesting business."""

    def __init__(
        self,
        store: RecordStore,
        cache: LocalCache,
        backup_file: BackupFile | None = None,
        settings: FlatSettings | None = None,
    ):
        self.settings = settings or get_settings()
        self.store = store
        self.cache = cache
        self.replicas = ReplicaSet(store, cache, backup_file)
        store.add_hook(self.replicas)
        self._logger = logger.bind(component="ledger")

    @classmethod
    def open(
        cls,
        data_dir: Path | None = None,
        settings: FlatSettings | None = None,
    ) -> "Ledger":
        """Load the ledger from the local cache.

        Records are migrated once here. The connected database file, if any,
        is the one remembered in the cache, else the configured one.

        Raises:
            PersistenceError: If the cache cannot be read.
            ValidationError: If the cached records are malformed.
        """
        settings = settings or get_settings()
        cache = LocalCache(data_dir or settings.data_dir)
        farmers, expenses = parse_payload(cache.load_payload())
        store = RecordStore(farmers, expenses)

        connected = cache.connected_file() or settings.backup_file
        backup_file = BackupFile(connected) if connected else None

        logger.debug(
            "ledger_opened",
            data_dir=str(cache.directory),
            farmers=len(farmers),
            expenses=len(expenses),
            backup_file=str(connected) if connected else None,
        )
        return cls(store, cache, backup_file=backup_file, settings=settings)

    @property
    def backup_file(self) -> BackupFile | None:
        return self.replicas.backup_file

    def drain_warnings(self) -> list[str]:
        """Return replica write warnings raised since the last call."""
        return self.replicas.drain_warnings()

    # -- farmers -----------------------------------------------------------

    def get_farmer(self, record_id: str) -> BillingRecord:
        record = self.store.get(record_id)
        if not isinstance(record, BillingRecord):
            raise ValidationError(f"No farmer record with id {record_id}", fields=["id"])
        return record

    def find_farmer(self, key: str) -> BillingRecord:
        """Look a farmer record up by id or bill number."""
        record = self.store.get(key)
        if isinstance(record, BillingRecord):
            return record
        for farmer in self.store.farmers:
            if farmer.bill_no is not None and str(farmer.bill_no) == key.lstrip("#"):
                return farmer
        raise ValidationError(f"No farmer record matching {key}", fields=["id"])

    def save_farmer(self, form: FarmerForm) -> BillingRecord:
        """Validate and upsert a farmer record.

        Raises:
            ValidationError: If the form is incomplete; nothing is saved.
        """
        if form.record_id is not None:
            self.get_farmer(form.record_id)
        record = build_billing_record(form)
        return cast(BillingRecord, self.store.upsert(record))

    def delete_farmer(self, record_id: str) -> bool:
        return self._delete(record_id, RecordKind.FARMER)

    def farmer_view(
        self, record_filter: RecordFilter | None = None, today: date | None = None
    ) -> FarmerView:
        """Filtered farmer rows, newest first, reconciled as of `today`."""
        today = today or date.today()
        record_filter = record_filter or RecordFilter()
        records = record_filter.apply(self.store.list(RecordKind.FARMER))

        rows = [
            FarmerRow(
                record=record,
                state=reconcile(record),
                overdue=overdue_notice(
                    record,
                    today,
                    after_days=self.settings.overdue_after_days,
                    months_after_days=self.settings.overdue_months_after_days,
                ),
            )
            for record in records
        ]
        places, crops = suggestions(self.store.farmers)
        return FarmerView(
            rows=rows,
            summary=summarize_farmers(records),
            places=places,
            crops=crops,
        )

    # -- expenses ----------------------------------------------------------

    def save_expense(self, form: ExpenseForm) -> ExpenseRecord:
        """Validate and upsert an expense record.

        Raises:
            ValidationError: If the date or amount is missing; nothing is saved.
        """
        record = build_expense_record(form)
        return cast(ExpenseRecord, self.store.upsert(record))

    def delete_expense(self, record_id: str) -> bool:
        return self._delete(record_id, RecordKind.EXPENSE)

    def expense_view(self) -> ExpenseView:
        rows = self.store.list(RecordKind.EXPENSE)
        return ExpenseView(rows=rows, total=expense_total(rows))

    def analytics(self) -> Analytics:
        return build_analytics(self.store.farmers, self.store.expenses)

    def _delete(self, record_id: str, kind: RecordKind) -> bool:
        record = self.store.get(record_id)
        expected = BillingRecord if kind is RecordKind.FARMER else ExpenseRecord
        if record is not None and not isinstance(record, expected):
            raise ValidationError(f"{record_id} is not a {kind.value} record", fields=["id"])
        return self.store.delete(record_id)

    # -- database file -----------------------------------------------------

    def connect_backup_file(self, path: Path, now: datetime | None = None) -> None:
        """Save the ledger to `path` and keep that file in sync from now on.

        Raises:
            PersistenceError: If the file cannot be written. The previous
                connection stays in place.
        """
        backup = BackupFile(path)
        backup.write(self.store.snapshot())

        self.replicas.backup_file = backup
        self.cache.set_connected_file(backup.path)
        self.cache.mark_backup(now or datetime.now(timezone.utc))
        self._logger.info("backup_file_connected", path=str(backup.path))

    def open_backup_file(self, path: Path) -> None:
        """Replace the ledger with the contents of a database file.

        The file is validated before anything changes. On success it becomes
        the connected file and the local cache is refreshed.

        Raises:
            PersistenceError: If the file cannot be read or is not JSON.
            ValidationError: If it lacks the farmers or expenses collection.
        """
        backup = BackupFile(path)
        payload = backup.read()
        parse_payload(payload)

        self.replicas.backup_file = backup
        self.store.load_all(payload)
        self.cache.set_connected_file(backup.path)
        self._logger.info("backup_file_opened", path=str(backup.path))

    def disconnect_backup_file(self) -> None:
        self.replicas.backup_file = None
        self.cache.set_connected_file(None)

    def backup_reminder(self, now: datetime | None = None) -> int | None:
        """Days since the last backup, if that is past the reminder threshold."""
        last = self.cache.last_backup()
        if last is None:
            return None
        now = now or datetime.now(timezone.utc)
        days = (now - last).days
        if days > self.settings.backup_reminder_days:
            return days
        return None

    # -- exports -----------------------------------------------------------

    def export_spreadsheet(self, directory: Path, today: date | None = None) -> Path:
        today = today or date.today()
        path = Path(directory) / spreadsheet_filename(today)
        return export_farmers_xlsx(self.store.farmers, path)

    def export_backup(
        self, directory: Path, today: date | None = None, now: datetime | None = None
    ) -> Path:
        """Write a dated JSON copy of the ledger and record it as a backup."""
        path = export_backup(self.store.snapshot(), Path(directory), today or date.today())
        self.cache.mark_backup(now or datetime.now(timezone.utc))
        return path

    def share(self, record_id: str) -> tuple[str, str]:
        """Share text for one bill and the WhatsApp link that sends it."""
        record = self.find_farmer(record_id)
        text = share_message(record, currency_symbol=self.settings.currency_symbol)
        return text, whatsapp_url(text)

    def receipt(self, record_id: str, directory: Path) -> Path:
        record = self.find_farmer(record_id)
        return save_receipt(record, Path(directory), business_name=self.settings.business_name)

