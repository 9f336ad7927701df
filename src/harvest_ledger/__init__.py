"""Harvest Ledger - billing and expense records for a harvesting service."""

__version__ = "0.1.0"

from harvest_ledger.aggregator import (
    Analytics,
    FarmerSummary,
    RecordFilter,
    crop_rollup,
    expense_category_rollup,
    monthly_rollup,
    net_profit,
    summarize_farmers,
)
from harvest_ledger.billing import compute_total, next_bill_no
from harvest_ledger.config import configure_logging, get_settings
from harvest_ledger.errors import (
    LedgerError,
    PersistenceError,
    UserCancelled,
    ValidationError,
)
from harvest_ledger.ledger import Ledger
from harvest_ledger.reconciler import BillStatus, migrate, overdue_notice, reconcile
from harvest_ledger.records import BillingRecord, ExpenseRecord, RecordKind
from harvest_ledger.store import RecordStore

__all__ = [
    # Version
    "__version__",
    # Records
    "BillingRecord",
    "ExpenseRecord",
    "RecordKind",
    "BillStatus",
    # Core logic
    "reconcile",
    "migrate",
    "overdue_notice",
    "next_bill_no",
    "compute_total",
    "RecordStore",
    # Aggregation
    "RecordFilter",
    "FarmerSummary",
    "Analytics",
    "summarize_farmers",
    "net_profit",
    "monthly_rollup",
    "crop_rollup",
    "expense_category_rollup",
    # Application
    "Ledger",
    # Errors
    "LedgerError",
    "ValidationError",
    "PersistenceError",
    "UserCancelled",
    # Config
    "get_settings",
    "configure_logging",
]
