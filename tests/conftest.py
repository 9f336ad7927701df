"""Pytest configuration and fixtures."""

from datetime import date
from decimal import Decimal

import pytest

from harvest_ledger.config.settings import get_settings
from harvest_ledger.records import BillingRecord, ExpenseRecord

SETTINGS_ENV = (
    "HARVEST_BACKUP_FILE",
    "LOG_LEVEL",
    "LOG_FORMAT",
    "CURRENCY_SYMBOL",
    "BUSINESS_NAME",
    "OVERDUE_AFTER_DAYS",
    "OVERDUE_MONTHS_AFTER_DAYS",
    "BACKUP_REMINDER_DAYS",
)


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point the local cache at a temp directory and reset cached settings."""
    for name in SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HARVEST_DATA_DIR", str(tmp_path / "data"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"


@pytest.fixture
def make_farmer():
    """Factory for billing records with sensible defaults."""
    counter = {"n": 0}

    def _make(**overrides) -> BillingRecord:
        counter["n"] += 1
        values = {
            "id": f"farmer-{counter['n']}",
            "name": "Ramesh Patel",
            "date": date(2024, 1, 15),
            "place": "Kota",
            "contact": "9876543210",
            "crop": "Wheat",
            "acres": Decimal("4"),
            "rate": Decimal("1500"),
            "total": Decimal("6000"),
            "paid_amount": Decimal("0"),
        }
        values.update(overrides)
        return BillingRecord(**values)

    return _make


@pytest.fixture
def make_expense():
    """Factory for expense records."""
    counter = {"n": 0}

    def _make(**overrides) -> ExpenseRecord:
        counter["n"] += 1
        values = {
            "id": f"expense-{counter['n']}",
            "date": date(2024, 1, 20),
            "amount": Decimal("500"),
            "category": "Diesel",
            "desc": "Fuel for harvester",
        }
        values.update(overrides)
        return ExpenseRecord(**values)

    return _make


@pytest.fixture
def legacy_payload():
    """A saved database from before payments and bill numbers were tracked."""
    return {
        "farmers": [
            {
                "id": "old-1",
                "name": "Suresh",
                "date": "2023-11-02",
                "contact": "9000000001",
                "place": "Bundi",
                "acres": "3.5",
                "rate": "1600",
                "total": 5600,
                "status": "Paid",
            },
            {
                "id": "old-2",
                "name": "Mahesh",
                "date": "2023-11-05",
                "contact": "9000000002",
                "place": "Bundi",
                "crop": "soybean",
                "acres": "2",
                "rate": "1600",
                "total": 3200,
                "status": "Pending",
            },
        ],
        "expenses": [
            {
                "id": "exp-1",
                "date": "2023-11-03",
                "category": "Diesel",
                "desc": "Fuel",
                "amount": "1200",
            }
        ],
    }
