"""One-way exports: farmer spreadsheet and JSON backup."""

from collections.abc import Iterable
from datetime import date
from pathlib import Path
from typing import Any

import structlog
from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from harvest_ledger.errors import PersistenceError
from harvest_ledger.persistence import write_json_atomic
from harvest_ledger.records import BillingRecord

logger = structlog.get_logger(__name__)

FARMER_COLUMNS = [
    "id",
    "billNo",
    "name",
    "date",
    "contact",
    "place",
    "crop",
    "acres",
    "rate",
    "total",
    "paidAmount",
    "status",
    "isSettled",
    "comments",
]
SHEET_TITLE = "Farmers"


def spreadsheet_filename(today: date) -> str:
    return f"Harvester_Farmers_{today.isoformat()}.xlsx"


def backup_filename(today: date) -> str:
    return f"harvester_backup_{today.isoformat()}.json"


def _autosize(ws: Any) -> None:
    widths: dict[int, int] = {}
    for row in ws.iter_rows(values_only=True):
        for column, value in enumerate(row, start=1):
            length = len(str(value)) if value is not None else 0
            widths[column] = max(widths.get(column, 0), length)
    for column, width in widths.items():
        ws.column_dimensions[get_column_letter(column)].width = max(10, min(width + 2, 60))


def export_farmers_xlsx(records: Iterable[BillingRecord], path: Path) -> Path:
    """Write one row per farmer record, with a header of persisted field names."""
    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_TITLE

    ws.append(FARMER_COLUMNS)
    for cell in ws[1]:
        cell.font = Font(bold=True)

    count = 0
    for record in records:
        row = record.to_dict()
        ws.append([row[column] for column in FARMER_COLUMNS])
        count += 1

    _autosize(ws)
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        wb.save(path)
    except OSError as e:
        raise PersistenceError(f"could not write {path}: {e}", path=path) from e
    logger.info("spreadsheet_exported", path=str(path), rows=count)
    return path


def export_backup(snapshot: dict[str, Any], directory: Path, today: date) -> Path:
    """Write the full persisted structure as a dated JSON backup file."""
    path = Path(directory) / backup_filename(today)
    write_json_atomic(path, snapshot)
    logger.info("backup_exported", path=str(path))
    return path
