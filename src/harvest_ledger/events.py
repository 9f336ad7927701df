"""Mutation events published by the record store to its hooks."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


class EventType(str, Enum):
    """Types of store mutations."""

    FARMER_SAVED = "farmer.saved"
    FARMER_DELETED = "farmer.deleted"
    EXPENSE_SAVED = "expense.saved"
    EXPENSE_DELETED = "expense.deleted"
    LEDGER_LOADED = "ledger.loaded"


@dataclass
class LedgerEvent:
    """A single change to the record collections."""

    event_type: EventType
    record_id: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_id: UUID = field(default_factory=uuid4)
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serialize event to a dictionary for logging."""
        return {
            "id": str(self.event_id),
            "type": self.event_type.value,
            "record_id": self.record_id,
            "timestamp": self.timestamp.isoformat(),
            "data": self.data,
        }


def farmer_saved(record_id: str, bill_no: int | None, created: bool) -> LedgerEvent:
    """Create a farmer saved event."""
    return LedgerEvent(
        event_type=EventType.FARMER_SAVED,
        record_id=record_id,
        data={"bill_no": bill_no, "created": created},
    )


def expense_saved(record_id: str, created: bool) -> LedgerEvent:
    """Create an expense saved event."""
    return LedgerEvent(
        event_type=EventType.EXPENSE_SAVED,
        record_id=record_id,
        data={"created": created},
    )


def record_deleted(record_id: str, farmer: bool) -> LedgerEvent:
    """Create a deletion event for either collection."""
    return LedgerEvent(
        event_type=EventType.FARMER_DELETED if farmer else EventType.EXPENSE_DELETED,
        record_id=record_id,
    )


def ledger_loaded(farmer_count: int, expense_count: int) -> LedgerEvent:
    """Create an event for a bulk replace of both collections."""
    return LedgerEvent(
        event_type=EventType.LEDGER_LOADED,
        data={"farmers": farmer_count, "expenses": expense_count},
    )
