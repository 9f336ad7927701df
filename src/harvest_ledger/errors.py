"""Exception types raised by the ledger core."""

from pathlib import Path
from typing import Any


class LedgerError(Exception):
    """Base exception for ledger errors."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.details = details


class ValidationError(LedgerError):
    """A required field is missing or malformed. Nothing was changed."""

    def __init__(
        self,
        message: str,
        fields: list[str] | None = None,
        details: Any = None,
    ):
        super().__init__(message, details=details)
        self.fields = fields or []


class PersistenceError(LedgerError):
    """Reading or writing a replica failed."""

    def __init__(self, message: str, path: Path | None = None, details: Any = None):
        super().__init__(message, details=details)
        self.path = path


class UserCancelled(LedgerError):
    """The user dismissed a prompt or picker."""

    pass
