"""Settings and logging setup."""

from harvest_ledger.config.logging import configure_logging
from harvest_ledger.config.settings import FlatSettings, get_settings

__all__ = ["FlatSettings", "configure_logging", "get_settings"]
