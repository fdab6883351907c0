"""Config module exports."""

from indexledger.config.loader import load_config
from indexledger.config.models import (
    DatabaseConfig,
    IndexLedgerConfig,
    LoggingConfig,
    LogOutputConfig,
    TrackingConfig,
)

__all__ = [
    "load_config",
    "IndexLedgerConfig",
    "DatabaseConfig",
    "LoggingConfig",
    "LogOutputConfig",
    "TrackingConfig",
]
