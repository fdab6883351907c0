"""Core module exports."""

from indexledger.core.errors import (
    ConfigError,
    ErrorCode,
    IndexLedgerError,
    InternalError,
    StoreError,
    TrackingError,
)
from indexledger.core.logging import (
    bind_run_fields,
    configure_logging,
    new_run_id,
    run_context,
)

__all__ = [
    # Errors
    "ErrorCode",
    "IndexLedgerError",
    "ConfigError",
    "TrackingError",
    "StoreError",
    "InternalError",
    # Logging
    "bind_run_fields",
    "configure_logging",
    "new_run_id",
    "run_context",
]
