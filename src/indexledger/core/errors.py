"""indexledger error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Tracking
- 4xxx: Store
- 9xxx: Internal
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_FILE_NOT_FOUND = 2004

    # Tracking (3xxx)
    INDEX_TYPE_MISMATCH = 3001
    INVALID_ITEM_TYPE = 3002

    # Store (4xxx)
    STORE_UNAVAILABLE = 4001
    STORE_WRITE_FAILED = 4002

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True, slots=True)
class IndexLedgerError(Exception):
    """Base error with structured context."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'INDEX_TYPE_MISMATCH')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(IndexLedgerError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )


class TrackingError(IndexLedgerError):
    """Errors raised by the index tracker before touching the store."""

    @classmethod
    def index_type_mismatch(
        cls, index_id: int, index_item_type: str, tracker_item_type: str
    ) -> "TrackingError":
        return cls(
            code=ErrorCode.INDEX_TYPE_MISMATCH,
            message=(
                f"Index {index_id} tracks item type '{index_item_type}', "
                f"not '{tracker_item_type}'"
            ),
            details={
                "index_id": index_id,
                "index_item_type": index_item_type,
                "tracker_item_type": tracker_item_type,
            },
        )

    @classmethod
    def invalid_item_type(cls, item_type: str) -> "TrackingError":
        return cls(
            code=ErrorCode.INVALID_ITEM_TYPE,
            message=f"Invalid item type '{item_type}': use lowercase letters, digits and _",
            details={"item_type": item_type},
        )


class StoreError(IndexLedgerError):
    """Backing store failures. Always retryable: tracker writes are idempotent."""

    @classmethod
    def unavailable(cls, operation: str, reason: str) -> "StoreError":
        return cls(
            code=ErrorCode.STORE_UNAVAILABLE,
            message=f"Store unavailable during {operation}: {reason}",
            retryable=True,
            details={"operation": operation, "reason": reason},
        )

    @classmethod
    def write_failed(cls, operation: str, reason: str) -> "StoreError":
        return cls(
            code=ErrorCode.STORE_WRITE_FAILED,
            message=f"Store write failed during {operation}: {reason}",
            retryable=True,
            details={"operation": operation, "reason": reason},
        )


class InternalError(IndexLedgerError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
