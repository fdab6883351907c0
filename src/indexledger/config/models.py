"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (INDEXLEDGER__SECTION__KEY)
3. Explicit YAML file, or ./indexledger.yaml
4. Global YAML (~/.config/indexledger/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    INDEXLEDGER__<SECTION>__<KEY>=<VALUE>

Examples:
    INDEXLEDGER__LOGGING__LEVEL=DEBUG
    INDEXLEDGER__DATABASE__URL=postgresql://search@db/search
    INDEXLEDGER__TRACKING__CHUNK_SIZE=500
"""

import re
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from indexledger.config.constants import (
    CHUNK_SIZE_MAX,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_TABLE_PREFIX,
)

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

_TABLE_PREFIX_RE = re.compile(r"^[a-z][a-z0-9_]*$")


class LogOutputConfig(BaseModel):
    """Single logging output configuration."""

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        INDEXLEDGER__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every tracker mutation.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class DatabaseConfig(BaseModel):
    """Backing store configuration.

    Env vars:
        INDEXLEDGER__DATABASE__URL: SQLAlchemy URL of the ledger store
        INDEXLEDGER__DATABASE__BUSY_TIMEOUT_MS: SQLite busy timeout
    """

    url: str = Field(
        default="sqlite:///indexledger.db",
        description="SQLAlchemy database URL holding the ledger tables.",
    )
    busy_timeout_ms: int = Field(
        default=30000,
        description="SQLite busy timeout (ms). How long concurrent writers wait for locks. "
        "RISK: Too low turns contention into StoreUnavailable errors.",
    )

    @field_validator("busy_timeout_ms")
    @classmethod
    def validate_busy_timeout(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"busy_timeout_ms must be >= 0, got {v}")
        return v


class TrackingConfig(BaseModel):
    """Index tracker configuration.

    Env vars:
        INDEXLEDGER__TRACKING__CHUNK_SIZE: Rows per independently committed write
        INDEXLEDGER__TRACKING__SEED_PAGE_SIZE: Ids read per page when seeding from an iterable
        INDEXLEDGER__TRACKING__TABLE_PREFIX: Prefix of per-item-type ledger tables
    """

    chunk_size: int = Field(
        default=DEFAULT_CHUNK_SIZE,
        description="Max identifiers per write statement/transaction. "
        "TRADEOFF: Larger chunks are faster but hold locks longer.",
    )
    seed_page_size: int = Field(
        default=DEFAULT_CHUNK_SIZE,
        description="Identifiers read per page when seeding without insert-select.",
    )
    table_prefix: str = Field(
        default=DEFAULT_TABLE_PREFIX,
        description="Ledger table name prefix; the item type is appended.",
    )

    @field_validator("chunk_size", "seed_page_size")
    @classmethod
    def validate_size(cls, v: int) -> int:
        if not (1 <= v <= CHUNK_SIZE_MAX):
            raise ValueError(f"Size must be 1-{CHUNK_SIZE_MAX}, got {v}")
        return v

    @field_validator("table_prefix")
    @classmethod
    def validate_table_prefix(cls, v: str) -> str:
        if not _TABLE_PREFIX_RE.match(v):
            raise ValueError(f"Table prefix must match [a-z][a-z0-9_]*, got {v!r}")
        return v


class IndexLedgerConfig(BaseModel):
    """Root configuration for indexledger."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    tracking: TrackingConfig = Field(default_factory=TrackingConfig)
