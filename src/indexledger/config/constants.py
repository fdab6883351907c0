"""Configuration constants.

This module contains truly constant values that should NOT be user-configurable.
For configurable values, see models.py (TrackingConfig, DatabaseConfig, etc.).
"""

# =============================================================================
# Tracking
# =============================================================================

DEFAULT_CHUNK_SIZE = 1000
"""Identifiers written per independently committed chunk."""

CHUNK_SIZE_MAX = 10_000
"""Hard cap on chunk size. Keeps IN lists below common bound-parameter limits."""

DEFAULT_TABLE_PREFIX = "item_tracking_"
"""Ledger tables are named <prefix><item_type>."""

UNLIMITED = -1
"""Limit value meaning "no row limit" for changed-item queries."""

CLEAN = 0
"""Value of the changed marker for an up-to-date entry."""
