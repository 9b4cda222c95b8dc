"""
System-Wide Constants for the Item Mesh Data-Access Layer

All magic numbers and configuration defaults centralized here.
"""

from typing import Final

# =============================================================================
# SIZE AND TIME UNITS
# =============================================================================
KB: Final[int] = 1024

SECOND_MS: Final[int] = 1000
MINUTE_S: Final[int] = 60
HOUR_S: Final[int] = 60 * MINUTE_S

# =============================================================================
# SELECT LANGUAGE
# =============================================================================
# Row-identity pseudo-column: usable in predicates and ORDER BY, never stored
ITEM_NAME: Final[str] = "itemName()"

# Key introducing a nested conjunction inside a where mapping
AND_KEY: Final[str] = "-and"

SELECT_ALL: Final[str] = "*"
SELECT_COUNT: Final[str] = "count(*)"

# Store-side limits (enforced remotely, used here for warnings only)
MAX_COMPARISONS_PER_SELECT: Final[int] = 20

# =============================================================================
# CACHE
# =============================================================================
CACHE_DEFAULT_TTL_S: Final[int] = HOUR_S
CACHE_DEFAULT_MAX_ENTRIES: Final[int] = 100_000
CACHE_COMPRESSION_THRESHOLD_BYTES: Final[int] = 1 * KB
CACHE_KEY_PREFIX: Final[str] = "itemmesh:"

# =============================================================================
# REMOTE EXECUTOR
# =============================================================================
REMOTE_CONNECT_TIMEOUT_MS: Final[int] = 5 * SECOND_MS
REMOTE_READ_TIMEOUT_MS: Final[int] = 30 * SECOND_MS
RETRY_BASE_MS: Final[int] = 100
RETRY_MAX_DELAY_MS: Final[int] = 10 * SECOND_MS
RETRY_MAX_ATTEMPTS: Final[int] = 3
