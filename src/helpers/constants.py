"""Common configuration constants used across the application."""

# Index names
BLOCK_INDEX = "block"
"""Index holding one document per block height"""

TRANSACTION_INDEX = "tx"
"""Index holding one document per transaction hash"""

ADDRESS_INDEX = "address"
"""Index holding one document per referenced account"""

ALL_INDICES = (BLOCK_INDEX, TRANSACTION_INDEX, ADDRESS_INDEX)
"""Indices created by the bootstrap step"""

# Chain Constants
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
"""Sentinel the chain reports when no contract was created"""

GENESIS_HEIGHT = 0
"""Height the sync starts from when the index is empty"""

# Batch Size Constants
ID_LOOKUP_BATCH_SIZE = 1000
"""Maximum number of IDs per existence lookup request"""

RECEIPT_CONCURRENCY = 10
"""Default number of receipt fetches in flight for one block"""

# HTTP and Network Constants
DEFAULT_TIMEOUT = 30.0
"""Default HTTP request timeout in seconds"""

SYNC_INTERVAL = 5.0
"""Delay between catch-up passes once the index reaches the chain head"""

# HTTP Connection Pooling
MAX_KEEPALIVE_CONNECTIONS = 5
"""Maximum number of keepalive connections in pool"""

MAX_CONNECTIONS = 10
"""Maximum total number of connections"""


__all__ = [
    "ADDRESS_INDEX",
    "ALL_INDICES",
    "BLOCK_INDEX",
    "DEFAULT_TIMEOUT",
    "GENESIS_HEIGHT",
    "ID_LOOKUP_BATCH_SIZE",
    "MAX_CONNECTIONS",
    "MAX_KEEPALIVE_CONNECTIONS",
    "RECEIPT_CONCURRENCY",
    "SYNC_INTERVAL",
    "TRANSACTION_INDEX",
    "ZERO_ADDRESS",
]
