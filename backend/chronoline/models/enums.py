"""
Enum definitions for Chronoline.

Category and lane ids are dynamic (str) so users can add their own.
"""
from enum import Enum


class StorageMode(str, Enum):
    """Which backing store a client storage adapter talks to."""
    API = "api"
    EMBEDDED = "embedded"
    KEY_VALUE = "key_value"


class StoreStatus(str, Enum):
    """Lifecycle of the client timeline store."""
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class EventStatus(str, Enum):
    """Progress of a workspace event."""
    PLANNED = "planned"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


def normalize_storage_mode(value: str | StorageMode) -> StorageMode:
    """
    Parse a storage mode from config text.

    - Lowercase
    - Strip whitespace
    - Accept dashes for underscores

    Examples:
        "API" -> StorageMode.API
        "key-value" -> StorageMode.KEY_VALUE
    """
    if isinstance(value, StorageMode):
        return value
    return StorageMode(value.strip().lower().replace("-", "_"))
