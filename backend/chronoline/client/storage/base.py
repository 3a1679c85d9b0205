"""
Storage adapter interface.

One timeline-CRUD surface regardless of backing store. Variants are chosen
once, at construction, from a ``StorageMode``.
"""

import secrets
import string
import time
from abc import ABC, abstractmethod
from typing import Any

from chronoline.client.models import StorageInfo, TimelineData
from chronoline.config import settings
from chronoline.models import StorageMode, normalize_storage_mode

_BASE36 = string.digits + string.ascii_lowercase


def generate_id() -> str:
    """Return ``<epoch-ms>-<9 random base36 chars>``."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"{int(time.time() * 1000)}-{suffix}"


class StorageAdapter(ABC):
    mode: StorageMode

    async def init(self) -> None:
        """Prepare the backing store. Safe to call more than once."""

    def set_auth_token(self, token: str | None) -> None:
        """Bearer token for stores that need one; ignored by local stores."""

    async def close(self) -> None:
        """Release any held resources."""

    @abstractmethod
    async def save_timeline(self, timeline: TimelineData) -> TimelineData:
        """Persist ``timeline`` and return the stored snapshot."""

    @abstractmethod
    async def load_timeline(self, timeline_id: str) -> TimelineData: ...

    @abstractmethod
    async def delete_timeline(self, timeline_id: str) -> None: ...

    @abstractmethod
    async def list_timelines(self) -> list[str]: ...

    @abstractmethod
    async def timeline_exists(self, timeline_id: str) -> bool: ...

    @abstractmethod
    async def save_image(self, filename: str, data_url: str) -> str:
        """Store an image and return the filename it was stored under."""

    @abstractmethod
    async def load_image(self, filename: str) -> str:
        """Return the image as a data URL."""

    @abstractmethod
    async def delete_image(self, filename: str) -> None: ...

    @abstractmethod
    async def export_timeline(self, timeline_id: str) -> dict[str, Any]:
        """Return the ``{timeline, images}`` export document."""

    @abstractmethod
    async def import_timeline(self, document: dict[str, Any]) -> TimelineData:
        """Create a new timeline from an export document or a bare timeline."""

    @abstractmethod
    async def get_storage_info(self) -> StorageInfo: ...

    def generate_id(self) -> str:
        return generate_id()


def create_storage_adapter(mode: str | StorageMode | None = None, **kwargs: Any) -> StorageAdapter:
    """
    Build the adapter for ``mode`` (defaults to ``CLIENT_STORAGE_MODE``).

    Keyword arguments are passed to the adapter's constructor.
    """
    from chronoline.client.storage.api import ApiStorageAdapter
    from chronoline.client.storage.local import EmbeddedStorageAdapter, KeyValueStorageAdapter

    mode = normalize_storage_mode(mode or settings.CLIENT_STORAGE_MODE)
    if mode is StorageMode.API:
        return ApiStorageAdapter(**kwargs)
    if mode is StorageMode.EMBEDDED:
        return EmbeddedStorageAdapter(**kwargs)
    return KeyValueStorageAdapter(**kwargs)
