"""
Page image storage.

Usage:
    from priorart.storage import get_storage

    storage = get_storage()
    uri = storage.put("<filing_id>/pages/page_1.png", png_bytes, "image/png")
    png_bytes = storage.get(uri)

Environment Variables:
    STORAGE_BACKEND: "local" (default)
    STORAGE_PATH: Base path for local storage (default: "storage/pages")
"""

import os

from priorart import config

from .base import StorageBackend
from .local import LocalStorage

_storage_instance: StorageBackend = None


def get_storage() -> StorageBackend:
    """
    Get the configured storage backend (singleton).

    Raises:
        ValueError: If unknown backend configured
    """
    global _storage_instance

    if _storage_instance is not None:
        return _storage_instance

    backend = os.environ.get("STORAGE_BACKEND", "local")
    if backend != "local":
        raise ValueError(f"Unknown storage backend: {backend}")

    _storage_instance = LocalStorage(config.STORAGE_PATH)
    return _storage_instance


def reset_storage() -> None:
    """Reset the storage singleton (for testing)."""
    global _storage_instance
    _storage_instance = None


__all__ = ["StorageBackend", "LocalStorage", "get_storage", "reset_storage"]
