"""
Page Image Store interface.

Rendered diagram pages are stored as blobs and referenced from a filing's
raw content by URI (locator), e.g. "local://<filing_id>/pages/page_3.png".
"""

from abc import ABC, abstractmethod


class StorageBackend(ABC):
    """Abstract base class for page image storage."""

    SCHEME: str = ""

    @abstractmethod
    def put(self, key: str, data: bytes, content_type: str) -> str:
        """Store bytes under key and return the locator URI."""
        pass

    @abstractmethod
    def get(self, uri: str) -> bytes:
        """
        Retrieve bytes by locator.

        Raises:
            FileNotFoundError: If nothing is stored at the locator
        """
        pass

    @abstractmethod
    def exists(self, uri: str) -> bool:
        pass

    def get_key_from_uri(self, uri: str) -> str:
        prefix = f"{self.SCHEME}://"
        if uri.startswith(prefix):
            return uri[len(prefix):]
        return uri
