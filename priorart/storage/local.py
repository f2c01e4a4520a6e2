"""
Local filesystem page image store.

Layout:
    storage/pages/
        <filing_id>/
            pages/
                page_1.png
                page_2.png
"""

import os
from pathlib import Path

from .base import StorageBackend


class LocalStorage(StorageBackend):

    SCHEME = "local"

    def __init__(self, base_path: str = "storage/pages"):
        # Relative paths resolve from the project root
        if not os.path.isabs(base_path):
            project_root = Path(__file__).parent.parent.parent
            base_path = project_root / base_path

        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _path_for(self, uri: str) -> Path:
        path = (self.base_path / self.get_key_from_uri(uri)).resolve()
        if self.base_path.resolve() not in path.parents:
            raise ValueError(f"Locator escapes storage root: {uri}")
        return path

    def put(self, key: str, data: bytes, content_type: str) -> str:
        path = self._path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return f"{self.SCHEME}://{key}"

    def get(self, uri: str) -> bytes:
        path = self._path_for(uri)
        if not path.exists():
            raise FileNotFoundError(f"Page image not found: {uri}")
        return path.read_bytes()

    def exists(self, uri: str) -> bool:
        return self._path_for(uri).exists()
