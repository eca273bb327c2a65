"""Local file storage, a drop-in for S3Storage in development and tests."""

import asyncio
from pathlib import Path
from typing import Optional
import logging

logger = logging.getLogger(__name__)


class LocalStorage:
    """Local file storage handler with the same async interface as S3Storage."""

    def __init__(self, base_path: str = "./storage"):
        """
        Initialize local storage.

        Args:
            base_path: Base directory for file storage
        """
        self.base_path = Path(base_path).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _path_for(self, key: str) -> Path:
        path = (self.base_path / key).resolve()
        if not path.is_relative_to(self.base_path):
            raise ValueError(f"Storage key escapes base path: {key}")
        return path

    async def upload(self, data: bytes, key: str, content_type: Optional[str] = None) -> str:
        path = self._path_for(key)
        await asyncio.to_thread(_write_bytes, path, data)
        logger.info(f"Saved file to {path}")
        return key

    async def download(self, key: str) -> bytes:
        path = self._path_for(key)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {key}")
        return await asyncio.to_thread(path.read_bytes)

    async def delete(self, key: str) -> None:
        path = self._path_for(key)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {key}")
        await asyncio.to_thread(path.unlink)
        logger.info(f"Deleted file: {path}")

    async def exists(self, key: str) -> bool:
        return self._path_for(key).exists()

    async def ensure_bucket(self) -> None:
        self.base_path.mkdir(parents=True, exist_ok=True)


def _write_bytes(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
