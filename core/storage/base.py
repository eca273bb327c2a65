"""Blob storage interface and backend selection."""

from typing import Optional, Protocol

from core.config import Settings


class BlobStorage(Protocol):
    async def upload(self, data: bytes, key: str, content_type: Optional[str] = None) -> str:
        ...

    async def download(self, key: str) -> bytes:
        ...

    async def delete(self, key: str) -> None:
        ...

    async def exists(self, key: str) -> bool:
        ...

    async def ensure_bucket(self) -> None:
        ...


def create_storage(settings: Settings) -> BlobStorage:
    """Build the backend named by ``STORAGE_BACKEND``."""
    if settings.storage_backend == "local":
        from core.storage.local import LocalStorage

        return LocalStorage(settings.local_storage_path)

    from core.storage.s3 import S3Storage

    return S3Storage(
        bucket_name=settings.s3_bucket,
        region=settings.s3_region,
        endpoint_url=settings.s3_endpoint,
        access_key=settings.s3_access_key,
        secret_key=settings.s3_secret_key,
    )
