from app.core.config import Settings
from app.services.storage.base import (
    STREAM_CHUNK_SIZE,
    StorageBackend,
    StoredObject,
    original_filename,
    parse_key_timestamp,
)
from app.services.storage.local_storage import LocalStorage
from app.services.storage.s3_storage import S3Storage, create_s3_client


def create_storage(settings: Settings) -> StorageBackend:
    """설정에 맞는 저장소 생성 (Blob 설정이 완전하면 S3, 아니면 로컬)"""
    if settings.is_blob_enabled:
        return S3Storage(
            client=create_s3_client(settings),
            bucket=settings.BLOB_BUCKET_NAME,
            public_url=settings.BLOB_PUBLIC_URL,
            prefix=settings.BLOB_PREFIX,
            url_expires_in=settings.FILE_TTL_SECONDS,
        )
    return LocalStorage(
        upload_dir=settings.UPLOAD_DIR,
        base_url=settings.PUBLIC_BASE_URL,
    )


__all__ = [
    "STREAM_CHUNK_SIZE",
    "StorageBackend",
    "StoredObject",
    "LocalStorage",
    "S3Storage",
    "create_s3_client",
    "create_storage",
    "original_filename",
    "parse_key_timestamp",
]
