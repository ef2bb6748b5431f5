"""S3 호환 관리형 Blob 저장소 (AWS S3, Cloudflare R2 등)"""

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import AsyncIterator, List, Optional
from urllib.parse import quote, unquote, urlsplit

import boto3
from botocore.exceptions import ClientError

from app.core.config import Settings
from app.core.exceptions import StoredFileNotFoundException
from app.services.storage.base import (
    STREAM_CHUNK_SIZE,
    StorageBackend,
    StoredObject,
    parse_key_timestamp,
)
from app.utils.file_validator import get_mime_type

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"NoSuchKey", "404", "NotFound"}


def create_s3_client(settings: Settings):
    """설정값으로 boto3 S3 클라이언트 생성"""
    if not settings.is_blob_enabled:
        raise RuntimeError(
            "Blob 저장소가 설정되지 않았습니다. BLOB 환경 변수를 확인하세요."
        )
    return boto3.client(
        "s3",
        aws_access_key_id=settings.BLOB_ACCESS_KEY_ID,
        aws_secret_access_key=settings.BLOB_SECRET_ACCESS_KEY,
        endpoint_url=settings.BLOB_ENDPOINT_URL,
        region_name=settings.BLOB_REGION,
    )


class S3Storage(StorageBackend):
    """S3 호환 API 기반 파일 업로드/조회/삭제"""

    def __init__(
        self,
        client,
        bucket: str,
        public_url: Optional[str] = None,
        prefix: str = "uploads",
        url_expires_in: int = 3600,
    ):
        self.client = client
        self.bucket = bucket
        self.public_url = public_url.rstrip("/") if public_url else None
        self.prefix = prefix.strip("/")
        self.url_expires_in = url_expires_in

    @property
    def name(self) -> str:
        return "blob"

    def _object_key(self, key: str) -> str:
        return f"{self.prefix}/{key}" if self.prefix else key

    def _strip_prefix(self, object_key: str) -> str:
        if self.prefix and object_key.startswith(f"{self.prefix}/"):
            return object_key[len(self.prefix) + 1:]
        return object_key

    def url_for(self, key: str) -> str:
        """퍼블릭 URL (없으면 서명된 다운로드 URL)"""
        object_key = self._object_key(key)
        if self.public_url:
            return f"{self.public_url}/{quote(object_key)}"
        return self.client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket, "Key": object_key},
            ExpiresIn=self.url_expires_in,
        )

    def key_from_url(self, url: str) -> Optional[str]:
        if not self.public_url or not url.startswith(f"{self.public_url}/"):
            return None
        object_key = unquote(urlsplit(url).path).lstrip("/")
        if self.prefix and not object_key.startswith(f"{self.prefix}/"):
            return None
        return self._strip_prefix(object_key) or None

    async def put(self, data: bytes, filename: str, content_type: str) -> StoredObject:
        key = self.generate_key(filename)
        object_key = self._object_key(key)

        try:
            await asyncio.to_thread(
                self.client.put_object,
                Bucket=self.bucket,
                Key=object_key,
                Body=data,
                ContentType=content_type,
            )
        except ClientError as e:
            logger.error(f"Blob 업로드 실패: {e}")
            raise

        logger.info(f"Blob 업로드 완료: {object_key}")

        return StoredObject(
            key=key,
            url=self.url_for(key),
            content_type=content_type,
            created_at=parse_key_timestamp(key) or datetime.now(timezone.utc),
            size=len(data),
        )

    def _get_sync(self, key: str) -> bytes:
        response = self.client.get_object(Bucket=self.bucket, Key=self._object_key(key))
        return response["Body"].read()

    def _raise_get_error(self, error: ClientError, key: str) -> None:
        if error.response.get("Error", {}).get("Code") in _NOT_FOUND_CODES:
            raise StoredFileNotFoundException(key)
        logger.error(f"Blob 조회 실패: {error}")
        raise error

    async def get(self, key: str) -> bytes:
        try:
            return await asyncio.to_thread(self._get_sync, key)
        except ClientError as e:
            self._raise_get_error(e, key)

    async def open_stream(self, key: str) -> AsyncIterator[bytes]:
        try:
            response = await asyncio.to_thread(
                self.client.get_object,
                Bucket=self.bucket,
                Key=self._object_key(key),
            )
        except ClientError as e:
            self._raise_get_error(e, key)
        return self._iter_body(response["Body"])

    async def _iter_body(self, body) -> AsyncIterator[bytes]:
        try:
            while True:
                chunk = await asyncio.to_thread(body.read, STREAM_CHUNK_SIZE)
                if not chunk:
                    break
                yield chunk
        finally:
            body.close()

    async def delete(self, key: str) -> bool:
        try:
            await asyncio.to_thread(
                self.client.delete_object,
                Bucket=self.bucket,
                Key=self._object_key(key),
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in _NOT_FOUND_CODES:
                return False
            logger.error(f"Blob 삭제 실패: {e}")
            raise
        return True

    def _list_sync(self) -> List[StoredObject]:
        objects = []
        paginator = self.client.get_paginator("list_objects_v2")
        pages = paginator.paginate(
            Bucket=self.bucket,
            Prefix=f"{self.prefix}/" if self.prefix else "",
        )

        for page in pages:
            for obj in page.get("Contents", []):
                key = self._strip_prefix(obj["Key"])
                if not key:
                    continue
                objects.append(
                    StoredObject(
                        key=key,
                        url=self.url_for(key),
                        content_type=get_mime_type(PurePosixPath(key).suffix),
                        created_at=obj["LastModified"],
                        size=obj.get("Size", 0),
                    )
                )
        return objects

    async def list_objects(self) -> List[StoredObject]:
        try:
            return await asyncio.to_thread(self._list_sync)
        except ClientError as e:
            logger.error(f"Blob 목록 조회 실패: {e}")
            raise
