"""로컬 파일시스템 저장소 (개발 환경)"""

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator, List, Optional
from urllib.parse import quote, unquote, urlsplit

import aiofiles

from app.core.exceptions import StoredFileNotFoundException
from app.services.storage.base import (
    STREAM_CHUNK_SIZE,
    StorageBackend,
    StoredObject,
    parse_key_timestamp,
)
from app.utils.file_validator import get_mime_type

logger = logging.getLogger(__name__)


class LocalStorage(StorageBackend):
    """
    로컬 디렉토리 저장소

    파일은 upload_dir에 저장되고 `{base_url}{mount_path}/{key}` URL로 제공됩니다.
    (main.py에서 StaticFiles로 mount_path를 서빙)
    """

    def __init__(
        self,
        upload_dir: Path,
        base_url: str,
        mount_path: str = "/uploads",
    ):
        self.upload_dir = upload_dir
        self.base_url = base_url.rstrip("/")
        self.mount_path = "/" + mount_path.strip("/")

        # 디렉토리 생성
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    @property
    def name(self) -> str:
        return "local"

    def _resolve_path(self, key: str) -> Path:
        """키를 파일 경로로 변환 (업로드 디렉토리 밖이면 404)"""
        if not key or "/" in key or "\\" in key or key in (".", ".."):
            raise StoredFileNotFoundException(key)

        path = self.upload_dir / key
        try:
            resolved = path.resolve()
            if resolved.parent != self.upload_dir.resolve():
                raise StoredFileNotFoundException(key)
        except (OSError, ValueError):
            raise StoredFileNotFoundException(key)
        return path

    def url_for(self, key: str) -> str:
        return f"{self.base_url}{self.mount_path}/{quote(key)}"

    def key_from_url(self, url: str) -> Optional[str]:
        prefix = f"{self.base_url}{self.mount_path}/"
        if not url.startswith(prefix):
            return None
        # 쿼리/프래그먼트 제거
        path = urlsplit(url).path
        key = unquote(path.rsplit("/", 1)[-1])
        return key or None

    async def put(self, data: bytes, filename: str, content_type: str) -> StoredObject:
        key = self.generate_key(filename)
        path = self._resolve_path(key)

        async with aiofiles.open(path, "wb") as f:
            await f.write(data)

        logger.info(f"로컬 저장 완료: {key} ({len(data)} bytes)")

        return StoredObject(
            key=key,
            url=self.url_for(key),
            content_type=content_type,
            created_at=parse_key_timestamp(key) or datetime.now(timezone.utc),
            size=len(data),
        )

    async def get(self, key: str) -> bytes:
        path = self._resolve_path(key)
        try:
            async with aiofiles.open(path, "rb") as f:
                return await f.read()
        except (FileNotFoundError, IsADirectoryError):
            raise StoredFileNotFoundException(key)

    async def open_stream(self, key: str) -> AsyncIterator[bytes]:
        path = self._resolve_path(key)
        if not await asyncio.to_thread(path.is_file):
            raise StoredFileNotFoundException(key)
        return self._iter_file(path)

    async def _iter_file(self, path: Path) -> AsyncIterator[bytes]:
        async with aiofiles.open(path, "rb") as f:
            while True:
                chunk = await f.read(STREAM_CHUNK_SIZE)
                if not chunk:
                    break
                yield chunk

    async def delete(self, key: str) -> bool:
        path = self._resolve_path(key)
        try:
            await asyncio.to_thread(path.unlink)
        except FileNotFoundError:
            return False
        return True

    def _list_sync(self) -> List[StoredObject]:
        objects = []
        if not self.upload_dir.exists():
            return objects

        for item in self.upload_dir.iterdir():
            # 숨김 파일(.gitkeep 등)과 디렉토리는 제외
            if item.name.startswith(".") or not item.is_file():
                continue

            stat = item.stat()
            created_at = parse_key_timestamp(item.name) or datetime.fromtimestamp(
                stat.st_mtime, tz=timezone.utc
            )
            objects.append(
                StoredObject(
                    key=item.name,
                    url=self.url_for(item.name),
                    content_type=get_mime_type(item.suffix),
                    created_at=created_at,
                    size=stat.st_size,
                )
            )
        return objects

    async def list_objects(self) -> List[StoredObject]:
        return await asyncio.to_thread(self._list_sync)
