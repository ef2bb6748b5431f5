"""원본 파일 다운로드 서비스"""

import logging
from typing import Optional
from urllib.parse import unquote, urlsplit

import httpx

from app.core.exceptions import FileTooLargeException, SourceFetchException
from app.services.storage import StorageBackend
from app.utils.redaction import get_safe_error_message

logger = logging.getLogger(__name__)


class SourceFetcher:
    """
    URL로 원본 파일 바이트 조회

    - 자체 저장소 URL이면 저장소에서 직접 읽음
    - 외부 URL이면 HTTP로 다운로드 (크기 제한 적용)
    """

    def __init__(
        self,
        storage: StorageBackend,
        http_client: httpx.AsyncClient,
        max_size: int,
    ):
        self.storage = storage
        self.http_client = http_client
        self.max_size = max_size

    async def fetch(self, url: str) -> bytes:
        """
        원본 파일 다운로드

        Args:
            url: 원본 파일 URL

        Returns:
            파일 바이트

        Raises:
            SourceFetchException: 다운로드 실패 (400)
            FileTooLargeException: 크기 초과 (413)
        """
        key = self.storage.key_from_url(url)
        if key is not None:
            return await self.storage.get(key)

        return await self._download(url)

    async def _download(self, url: str) -> bytes:
        chunks = []
        total_size = 0

        try:
            async with self.http_client.stream("GET", url) as response:
                if response.status_code >= 400:
                    logger.warning(f"원본 다운로드 실패: HTTP {response.status_code} ({url})")
                    raise SourceFetchException(
                        f"원본 파일을 가져오지 못했습니다 (HTTP {response.status_code})"
                    )

                async for chunk in response.aiter_bytes():
                    total_size += len(chunk)
                    if total_size > self.max_size:
                        raise FileTooLargeException(self.max_size // (1024 * 1024))
                    chunks.append(chunk)

        except httpx.HTTPError as e:
            logger.warning(f"원본 다운로드 오류: {get_safe_error_message(e)}")
            raise SourceFetchException()

        return b"".join(chunks)

    async def fetch_many(self, urls: list[str]) -> list[bytes]:
        """여러 원본을 순서대로 다운로드"""
        results = []
        for url in urls:
            results.append(await self.fetch(url))
        return results


def default_filename(url: str, fallback: Optional[str] = None) -> str:
    """URL 마지막 경로에서 파일명 추출"""
    name = unquote(urlsplit(url).path.rsplit("/", 1)[-1])
    return name or fallback or "download"
