import re
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator, List, Optional

# 저장소 키 형식: {epoch_ms}-{8자리 hex}-{원본 파일명}
_KEY_PATTERN = re.compile(r"^(\d{10,})-([0-9a-f]{8})-(.+)$")

# 다운로드 스트리밍 청크 크기 (1MB)
STREAM_CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True)
class StoredObject:
    """저장된 파일 (생성 후 변경 불가)"""

    key: str
    url: str
    content_type: str
    created_at: datetime
    size: int = 0

    def age_seconds(self, now: Optional[datetime] = None) -> float:
        """생성 후 경과 시간 (초)"""
        now = now or datetime.now(timezone.utc)
        return (now - self.created_at).total_seconds()


def parse_key_timestamp(key: str) -> Optional[datetime]:
    """키 접두사에서 생성 시각 추출 (형식이 다르면 None)"""
    match = _KEY_PATTERN.match(key)
    if not match:
        return None
    return datetime.fromtimestamp(int(match.group(1)) / 1000, tz=timezone.utc)


def original_filename(key: str) -> str:
    """키에서 타임스탬프/랜덤 접두사를 제거한 원본 파일명"""
    match = _KEY_PATTERN.match(key)
    if not match:
        return key
    return match.group(3)


class StorageBackend(ABC):
    """
    파일 저장소 추상 베이스 클래스

    - 파일 저장 (고유 키 생성)
    - 파일 조회/삭제
    - 전체 목록 조회 (정리 작업용)
    """

    # 파일명 최대 길이 (UTF-8 바이트, 키 접두사 제외)
    MAX_FILENAME_BYTES = 200

    @property
    @abstractmethod
    def name(self) -> str:
        """저장소 이름 (예: 'local')"""
        pass

    def _sanitize_filename(self, filename: str) -> str:
        """
        파일명 정제 (Path Traversal 방지)

        - 경로 구분자 제거
        - 위험 문자 제거
        - '..' 시퀀스 제거
        - 길이 제한
        """
        if not filename:
            return "unnamed"

        # 경로 구분자 및 위험 문자 제거
        sanitized = re.sub(r'[<>:"/\\|?*#%\x00-\x1f]', "_", filename)

        # '..' 시퀀스 제거
        sanitized = sanitized.replace("..", "_")

        # 앞뒤 공백 및 점 제거
        sanitized = sanitized.strip(". ")

        if not sanitized:
            return "unnamed"

        if len(sanitized.encode("utf-8")) > self.MAX_FILENAME_BYTES:
            full_suffix = Path(sanitized).suffix
            stem = sanitized[: len(sanitized) - len(full_suffix)]
            suffix = full_suffix[:16]
            # 문자 경계에서 자르기 (잘린 멀티바이트 문자는 버림)
            budget = self.MAX_FILENAME_BYTES - len(suffix.encode("utf-8"))
            stem = stem.encode("utf-8")[:budget].decode("utf-8", errors="ignore")
            sanitized = stem + suffix

        return sanitized

    def generate_key(self, filename: str) -> str:
        """고유 키 생성 (타임스탬프 + 랜덤 접미사 + 원본 파일명)"""
        timestamp = int(time.time() * 1000)
        random_suffix = uuid.uuid4().hex[:8]
        return f"{timestamp}-{random_suffix}-{self._sanitize_filename(filename)}"

    @abstractmethod
    def url_for(self, key: str) -> str:
        """키에 해당하는 URL"""
        pass

    @abstractmethod
    def key_from_url(self, url: str) -> Optional[str]:
        """이 저장소의 URL이면 키 반환, 아니면 None"""
        pass

    @abstractmethod
    async def put(self, data: bytes, filename: str, content_type: str) -> StoredObject:
        """파일 저장 후 StoredObject 반환"""
        pass

    @abstractmethod
    async def get(self, key: str) -> bytes:
        """
        파일 내용 조회

        Raises:
            StoredFileNotFoundException: 파일이 없는 경우
        """
        pass

    @abstractmethod
    async def open_stream(self, key: str) -> AsyncIterator[bytes]:
        """
        파일 내용을 청크 단위로 읽는 비동기 이터레이터 반환

        파일 존재 여부는 이터레이터 반환 전에 확인합니다.

        Raises:
            StoredFileNotFoundException: 파일이 없는 경우
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """파일 삭제 (없는 파일이면 False)"""
        pass

    @abstractmethod
    async def list_objects(self) -> List[StoredObject]:
        """저장된 모든 파일 목록"""
        pass
