import time
from typing import Any, Dict, Iterable, Optional

from app.core.exceptions import InvalidRequestException
from app.services import StorageBackend, StoredObject, default_filename
from app.services.storage import original_filename
from app.utils import get_mime_type


def resolve_action(
    action: Optional[str],
    payload: Optional[Dict[str, Any]],
    allowed: Iterable[str],
) -> str:
    """쿼리 파라미터 또는 본문의 action 값 확인"""
    allowed = tuple(allowed)
    resolved = action or (payload or {}).get("action")
    if resolved not in allowed:
        raise InvalidRequestException(
            f"잘못된 작업입니다: {resolved}. 사용 가능: {', '.join(allowed)}"
        )
    return resolved


def output_filename(prefix: str, extension: str) -> str:
    """결과 파일명 (예: merged-1700000000000.pdf)"""
    return f"{prefix}-{int(time.time() * 1000)}.{extension}"


def source_filename(storage: StorageBackend, url: str, fallback: str) -> str:
    """원본 URL의 파일명 (자체 저장소 파일은 키 접두사 제거)"""
    key = storage.key_from_url(url)
    if key is not None:
        return original_filename(key)
    return default_filename(url, fallback)


def savings_percent(original_size: int, new_size: int) -> str:
    if original_size <= 0:
        return "0.0%"
    return f"{(1 - new_size / original_size) * 100:.1f}%"


async def store_output(storage: StorageBackend, data: bytes, filename: str) -> StoredObject:
    """처리 결과를 새 파일로 저장"""
    extension = filename.rsplit(".", 1)[-1] if "." in filename else ""
    return await storage.put(data, filename, get_mime_type(extension))
