import logging
from typing import Optional

from fastapi import APIRouter, File, UploadFile

from app.api.deps import SettingsDep, StorageDep
from app.core.exceptions import FileTooLargeException, InvalidRequestException
from app.models import UploadResponse
from app.utils import detect_format, get_mime_type, validate_file_signature

logger = logging.getLogger(__name__)

router = APIRouter()

# 업로드 청크 크기 (1MB)
CHUNK_SIZE = 1024 * 1024

_GENERIC_CONTENT_TYPES = ("", "application/octet-stream")


@router.post("/upload", response_model=UploadResponse)
async def upload_file(
    settings: SettingsDep,
    storage: StorageDep,
    file: Optional[UploadFile] = File(None, description="업로드할 파일"),
):
    """
    파일 업로드 API

    - **file**: 업로드할 파일 (multipart/form-data)

    저장된 파일의 URL을 반환합니다. 이 URL을 각 도구 API의 `url`로 사용합니다.
    """
    if file is None or not file.filename:
        raise InvalidRequestException("업로드할 파일이 없습니다")

    # Content-Length로 사전 크기 검증 (있는 경우)
    if file.size and file.size > settings.MAX_FILE_SIZE_BYTES:
        raise FileTooLargeException(settings.MAX_FILE_SIZE_MB)

    chunks = []
    total_size = 0
    while True:
        chunk = await file.read(CHUNK_SIZE)
        if not chunk:
            break
        total_size += len(chunk)
        if total_size > settings.MAX_FILE_SIZE_BYTES:
            raise FileTooLargeException(settings.MAX_FILE_SIZE_MB)
        chunks.append(chunk)

    data = b"".join(chunks)
    extension = file.filename.rsplit(".", 1)[-1] if "." in file.filename else ""

    # 확장자와 실제 내용(매직 바이트)이 다르면 거부
    if extension and not validate_file_signature(data, extension):
        raise InvalidRequestException(f"파일 내용이 확장자(.{extension})와 일치하지 않습니다")

    content_type = file.content_type or ""
    if content_type in _GENERIC_CONTENT_TYPES:
        content_type = get_mime_type(detect_format(data) or extension)

    stored = await storage.put(data, file.filename, content_type)
    logger.info(f"파일 업로드: {stored.key} ({total_size} bytes, {storage.name})")

    return UploadResponse(
        url=stored.url,
        pathname=stored.key,
        filename=file.filename,
        size=total_size,
        content_type=content_type,
    )
