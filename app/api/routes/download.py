import logging
from typing import Optional
from urllib.parse import quote

import httpx
from fastapi import APIRouter, Query
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from app.api.deps import HttpClientDep, StorageDep
from app.core.exceptions import InvalidRequestException, StoredFileNotFoundException
from app.services import default_filename
from app.services.storage import original_filename
from app.utils import get_safe_error_message

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_content_disposition(filename: str) -> str:
    """Content-Disposition 헤더 생성 (한글 파일명 지원)"""
    # RFC 5987 인코딩
    encoded_filename = quote(filename)
    return f"attachment; filename*=UTF-8''{encoded_filename}"


@router.get("/download")
async def download_file(
    storage: StorageDep,
    http_client: HttpClientDep,
    url: Optional[str] = Query(None, description="다운로드할 파일 URL"),
    filename: Optional[str] = Query(None, description="저장될 파일명"),
):
    """
    파일 다운로드 (첨부 파일로 전달)

    - **url**: 파일 URL (업로드/변환 결과 URL)
    - **filename**: 다운로드 파일명 (생략시 원본 파일명)

    자체 저장소 파일과 외부 URL 모두 청크 단위 스트리밍으로 전달합니다.
    """
    if not url:
        raise InvalidRequestException("url 파라미터가 필요합니다")

    key = storage.key_from_url(url)
    if key is not None:
        chunks = await storage.open_stream(key)
        download_name = filename or original_filename(key) or "download"

        return StreamingResponse(
            chunks,
            media_type="application/octet-stream",
            headers={"Content-Disposition": _get_content_disposition(download_name)},
        )

    try:
        upstream = await http_client.send(http_client.build_request("GET", url), stream=True)
    except httpx.HTTPError as e:
        logger.warning(f"다운로드 중계 실패: {get_safe_error_message(e)}")
        raise StoredFileNotFoundException()

    if not upstream.is_success:
        await upstream.aclose()
        raise StoredFileNotFoundException()

    download_name = filename or default_filename(url)

    return StreamingResponse(
        upstream.aiter_bytes(),
        media_type="application/octet-stream",
        headers={"Content-Disposition": _get_content_disposition(download_name)},
        background=BackgroundTask(upstream.aclose),
    )
