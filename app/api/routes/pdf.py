import logging
from typing import Any, Dict, Optional, get_args

from fastapi import APIRouter, Body, Query

from app.api.deps import PdfProcessorDep, SettingsDep, SourceFetcherDep, StorageDep
from app.api.routes.common import output_filename, resolve_action, savings_percent, store_output
from app.core.config import Settings
from app.core.exceptions import InvalidRequestException
from app.models import (
    InfoResponse,
    MergeRequest,
    PdfAction,
    RotateRequest,
    SourceRequest,
    SplitFile,
    SplitRequest,
    SplitResponse,
    TransformResponse,
    WatermarkRequest,
    parse_request,
)
from app.services import PdfProcessor, SourceFetcher, StorageBackend

logger = logging.getLogger(__name__)

router = APIRouter()

PDF_ACTIONS = get_args(PdfAction)


async def _merge(payload, settings, storage, fetcher, pdf) -> TransformResponse:
    request = parse_request(MergeRequest, payload)
    if len(request.urls) > settings.MAX_MERGE_FILES:
        raise InvalidRequestException(
            f"한 번에 최대 {settings.MAX_MERGE_FILES}개 파일까지 병합할 수 있습니다"
        )

    sources = await fetcher.fetch_many(request.urls)
    merged, page_count = await pdf.merge(sources)

    filename = output_filename("merged", "pdf")
    stored = await store_output(storage, merged, filename)
    logger.info(f"PDF 병합 완료: {len(sources)}개 파일, {page_count}페이지 → {stored.key}")

    return TransformResponse(
        download_url=stored.url,
        filename=filename,
        file_size=len(merged),
        metadata={"file_count": len(sources), "page_count": page_count},
    )


async def _split(payload, settings, storage, fetcher, pdf) -> SplitResponse:
    request = parse_request(SplitRequest, payload)
    data = await fetcher.fetch(request.url)
    parts, total_pages = await pdf.split(data, request.ranges)

    # 순서대로 하나씩 업로드 (실패해도 앞서 저장된 파일은 유지)
    files = []
    for part in parts:
        first, last = part.pages[0], part.pages[-1]
        page_label = str(first) if first == last else f"{first}-{last}"
        filename = output_filename(f"split-{page_label}", "pdf")
        stored = await store_output(storage, part.data, filename)
        files.append(
            SplitFile(
                download_url=stored.url,
                filename=filename,
                pages=part.pages,
                file_size=len(part.data),
            )
        )

    logger.info(f"PDF 분할 완료: {total_pages}페이지 → {len(files)}개 파일")
    return SplitResponse(files=files, total_files=len(files), original_pages=total_pages)


async def _compress(payload, settings, storage, fetcher, pdf) -> TransformResponse:
    request = parse_request(SourceRequest, payload)
    data = await fetcher.fetch(request.url)
    compressed = await pdf.compress(data)

    filename = output_filename("compressed", "pdf")
    stored = await store_output(storage, compressed, filename)

    return TransformResponse(
        download_url=stored.url,
        filename=filename,
        file_size=len(compressed),
        metadata={
            "original_size": len(data),
            "compressed_size": len(compressed),
            "savings": savings_percent(len(data), len(compressed)),
        },
    )


async def _rotate(payload, settings, storage, fetcher, pdf) -> TransformResponse:
    request = parse_request(RotateRequest, payload)
    data = await fetcher.fetch(request.url)
    rotated, rotated_pages = await pdf.rotate(data, request.angle, request.pages)

    filename = output_filename("rotated", "pdf")
    stored = await store_output(storage, rotated, filename)

    return TransformResponse(
        download_url=stored.url,
        filename=filename,
        file_size=len(rotated),
        metadata={
            "angle": request.angle,
            "pages": request.pages,
            "rotated_pages": rotated_pages,
        },
    )


async def _watermark(payload, settings, storage, fetcher, pdf) -> TransformResponse:
    request = parse_request(WatermarkRequest, payload)
    data = await fetcher.fetch(request.url)
    watermarked = await pdf.watermark(
        data,
        text=request.text,
        opacity=request.opacity,
        font_size=request.font_size,
        color=request.color,
    )

    filename = output_filename("watermarked", "pdf")
    stored = await store_output(storage, watermarked, filename)

    return TransformResponse(
        download_url=stored.url,
        filename=filename,
        file_size=len(watermarked),
        metadata={"text": request.text},
    )


async def _info(payload, settings, storage, fetcher, pdf) -> InfoResponse:
    request = parse_request(SourceRequest, payload)
    data = await fetcher.fetch(request.url)
    return InfoResponse(info=await pdf.info(data))


_HANDLERS = {
    "merge": _merge,
    "split": _split,
    "compress": _compress,
    "rotate": _rotate,
    "watermark": _watermark,
    "info": _info,
}


async def _dispatch(
    action: str,
    payload: Optional[Dict[str, Any]],
    settings: Settings,
    storage: StorageBackend,
    fetcher: SourceFetcher,
    pdf: PdfProcessor,
):
    handler = _HANDLERS[resolve_action(action, payload, PDF_ACTIONS)]
    return await handler(payload, settings, storage, fetcher, pdf)


@router.post("/pdf")
async def pdf_tool(
    settings: SettingsDep,
    storage: StorageDep,
    fetcher: SourceFetcherDep,
    pdf: PdfProcessorDep,
    action: Optional[str] = Query(None, description="작업 (merge, split, compress, rotate, watermark, info)"),
    payload: Optional[Dict[str, Any]] = Body(None),
):
    """
    PDF 도구 API

    - **action**: 쿼리 파라미터 또는 본문의 `action` 필드
    - `merge`: `{urls}` 순서대로 병합
    - `split`: `{url, ranges}` 페이지 범위별 분할 (예: "1-3,5")
    - `compress`: `{url}` 무손실 압축
    - `rotate`: `{url, angle, pages}` 페이지 회전
    - `watermark`: `{url, text, opacity, fontSize, color}` 대각선 텍스트 워터마크
    - `info`: `{url}` 페이지 수/메타데이터 조회
    """
    return await _dispatch(action, payload, settings, storage, fetcher, pdf)


@router.post("/pdf/{action}")
async def pdf_tool_action(
    action: str,
    settings: SettingsDep,
    storage: StorageDep,
    fetcher: SourceFetcherDep,
    pdf: PdfProcessorDep,
    payload: Optional[Dict[str, Any]] = Body(None),
):
    """작업별 PDF 도구 API (`/api/pdf/merge` 등)"""
    return await _dispatch(action, payload, settings, storage, fetcher, pdf)
