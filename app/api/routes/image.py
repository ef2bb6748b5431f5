import logging
from typing import Any, Dict, Optional, get_args

from fastapi import APIRouter, Body, Query

from app.api.deps import ImageProcessorDep, SourceFetcherDep, StorageDep
from app.api.routes.common import output_filename, resolve_action, savings_percent, store_output
from app.models import (
    ImageAction,
    ImageCompressRequest,
    ImageConvertRequest,
    InfoResponse,
    ResizeRequest,
    SourceRequest,
    TransformResponse,
    UpscaleRequest,
    parse_request,
)
from app.services import ImageProcessor, SourceFetcher, StorageBackend

logger = logging.getLogger(__name__)

router = APIRouter()

IMAGE_ACTIONS = get_args(ImageAction)


async def _compress(payload, storage, fetcher, image) -> TransformResponse:
    request = parse_request(ImageCompressRequest, payload)
    data = await fetcher.fetch(request.url)
    result = await image.compress(
        data,
        quality=request.quality,
        fmt=request.format,
        max_width=request.max_width,
        max_height=request.max_height,
    )

    filename = output_filename("compressed", result.format)
    stored = await store_output(storage, result.data, filename)

    return TransformResponse(
        download_url=stored.url,
        filename=filename,
        file_size=len(result.data),
        metadata={
            "original_size": len(data),
            "compressed_size": len(result.data),
            "savings": savings_percent(len(data), len(result.data)),
            "format": result.format,
            "width": result.width,
            "height": result.height,
        },
    )


async def _resize(payload, storage, fetcher, image) -> TransformResponse:
    request = parse_request(ResizeRequest, payload)
    data = await fetcher.fetch(request.url)
    result = await image.resize(data, width=request.width, height=request.height, fit=request.fit)

    filename = output_filename(f"resized-{result.width}x{result.height}", result.format)
    stored = await store_output(storage, result.data, filename)

    return TransformResponse(
        download_url=stored.url,
        filename=filename,
        file_size=len(result.data),
        metadata={
            "width": result.width,
            "height": result.height,
            "fit": request.fit,
            "format": result.format,
        },
    )


async def _convert(payload, storage, fetcher, image) -> TransformResponse:
    request = parse_request(ImageConvertRequest, payload)
    data = await fetcher.fetch(request.url)
    result = await image.convert(data, fmt=request.format, quality=request.quality)

    filename = output_filename("converted", result.format)
    stored = await store_output(storage, result.data, filename)

    return TransformResponse(
        download_url=stored.url,
        filename=filename,
        file_size=len(result.data),
        metadata={"format": result.format},
    )


async def _upscale(payload, storage, fetcher, image) -> TransformResponse:
    request = parse_request(UpscaleRequest, payload)
    data = await fetcher.fetch(request.url)
    result = await image.upscale(data, scale=request.scale)

    filename = output_filename(f"upscaled-{request.scale}x", result.format)
    stored = await store_output(storage, result.data, filename)
    logger.info(f"이미지 업스케일 완료: {request.scale}x → {result.width}x{result.height}")

    return TransformResponse(
        download_url=stored.url,
        filename=filename,
        file_size=len(result.data),
        metadata={
            "scale": request.scale,
            "width": result.width,
            "height": result.height,
        },
    )


async def _info(payload, storage, fetcher, image) -> InfoResponse:
    request = parse_request(SourceRequest, payload)
    data = await fetcher.fetch(request.url)
    return InfoResponse(info=await image.info(data))


_HANDLERS = {
    "compress": _compress,
    "resize": _resize,
    "convert": _convert,
    "upscale": _upscale,
    "info": _info,
}


async def _dispatch(
    action: str,
    payload: Optional[Dict[str, Any]],
    storage: StorageBackend,
    fetcher: SourceFetcher,
    image: ImageProcessor,
):
    handler = _HANDLERS[resolve_action(action, payload, IMAGE_ACTIONS)]
    return await handler(payload, storage, fetcher, image)


@router.post("/image")
async def image_tool(
    storage: StorageDep,
    fetcher: SourceFetcherDep,
    image: ImageProcessorDep,
    action: Optional[str] = Query(None, description="작업 (compress, resize, convert, upscale, info)"),
    payload: Optional[Dict[str, Any]] = Body(None),
):
    """
    이미지 도구 API

    - **action**: 쿼리 파라미터 또는 본문의 `action` 필드
    - `compress`: `{url, quality, format, maxWidth, maxHeight}`
    - `resize`: `{url, width, height, fit}` (width/height 중 하나 이상 필수)
    - `convert`: `{url, format, quality}`
    - `upscale`: `{url, scale}` 2배 또는 4배 (PNG 출력)
    - `info`: `{url}` 형식/크기 조회
    """
    return await _dispatch(action, payload, storage, fetcher, image)


@router.post("/image/{action}")
async def image_tool_action(
    action: str,
    storage: StorageDep,
    fetcher: SourceFetcherDep,
    image: ImageProcessorDep,
    payload: Optional[Dict[str, Any]] = Body(None),
):
    """작업별 이미지 도구 API (`/api/image/resize` 등)"""
    return await _dispatch(action, payload, storage, fetcher, image)
