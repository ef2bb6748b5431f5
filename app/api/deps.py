from typing import Annotated

import httpx
from fastapi import Depends, Request

from app.core.config import Settings, get_settings
from app.services import (
    CleanupService,
    ConversionGateway,
    ImageProcessor,
    PdfProcessor,
    SourceFetcher,
    StorageBackend,
)

SettingsDep = Annotated[Settings, Depends(get_settings)]


def get_storage(request: Request) -> StorageBackend:
    """lifespan에서 생성한 저장소"""
    return request.app.state.storage


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def get_source_fetcher(request: Request) -> SourceFetcher:
    return request.app.state.source_fetcher


def get_conversion_gateway(request: Request) -> ConversionGateway:
    return request.app.state.conversion_gateway


def get_cleanup_service(request: Request) -> CleanupService:
    return request.app.state.cleanup_service


def get_pdf_processor(request: Request) -> PdfProcessor:
    return request.app.state.pdf_processor


def get_image_processor(request: Request) -> ImageProcessor:
    return request.app.state.image_processor


StorageDep = Annotated[StorageBackend, Depends(get_storage)]
HttpClientDep = Annotated[httpx.AsyncClient, Depends(get_http_client)]
SourceFetcherDep = Annotated[SourceFetcher, Depends(get_source_fetcher)]
ConversionGatewayDep = Annotated[ConversionGateway, Depends(get_conversion_gateway)]
CleanupServiceDep = Annotated[CleanupService, Depends(get_cleanup_service)]
PdfProcessorDep = Annotated[PdfProcessor, Depends(get_pdf_processor)]
ImageProcessorDep = Annotated[ImageProcessor, Depends(get_image_processor)]
