import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Query

from app.api.deps import ConversionGatewayDep, SourceFetcherDep, StorageDep
from app.api.routes.common import output_filename, source_filename, store_output
from app.core.exceptions import (
    InvalidFileTypeException,
    InvalidRequestException,
    ServiceNotConfiguredException,
)
from app.models import ConversionJobResponse, ConvertRequest, ConvertResponse, parse_request
from app.services import get_conversion_formats
from app.utils import is_pdf

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/convert")
async def convert_document(
    storage: StorageDep,
    fetcher: SourceFetcherDep,
    gateway: ConversionGatewayDep,
    payload: Optional[Dict[str, Any]] = Body(None),
):
    """
    문서 변환 API (CloudConvert)

    - **url**: 원본 파일 URL
    - **type**: 변환 유형
      - `pdf-to-docx`, `pdf-to-pptx`
      - `docx-to-pdf`, `pptx-to-pdf`, `doc-to-pdf`, `ppt-to-pdf`
    - **wait**: 기본값 true. false면 작업만 생성하고 `job_id`를 즉시 반환
      (이후 `GET /api/convert?jobId=`로 상태 조회)
    """
    request = parse_request(ConvertRequest, payload)
    input_format, output_format = get_conversion_formats(request.type)

    if not gateway.is_configured:
        raise ServiceNotConfiguredException("CloudConvert API 키", "CLOUDCONVERT_API_KEY")

    if not request.wait:
        job = await gateway.create_url_job(request.url, input_format, output_format)
        return ConversionJobResponse(job_id=job.id, status=job.status, progress=job.progress)

    # 1. 원본 다운로드
    data = await fetcher.fetch(request.url)
    if input_format == "pdf" and not is_pdf(data):
        raise InvalidFileTypeException(expected_type="PDF", action=request.type)

    original_name = source_filename(storage, request.url, fallback=f"file.{input_format}")

    # 2. 업로드 → 변환 → 완료 대기
    logger.info(f"문서 변환 시작: {input_format} → {output_format} ({original_name})")
    job = await gateway.convert_buffer(data, original_name, input_format, output_format)

    # 3. 결과를 자체 저장소로 복사
    converted = await gateway.download_result(job.result_url)
    filename = output_filename("converted", output_format)
    stored = await store_output(storage, converted, filename)
    logger.info(f"문서 변환 완료: {stored.key}")

    return ConvertResponse(
        download_url=stored.url,
        filename=filename,
        original_filename=original_name,
        type=request.type,
        input_format=input_format,
        output_format=output_format,
    )


@router.get("/convert", response_model=ConversionJobResponse)
async def get_conversion_status(
    gateway: ConversionGatewayDep,
    job_id: Optional[str] = Query(None, alias="jobId", description="변환 작업 ID"),
):
    """
    변환 작업 상태 조회

    반환값:
    - `status`: pending, processing, finished, error
    - `progress`: 0-100 (완료된 하위 작업 비율)
    - `download_url`: 완료시 결과 URL
    - `error`: 실패시 에러 메시지
    """
    if not job_id:
        raise InvalidRequestException("작업 ID가 필요합니다")

    if not gateway.is_configured:
        raise ServiceNotConfiguredException("CloudConvert API 키", "CLOUDCONVERT_API_KEY")

    job = await gateway.get_job(job_id)

    return ConversionJobResponse(
        job_id=job.id or job_id,
        status=job.status,
        progress=job.progress,
        download_url=job.result_url,
        error=job.error,
    )
