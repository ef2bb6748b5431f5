"""CloudConvert v2 REST API 게이트웨이"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import httpx

from app.core.exceptions import (
    ConversionServiceException,
    ConversionTimeoutException,
    InvalidRequestException,
    QuotaExceededException,
    ServiceNotConfiguredException,
)
from app.models.types import JobStatus
from app.utils.redaction import sanitize_error_message

logger = logging.getLogger(__name__)

API_URL = "https://api.cloudconvert.com/v2"
SANDBOX_API_URL = "https://api.sandbox.cloudconvert.com/v2"

# 변환 유형 → (입력 형식, 출력 형식)
CONVERSION_FORMATS: Dict[str, Tuple[str, str]] = {
    "pdf-to-docx": ("pdf", "docx"),
    "pdf-to-pptx": ("pdf", "pptx"),
    "docx-to-pdf": ("docx", "pdf"),
    "pptx-to-pdf": ("pptx", "pdf"),
    "doc-to-pdf": ("doc", "pdf"),
    "ppt-to-pdf": ("ppt", "pdf"),
}

# CloudConvert 작업 상태 → 내부 상태
_STATUS_MAP: Dict[str, JobStatus] = {
    "waiting": "pending",
    "processing": "processing",
    "finished": "finished",
    "error": "error",
}


def get_conversion_formats(conversion_type: str) -> Tuple[str, str]:
    """
    변환 유형의 입력/출력 형식

    Raises:
        InvalidRequestException: 지원하지 않는 유형 (400)
    """
    formats = CONVERSION_FORMATS.get(conversion_type)
    if formats is None:
        raise InvalidRequestException(
            f"잘못된 변환 유형입니다: {conversion_type}. "
            f"사용 가능: {', '.join(CONVERSION_FORMATS)}"
        )
    return formats


def _mentions_quota(message: str) -> bool:
    lowered = message.lower()
    return "limit" in lowered or "quota" in lowered


@dataclass
class ConversionJob:
    """원격 변환 작업 상태 (CloudConvert 소유)"""

    id: str
    status: JobStatus
    progress: int = 0
    result_url: Optional[str] = None
    result_filename: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "ConversionJob":
        """GET /jobs/{id} 응답의 data 객체로부터 생성"""
        tasks: List[Dict[str, Any]] = data.get("tasks") or []
        status = _STATUS_MAP.get(data.get("status", ""), "processing")

        finished = sum(1 for task in tasks if task.get("status") == "finished")
        progress = round(finished / max(len(tasks), 1) * 100)

        job = cls(id=data.get("id", ""), status=status, progress=progress)

        if status == "finished":
            job.progress = 100
            for task in tasks:
                if task.get("operation") == "export/url" and task.get("status") == "finished":
                    files = (task.get("result") or {}).get("files") or []
                    if files:
                        job.result_url = files[0].get("url")
                        job.result_filename = files[0].get("filename")
                    break

        if status == "error":
            failed = next((task for task in tasks if task.get("status") == "error"), None)
            message = (failed or {}).get("message") or "변환에 실패했습니다"
            job.error = sanitize_error_message(message)

        return job


class ConversionGateway:
    """
    CloudConvert 클라이언트

    - import/upload → convert → export/url 작업 (바이트 직접 업로드 후 대기)
    - import/url → convert → export/url 작업 (생성 후 즉시 반환)
    - 작업 상태 조회 / 폴링
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: Optional[str],
        base_url: str = API_URL,
        poll_interval: float = 2.0,
        timeout: float = 300.0,
    ):
        self.http_client = http_client
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.poll_interval = poll_interval
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _headers(self) -> Dict[str, str]:
        if not self.api_key:
            raise ServiceNotConfiguredException("CloudConvert API 키", "CLOUDCONVERT_API_KEY")
        return {"Authorization": f"Bearer {self.api_key}"}

    def _secrets(self) -> List[str]:
        return [self.api_key] if self.api_key else []

    def _raise_for_status(self, response: httpx.Response) -> None:
        """CloudConvert 에러 응답을 예외로 변환"""
        if response.status_code < 400:
            return

        if response.status_code == 402:
            raise QuotaExceededException()

        try:
            message = response.json().get("message") or response.text
        except ValueError:
            message = response.text

        if _mentions_quota(message):
            raise QuotaExceededException()

        safe_message = sanitize_error_message(message, self._secrets())
        logger.error(f"CloudConvert 오류 (HTTP {response.status_code}): {safe_message}")
        raise ConversionServiceException(
            f"CloudConvert 오류 (HTTP {response.status_code}): {safe_message}"
        )

    async def _request(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        headers = self._headers()
        try:
            response = await self.http_client.request(
                method, f"{self.base_url}{path}", json=payload, headers=headers
            )
        except httpx.HTTPError as e:
            safe_message = sanitize_error_message(str(e), self._secrets())
            logger.error(f"CloudConvert 요청 실패: {safe_message}")
            raise ConversionServiceException(f"CloudConvert 요청 실패: {safe_message}")

        self._raise_for_status(response)
        return response.json().get("data") or {}

    async def _create_job(self, tasks: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/jobs", {"tasks": tasks})

    async def create_url_job(
        self,
        source_url: str,
        input_format: str,
        output_format: str,
    ) -> ConversionJob:
        """공개 URL을 가져오는 변환 작업 생성 (완료를 기다리지 않음)"""
        data = await self._create_job({
            "import-file": {"operation": "import/url", "url": source_url},
            "convert-file": {
                "operation": "convert",
                "input": "import-file",
                "input_format": input_format,
                "output_format": output_format,
            },
            "export-file": {"operation": "export/url", "input": "convert-file"},
        })
        job = ConversionJob.from_api(data)
        logger.info(f"CloudConvert 작업 생성: {job.id} ({input_format} → {output_format})")
        return job

    async def convert_buffer(
        self,
        data: bytes,
        filename: str,
        input_format: str,
        output_format: str,
    ) -> ConversionJob:
        """
        파일 바이트를 업로드하여 변환하고 완료까지 대기

        Returns:
            완료된 ConversionJob (result_url 포함)

        Raises:
            QuotaExceededException: 사용량 한도 초과 (402)
            ConversionTimeoutException: 대기 시간 초과 (504)
            ConversionServiceException: 그 외 변환 실패 (500)
        """
        job_data = await self._create_job({
            "upload-file": {"operation": "import/upload"},
            "convert-file": {
                "operation": "convert",
                "input": "upload-file",
                "input_format": input_format,
                "output_format": output_format,
            },
            "export-file": {"operation": "export/url", "input": "convert-file"},
        })

        upload_task = next(
            (task for task in job_data.get("tasks") or [] if task.get("operation") == "import/upload"),
            None,
        )
        form = ((upload_task or {}).get("result") or {}).get("form")
        if not form or not form.get("url"):
            raise ConversionServiceException("CloudConvert 업로드 URL을 받지 못했습니다")

        await self._upload(form, data, filename)
        logger.info(f"CloudConvert 업로드 완료: {job_data.get('id')} ({input_format} → {output_format})")

        return await self.wait_for_job(job_data.get("id", ""))

    async def _upload(self, form: Dict[str, Any], data: bytes, filename: str) -> None:
        """import/upload 작업의 업로드 폼으로 파일 전송"""
        try:
            response = await self.http_client.post(
                form["url"],
                data=form.get("parameters") or {},
                files={"file": (filename, data)},
            )
        except httpx.HTTPError as e:
            safe_message = sanitize_error_message(str(e), self._secrets())
            raise ConversionServiceException(f"CloudConvert 업로드 실패: {safe_message}")

        self._raise_for_status(response)

    async def get_job(self, job_id: str) -> ConversionJob:
        """작업 상태 조회"""
        if not job_id:
            raise InvalidRequestException("작업 ID가 필요합니다")
        data = await self._request("GET", f"/jobs/{job_id}")
        return ConversionJob.from_api(data)

    async def wait_for_job(self, job_id: str) -> ConversionJob:
        """완료(finished) 또는 실패(error)까지 폴링"""
        deadline = time.monotonic() + self.timeout

        while True:
            job = await self.get_job(job_id)

            if job.status == "finished":
                if not job.result_url:
                    raise ConversionServiceException("변환 결과 파일이 없습니다")
                return job

            if job.status == "error":
                message = job.error or "변환에 실패했습니다"
                if _mentions_quota(message):
                    raise QuotaExceededException()
                raise ConversionServiceException(message)

            if time.monotonic() + self.poll_interval > deadline:
                # 원격 작업은 취소하지 않음
                logger.warning(f"CloudConvert 작업 대기 시간 초과: {job_id}")
                raise ConversionTimeoutException(self.timeout)

            await asyncio.sleep(self.poll_interval)

    async def download_result(self, url: str) -> bytes:
        """변환 결과 파일 다운로드"""
        try:
            response = await self.http_client.get(url)
        except httpx.HTTPError as e:
            safe_message = sanitize_error_message(str(e), self._secrets())
            raise ConversionServiceException(f"변환 결과 다운로드 실패: {safe_message}")

        if response.status_code >= 400:
            raise ConversionServiceException(
                f"변환 결과 다운로드 실패 (HTTP {response.status_code})"
            )
        return response.content
