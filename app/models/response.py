from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from app.models.types import ConversionType, JobStatus


class UploadResponse(BaseModel):
    """파일 업로드 응답"""

    url: str = Field(..., description="저장된 파일 URL")
    pathname: str = Field(..., description="저장소 키")
    filename: str = Field(..., description="원본 파일명")
    size: int = Field(..., description="파일 크기 (bytes)")
    content_type: str = Field(..., description="MIME 타입")


class TransformResponse(BaseModel):
    """변환 결과 응답 (단일 파일)"""

    download_url: str = Field(..., description="결과 파일 URL")
    filename: str = Field(..., description="결과 파일명")
    file_size: int = Field(..., description="결과 파일 크기 (bytes)")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="작업별 부가 정보")


class SplitFile(BaseModel):
    """분할 결과 파일"""

    download_url: str
    filename: str
    pages: List[int] = Field(..., description="포함된 페이지 번호 (1부터)")
    file_size: int


class SplitResponse(BaseModel):
    """PDF 분할 응답"""

    files: List[SplitFile]
    total_files: int
    original_pages: int


class InfoResponse(BaseModel):
    """파일 정보 조회 응답"""

    info: Dict[str, Any]


class ConvertResponse(BaseModel):
    """문서 변환 완료 응답"""

    download_url: str = Field(..., description="변환된 파일 URL")
    filename: str = Field(..., description="변환된 파일명")
    original_filename: str = Field(..., description="원본 파일명")
    type: ConversionType = Field(..., description="변환 유형")
    input_format: str
    output_format: str


class ConversionJobResponse(BaseModel):
    """변환 작업 상태 응답"""

    job_id: str = Field(..., description="작업 ID")
    status: JobStatus = Field(..., description="작업 상태")
    progress: int = Field(default=0, ge=0, le=100, description="진행률 (%)")
    download_url: Optional[str] = Field(default=None, description="완료시 결과 URL")
    error: Optional[str] = Field(default=None, description="실패시 에러 메시지")


class CleanupStats(BaseModel):
    """정리 작업 통계"""

    deleted: int
    errors: int
    duration: str
    ttl: str


class CleanupResponse(BaseModel):
    """정리 작업 응답"""

    message: str = Field(default="정리 작업이 완료되었습니다")
    stats: CleanupStats
    timestamp: str


class PasswordResponse(BaseModel):
    """비밀번호 확인 응답"""

    success: bool = True
    message: str = Field(default="비밀번호가 확인되었습니다")


class HealthResponse(BaseModel):
    """헬스 체크 응답"""

    status: str = Field(default="healthy", description="서버 상태")
    version: str
    storage: str = Field(..., description="저장소 백엔드 (local / blob)")
    timestamp: str
