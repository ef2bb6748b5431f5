import re
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from app.core.exceptions import InvalidRequestException
from app.models.types import ResizeFit

# 이미지 가로/세로 허용 범위
MIN_DIMENSION = 1
MAX_DIMENSION = 10000

VALID_ROTATION_ANGLES = (90, 180, 270, -90, -180, -270)
VALID_UPSCALE_FACTORS = (2, 4)
COMPRESS_FORMATS = ("webp", "jpeg", "jpg", "png")
CONVERT_FORMATS = ("webp", "jpeg", "jpg", "png", "gif", "tiff")
CONVERSION_TYPES = (
    "pdf-to-docx",
    "pdf-to-pptx",
    "docx-to-pdf",
    "pptx-to-pdf",
    "doc-to-pdf",
    "ppt-to-pdf",
)

_HEX_COLOR = re.compile(r"^#?[0-9a-fA-F]{6}$")

ModelT = TypeVar("ModelT", bound=BaseModel)


class ToolRequest(BaseModel):
    """요청 모델 공통 설정 (camelCase 필드명도 허용)"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


def _check_url(value: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValueError("파일 URL이 필요합니다")
    if not value.lower().startswith(("http://", "https://")):
        raise ValueError("http(s) URL만 지원합니다")
    return value


class SourceRequest(ToolRequest):
    """단일 원본 파일 요청"""

    url: str = Field(..., description="원본 파일 URL")

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        return _check_url(v)


# =============================================================================
# PDF
# =============================================================================

class MergeRequest(ToolRequest):
    """PDF 병합 요청"""

    urls: List[str] = Field(..., description="병합할 PDF URL 목록 (순서대로)")

    @field_validator("urls")
    @classmethod
    def validate_urls(cls, v: List[str]) -> List[str]:
        if len(v) < 2:
            raise ValueError("최소 2개의 PDF URL이 필요합니다")
        return [_check_url(url) for url in v]


class SplitRequest(SourceRequest):
    """PDF 분할 요청"""

    ranges: str = Field(default="", description="페이지 범위 (예: '1-3,5'), 비우면 페이지별 분할")

    @field_validator("ranges", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return "" if v is None else v


class RotateRequest(SourceRequest):
    """PDF 회전 요청"""

    angle: int = Field(default=90, description="회전 각도")
    pages: str = Field(default="all", description="'all' 또는 쉼표로 구분된 페이지 번호")

    @field_validator("angle")
    @classmethod
    def validate_angle(cls, v: int) -> int:
        if v not in VALID_ROTATION_ANGLES:
            raise ValueError("회전 각도는 90, 180, 270 (또는 음수) 중 하나여야 합니다")
        return v

    @field_validator("pages", mode="before")
    @classmethod
    def normalize_pages(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return "all"
        if isinstance(v, list):
            return ",".join(str(p) for p in v)
        return str(v)


class WatermarkRequest(SourceRequest):
    """PDF 워터마크 요청"""

    text: str = Field(default="CONFIDENTIAL", min_length=1, max_length=200)
    opacity: float = Field(default=0.3, ge=0.0, le=1.0)
    font_size: int = Field(default=50, ge=1, le=500)
    color: str = Field(default="#888888", description="16진수 색상 (#RRGGBB)")

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: str) -> str:
        if not _HEX_COLOR.match(v):
            raise ValueError("색상은 #RRGGBB 형식이어야 합니다")
        return v if v.startswith("#") else f"#{v}"


# =============================================================================
# 이미지
# =============================================================================

class ImageCompressRequest(SourceRequest):
    """이미지 압축 요청"""

    quality: int = Field(default=80, ge=1, le=100)
    format: str = Field(default="webp")
    max_width: Optional[int] = Field(default=None, ge=MIN_DIMENSION, le=MAX_DIMENSION)
    max_height: Optional[int] = Field(default=None, ge=MIN_DIMENSION, le=MAX_DIMENSION)

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        v = v.lower()
        if v not in COMPRESS_FORMATS:
            raise ValueError(f"지원하지 않는 형식입니다. 사용 가능: {', '.join(COMPRESS_FORMATS)}")
        return v


class ResizeRequest(SourceRequest):
    """이미지 크기 조정 요청"""

    width: Optional[int] = Field(default=None, ge=MIN_DIMENSION, le=MAX_DIMENSION)
    height: Optional[int] = Field(default=None, ge=MIN_DIMENSION, le=MAX_DIMENSION)
    fit: ResizeFit = Field(default="cover")

    @model_validator(mode="after")
    def require_dimension(self) -> "ResizeRequest":
        if self.width is None and self.height is None:
            raise ValueError("width 또는 height 중 하나는 필요합니다")
        return self


class ImageConvertRequest(SourceRequest):
    """이미지 형식 변환 요청"""

    format: str = Field(default="webp")
    quality: int = Field(default=90, ge=1, le=100)

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        v = v.lower()
        if v not in CONVERT_FORMATS:
            raise ValueError(f"지원하지 않는 형식입니다. 사용 가능: {', '.join(CONVERT_FORMATS)}")
        return v


class UpscaleRequest(SourceRequest):
    """이미지 업스케일 요청"""

    scale: int = Field(default=2)

    @field_validator("scale")
    @classmethod
    def validate_scale(cls, v: int) -> int:
        if v not in VALID_UPSCALE_FACTORS:
            raise ValueError("배율은 2 또는 4여야 합니다")
        return v


# =============================================================================
# 문서 변환 / 인증
# =============================================================================

class ConvertRequest(SourceRequest):
    """CloudConvert 문서 변환 요청"""

    type: str = Field(..., description="변환 유형 (예: pdf-to-docx)")
    wait: bool = Field(default=True, description="False면 작업만 생성하고 job_id 반환")

    @field_validator("type")
    @classmethod
    def validate_type(cls, v: str) -> str:
        if v not in CONVERSION_TYPES:
            raise ValueError(
                f"잘못된 변환 유형입니다: {v}. 사용 가능: {', '.join(CONVERSION_TYPES)}"
            )
        return v


class PasswordRequest(ToolRequest):
    """게이트 비밀번호 확인 요청"""

    password: Optional[str] = None


def format_validation_error(error: ValidationError) -> str:
    """pydantic 검증 에러를 사용자 메시지로 변환 (첫 번째 에러만)"""
    first = error.errors()[0]
    message = first.get("msg", "잘못된 요청입니다")
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]

    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    if first.get("type") == "missing":
        return f"필수 값이 없습니다: {location}"
    if location and first.get("type") != "value_error":
        return f"{location}: {message}"
    return message


def parse_request(model: Type[ModelT], payload: Optional[Dict[str, Any]]) -> ModelT:
    """
    요청 본문을 모델로 검증

    Raises:
        InvalidRequestException: 검증 실패 (400)
    """
    try:
        return model.model_validate(payload or {})
    except ValidationError as e:
        raise InvalidRequestException(format_validation_error(e))
