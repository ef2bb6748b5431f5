from app.models.types import (
    ConversionType,
    ImageAction,
    JobStatus,
    PdfAction,
    ResizeFit,
)
from app.models.request import (
    ConvertRequest,
    ImageCompressRequest,
    ImageConvertRequest,
    MergeRequest,
    PasswordRequest,
    ResizeRequest,
    RotateRequest,
    SourceRequest,
    SplitRequest,
    UpscaleRequest,
    WatermarkRequest,
    parse_request,
)
from app.models.response import (
    CleanupResponse,
    CleanupStats,
    ConversionJobResponse,
    ConvertResponse,
    HealthResponse,
    InfoResponse,
    PasswordResponse,
    SplitFile,
    SplitResponse,
    TransformResponse,
    UploadResponse,
)

__all__ = [
    "ConversionType",
    "ImageAction",
    "JobStatus",
    "PdfAction",
    "ResizeFit",
    "ConvertRequest",
    "ImageCompressRequest",
    "ImageConvertRequest",
    "MergeRequest",
    "PasswordRequest",
    "ResizeRequest",
    "RotateRequest",
    "SourceRequest",
    "SplitRequest",
    "UpscaleRequest",
    "WatermarkRequest",
    "parse_request",
    "CleanupResponse",
    "CleanupStats",
    "ConversionJobResponse",
    "ConvertResponse",
    "HealthResponse",
    "InfoResponse",
    "PasswordResponse",
    "SplitFile",
    "SplitResponse",
    "TransformResponse",
    "UploadResponse",
]
