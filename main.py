import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from app.api.deps import StorageDep
from app.api.routes import auth, cleanup, convert, download, image, pdf, upload
from app.core.config import settings
from app.core.exceptions import OptiNexusException
from app.core.logging_config import setup_logging
from app.models import HealthResponse
from app.services import (
    CleanupService,
    ConversionGateway,
    ImageProcessor,
    PdfProcessor,
    SourceFetcher,
    create_storage,
)
from app.services.cloudconvert import API_URL, SANDBOX_API_URL
from app.utils import sanitize_error_message

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """애플리케이션 생명주기 관리"""
    # 시작시 실행
    setup_logging(settings)
    settings.ensure_directories()

    storage = create_storage(settings)
    http_client = httpx.AsyncClient(
        timeout=settings.HTTP_TIMEOUT_SECONDS,
        follow_redirects=True,
    )

    app.state.storage = storage
    app.state.http_client = http_client
    app.state.source_fetcher = SourceFetcher(
        storage=storage,
        http_client=http_client,
        max_size=settings.MAX_FILE_SIZE_BYTES,
    )
    app.state.conversion_gateway = ConversionGateway(
        http_client=http_client,
        api_key=settings.CLOUDCONVERT_API_KEY,
        base_url=SANDBOX_API_URL if settings.CLOUDCONVERT_SANDBOX else API_URL,
        poll_interval=settings.CLOUDCONVERT_POLL_INTERVAL_SECONDS,
        timeout=settings.CLOUDCONVERT_TIMEOUT_SECONDS,
    )
    app.state.pdf_processor = PdfProcessor()
    app.state.image_processor = ImageProcessor()
    app.state.cleanup_service = CleanupService(storage, settings.FILE_TTL_MINUTES)

    logger.info(
        f"OptiNexus 시작 (ENV={settings.ENV}, 저장소={storage.name}, "
        f"CloudConvert={'설정됨' if settings.is_cloudconvert_enabled else '미설정'})"
    )

    # 만료 파일 정리 스케줄러 시작
    if settings.is_auto_cleanup_enabled:
        await app.state.cleanup_service.start_scheduler(settings.CLEANUP_INTERVAL_MINUTES)

    yield

    # 종료시 실행
    await app.state.cleanup_service.stop_scheduler()
    await http_client.aclose()


app = FastAPI(
    title="OptiNexus",
    description="PDF / 이미지 변환 도구 API",
    version=settings.VERSION,
    lifespan=lifespan,
    # 프로덕션에서는 docs/openapi 비활성화
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    openapi_url="/openapi.json" if settings.is_development else None,
)


# =============================================================================
# 미들웨어 설정
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials="*" not in settings.ALLOWED_ORIGINS,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    expose_headers=["X-Request-ID", "Content-Disposition"],
    max_age=600,  # preflight 캐시 10분
)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """보안 헤더 추가 미들웨어"""
    # Request ID 생성/전달
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

    response = await call_next(request)

    response.headers["X-Request-ID"] = request_id
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"

    # 프로덕션에서 추가 보안 헤더
    if settings.is_production:
        response.headers["Strict-Transport-Security"] = (
            "max-age=31536000; includeSubDomains"
        )

    return response


# =============================================================================
# 에러 핸들러
# =============================================================================

@app.exception_handler(OptiNexusException)
async def optinexus_exception_handler(request: Request, exc: OptiNexusException):
    """커스텀 예외 핸들러"""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers={"X-Request-ID": request.headers.get("X-Request-ID", "")},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """요청 형식 오류는 422 대신 400으로 응답"""
    errors = exc.errors()
    message = errors[0].get("msg", "잘못된 요청입니다") if errors else "잘못된 요청입니다"
    return JSONResponse(
        status_code=400,
        content={"detail": message},
        headers={"X-Request-ID": request.headers.get("X-Request-ID", "")},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """일반 예외 핸들러 (프로덕션에서 상세 에러 숨김)"""
    safe_message = sanitize_error_message(str(exc))
    logger.exception(f"처리되지 않은 예외: {safe_message}")

    if settings.is_development:
        detail = safe_message
    else:
        detail = "서버 오류가 발생했습니다"

    return JSONResponse(
        status_code=500,
        content={"detail": detail},
        headers={"X-Request-ID": request.headers.get("X-Request-ID", "")},
    )


# =============================================================================
# 엔드포인트
# =============================================================================

@app.get("/api/health", response_model=HealthResponse)
async def health_check(storage: StorageDep):
    """헬스 체크 엔드포인트"""
    return HealthResponse(
        version=settings.VERSION,
        storage=storage.name,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


# API 라우터 등록
app.include_router(upload.router, prefix="/api", tags=["upload"])
app.include_router(pdf.router, prefix="/api", tags=["pdf"])
app.include_router(image.router, prefix="/api", tags=["image"])
app.include_router(convert.router, prefix="/api", tags=["convert"])
app.include_router(download.router, prefix="/api", tags=["download"])
app.include_router(cleanup.router, prefix="/api", tags=["cleanup"])
app.include_router(auth.router, prefix="/api", tags=["auth"])

# 로컬 저장소 파일 제공 (Blob 미설정 시)
if not settings.is_blob_enabled:
    settings.ensure_directories()
    app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")
