import secrets
from datetime import datetime, timezone

from fastapi import APIRouter, Request

from app.api.deps import CleanupServiceDep, SettingsDep
from app.core.config import Settings
from app.core.exceptions import UnauthorizedException
from app.models import CleanupResponse, CleanupStats

router = APIRouter()


def _verify_cron_request(request: Request, settings: Settings) -> None:
    """
    정리 작업 호출 인증

    CRON_SECRET이 설정된 경우 `Authorization: Bearer <secret>` 또는
    스케줄러 헤더(CRON_HEADER_NAME)가 필요합니다.
    """
    if not settings.CRON_SECRET:
        return

    authorization = request.headers.get("authorization", "")
    expected = f"Bearer {settings.CRON_SECRET}"
    if secrets.compare_digest(authorization.encode(), expected.encode()):
        return

    if request.headers.get(settings.CRON_HEADER_NAME):
        return

    raise UnauthorizedException()


@router.api_route("/cleanup", methods=["GET", "POST"], response_model=CleanupResponse)
async def cleanup_expired_files(
    request: Request,
    settings: SettingsDep,
    cleanup: CleanupServiceDep,
):
    """
    만료 파일 정리 (외부 스케줄러용)

    보관 시간(FILE_TTL_MINUTES)이 지난 저장 파일을 삭제합니다.
    """
    _verify_cron_request(request, settings)

    result = await cleanup.sweep()

    return CleanupResponse(
        stats=CleanupStats(
            deleted=result.deleted,
            errors=result.errors,
            duration=f"{result.duration_ms}ms",
            ttl=result.ttl,
        ),
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
