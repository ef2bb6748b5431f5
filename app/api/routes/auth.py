import logging
import secrets
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body

from app.api.deps import SettingsDep
from app.core.exceptions import (
    InvalidRequestException,
    ServiceNotConfiguredException,
    UnauthorizedException,
)
from app.models import PasswordRequest, PasswordResponse, parse_request

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/verify-password", response_model=PasswordResponse)
async def verify_password(
    settings: SettingsDep,
    payload: Optional[Dict[str, Any]] = Body(None),
):
    """유료 변환 기능 게이트 비밀번호 확인"""
    request = parse_request(PasswordRequest, payload)

    if not request.password:
        raise InvalidRequestException("비밀번호가 필요합니다")

    if not settings.GATE_PASSWORD:
        logger.error("GATE_PASSWORD 환경 변수가 설정되지 않았습니다")
        raise ServiceNotConfiguredException("게이트 비밀번호", "GATE_PASSWORD")

    if not secrets.compare_digest(request.password.encode(), settings.GATE_PASSWORD.encode()):
        raise UnauthorizedException("비밀번호가 올바르지 않습니다")

    return PasswordResponse()
