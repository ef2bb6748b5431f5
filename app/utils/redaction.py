"""에러 메시지 민감 정보 마스킹 (API 키, 토큰 등)"""

import re
from typing import Iterable, Optional

REDACTED = "[REDACTED]"

# 적용 순서 중요: bearer 토큰을 authorization 헤더보다 먼저 처리
_PATTERNS = [
    (re.compile(r"bearer\s+[A-Za-z0-9_\-\.=+/]+", re.IGNORECASE), f"bearer {REDACTED}"),
    (re.compile(r"authorization[\"'\s:=]+[^\s\"']+", re.IGNORECASE), f"authorization={REDACTED}"),
    (
        re.compile(r"CLOUDCONVERT[_\s]*API[_\s]*KEY[\"'\s:=]+[A-Za-z0-9_\-\.]+", re.IGNORECASE),
        f"CLOUDCONVERT_API_KEY={REDACTED}",
    ),
    (re.compile(r"api[_-]?key[\"'\s:=]+[A-Za-z0-9_\-\.]{20,}", re.IGNORECASE), f"api_key={REDACTED}"),
    (re.compile(r"token[\"'\s:=]+[A-Za-z0-9_\-\.]{20,}", re.IGNORECASE), f"token={REDACTED}"),
    # 키/토큰으로 보이는 긴 영숫자 문자열
    (re.compile(r"[A-Za-z0-9_\-]{32,}"), REDACTED),
]


def sanitize_error_message(
    message: Optional[str],
    secrets: Optional[Iterable[str]] = None,
) -> str:
    """
    에러 메시지에서 민감 정보 제거

    Args:
        message: 원본 메시지
        secrets: 그대로 노출되면 안 되는 값 목록 (None이면 설정값 사용)

    Returns:
        마스킹된 메시지
    """
    if not message or not isinstance(message, str):
        return "오류가 발생했습니다"

    if secrets is None:
        from app.core.config import get_settings

        secrets = get_settings().secret_values

    sanitized = message

    # 설정된 비밀 값은 패턴과 무관하게 항상 제거 (긴 값부터)
    for secret in sorted({s for s in secrets if s}, key=len, reverse=True):
        sanitized = sanitized.replace(secret, REDACTED)

    for pattern, replacement in _PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)

    return sanitized


def get_safe_error_message(
    error: object,
    secrets: Optional[Iterable[str]] = None,
) -> str:
    """예외 객체에서 안전한 에러 메시지 추출"""
    if error is None:
        return "알 수 없는 오류"

    if isinstance(error, BaseException):
        message = str(error) or type(error).__name__
    else:
        message = str(error)

    return sanitize_error_message(message, secrets)
