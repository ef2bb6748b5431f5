import logging
import sys

from app.core.config import Settings
from app.utils.redaction import sanitize_error_message

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# 자체 핸들러를 가지는(propagate=False) 서버 로거
SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


class RedactingFormatter(logging.Formatter):
    """로그 출력 전 민감 정보 마스킹 (traceback 포함)"""

    def __init__(self, fmt: str, secrets: list[str]):
        super().__init__(fmt)
        self._secrets = secrets

    def format(self, record: logging.LogRecord) -> str:
        return sanitize_error_message(super().format(record), self._secrets)


def setup_logging(settings: Settings) -> None:
    """루트 로거 설정 (stdout, 마스킹 포매터)"""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(RedactingFormatter(LOG_FORMAT, settings.secret_values))

    root = logging.getLogger()
    # 재시작(reload) 시 중복 핸들러 방지
    for existing in list(root.handlers):
        if isinstance(existing.formatter, RedactingFormatter):
            root.removeHandler(existing)

    root.addHandler(handler)
    root.setLevel(settings.LOG_LEVEL.upper())

    # uvicorn 핸들러도 마스킹 포매터로 교체 (ASGI 예외 traceback 포함)
    for name in SERVER_LOGGERS:
        for server_handler in logging.getLogger(name).handlers:
            server_handler.setFormatter(RedactingFormatter(LOG_FORMAT, settings.secret_values))
