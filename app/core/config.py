from functools import lru_cache
from pathlib import Path
from typing import Annotated, List, Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """OptiNexus 애플리케이션 설정"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
    )

    # 서버
    ENV: Literal["development", "production", "testing"] = "development"
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"
    VERSION: str = "2.0.0"

    # CORS (기본값: 전체 허용)
    ALLOWED_ORIGINS: Annotated[List[str], NoDecode] = ["*"]

    # 파일 제한
    MAX_FILE_SIZE_MB: int = 100
    MAX_MERGE_FILES: int = 20

    # 로컬 저장소 (Blob 미설정 시)
    UPLOAD_DIR: Path = Path("./uploads")
    PUBLIC_BASE_URL: str = "http://localhost:8000"

    # 파일 보관 시간 / 자동 정리
    FILE_TTL_MINUTES: int = 30
    CLEANUP_INTERVAL_MINUTES: int = 5
    AUTO_CLEANUP: bool | None = None  # None이면 개발 환경에서만 활성화

    # 원본 파일 다운로드
    HTTP_TIMEOUT_SECONDS: float = 60.0

    # 관리형 Blob 저장소 (S3 호환 API: AWS S3, Cloudflare R2 등)
    BLOB_ACCESS_KEY_ID: str | None = None
    BLOB_SECRET_ACCESS_KEY: str | None = None
    BLOB_BUCKET_NAME: str | None = None
    BLOB_ENDPOINT_URL: str | None = None  # R2: https://<ACCOUNT_ID>.r2.cloudflarestorage.com
    BLOB_REGION: str | None = None
    BLOB_PUBLIC_URL: str | None = None  # 퍼블릭 URL: https://pub-xxx.r2.dev
    BLOB_PREFIX: str = "uploads"

    # CloudConvert (문서 변환)
    CLOUDCONVERT_API_KEY: str | None = None
    CLOUDCONVERT_SANDBOX: bool = False
    CLOUDCONVERT_POLL_INTERVAL_SECONDS: float = 2.0
    CLOUDCONVERT_TIMEOUT_SECONDS: float = 300.0

    # 정리 작업 인증 (외부 스케줄러)
    CRON_SECRET: str | None = None
    CRON_HEADER_NAME: str = "x-vercel-cron"

    # 유료 기능 게이트 비밀번호
    GATE_PASSWORD: str | None = None

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """문자열 CORS origins을 리스트로 파싱"""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("PUBLIC_BASE_URL", "BLOB_PUBLIC_URL", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v):
        """URL 끝의 '/' 제거"""
        if isinstance(v, str):
            return v.rstrip("/")
        return v

    @property
    def MAX_FILE_SIZE_BYTES(self) -> int:
        """파일당 최대 크기 (bytes)"""
        return self.MAX_FILE_SIZE_MB * 1024 * 1024

    @property
    def FILE_TTL_SECONDS(self) -> int:
        """파일 보관 시간 (초)"""
        return self.FILE_TTL_MINUTES * 60

    @property
    def is_development(self) -> bool:
        """개발 환경 여부"""
        return self.ENV == "development"

    @property
    def is_production(self) -> bool:
        """프로덕션 환경 여부"""
        return self.ENV == "production"

    @property
    def is_blob_enabled(self) -> bool:
        """관리형 Blob 저장소 활성화 여부 (3개 필수값 모두 필요)"""
        return all([
            self.BLOB_ACCESS_KEY_ID,
            self.BLOB_SECRET_ACCESS_KEY,
            self.BLOB_BUCKET_NAME,
        ])

    @property
    def is_cloudconvert_enabled(self) -> bool:
        """CloudConvert API 키 설정 여부"""
        return bool(self.CLOUDCONVERT_API_KEY)

    @property
    def is_auto_cleanup_enabled(self) -> bool:
        """주기적 자동 정리 활성화 여부"""
        if self.AUTO_CLEANUP is None:
            return self.is_development
        return self.AUTO_CLEANUP

    @property
    def secret_values(self) -> List[str]:
        """에러 메시지/로그에서 마스킹할 비밀 값 목록"""
        candidates = [
            self.BLOB_ACCESS_KEY_ID,
            self.BLOB_SECRET_ACCESS_KEY,
            self.CLOUDCONVERT_API_KEY,
            self.CRON_SECRET,
            self.GATE_PASSWORD,
        ]
        return [value for value in candidates if value]

    def ensure_directories(self) -> None:
        """로컬 업로드 디렉토리 생성"""
        self.UPLOAD_DIR.mkdir(parents=True, exist_ok=True)


def format_ttl(minutes: int) -> str:
    """TTL을 사람이 읽기 쉬운 형식으로 변환 (예: 30m, 2h, 1h30m)"""
    if minutes < 60:
        return f"{minutes}m"
    hours, rest = divmod(minutes, 60)
    return f"{hours}h{rest}m" if rest else f"{hours}h"


@lru_cache
def get_settings() -> Settings:
    """설정 싱글톤 반환 (캐싱)"""
    return Settings()


# 기본 설정 인스턴스 (get_settings()와 동일 인스턴스 사용)
settings = get_settings()
