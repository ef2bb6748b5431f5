import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from app.core.config import format_ttl
from app.services.storage import StorageBackend
from app.utils.redaction import get_safe_error_message

logger = logging.getLogger(__name__)


@dataclass
class CleanupResult:
    """정리 작업 결과"""

    deleted: int
    errors: int
    duration_ms: int
    ttl: str


class CleanupService:
    """
    만료 파일 정리 서비스

    - 보관 시간(TTL)이 지난 저장 파일 삭제
    - 삭제 실패는 개수만 집계 (같은 실행 안에서 재시도하지 않음)
    - 주기적 정리 스케줄러
    """

    def __init__(self, storage: StorageBackend, ttl_minutes: int):
        self.storage = storage
        self.ttl_minutes = ttl_minutes
        self._scheduler_task: Optional[asyncio.Task] = None

    @property
    def ttl_seconds(self) -> int:
        return self.ttl_minutes * 60

    async def sweep(self, now: Optional[datetime] = None) -> CleanupResult:
        """
        만료 파일 정리 1회 실행

        Args:
            now: 기준 시각 (기본값: 현재 UTC)

        Returns:
            CleanupResult
        """
        started = time.monotonic()
        now = now or datetime.now(timezone.utc)
        deleted = 0
        errors = 0

        objects = await self.storage.list_objects()
        for stored in objects:
            if stored.age_seconds(now) <= self.ttl_seconds:
                continue

            try:
                if await self.storage.delete(stored.key):
                    deleted += 1
            except Exception as e:
                errors += 1
                logger.warning(f"파일 삭제 실패 ({stored.key}): {get_safe_error_message(e)}")

        result = CleanupResult(
            deleted=deleted,
            errors=errors,
            duration_ms=int((time.monotonic() - started) * 1000),
            ttl=format_ttl(self.ttl_minutes),
        )
        logger.info(
            f"정리 완료: {result.deleted}개 삭제, {result.errors}개 실패 "
            f"(전체 {len(objects)}개, TTL {result.ttl}, {result.duration_ms}ms)"
        )
        return result

    async def start_scheduler(self, interval_minutes: int, run_immediately: bool = True) -> None:
        """
        주기적 정리 스케줄러 시작

        Args:
            interval_minutes: 정리 간격 (분)
            run_immediately: 시작 직후 1회 실행 여부
        """
        if self._scheduler_task is not None:
            return

        async def cleanup_loop():
            if run_immediately:
                await self._sweep_safely()
            while True:
                await asyncio.sleep(interval_minutes * 60)
                await self._sweep_safely()

        self._scheduler_task = asyncio.create_task(cleanup_loop())
        logger.info(f"자동 정리 스케줄러 시작 (간격 {interval_minutes}분, TTL {format_ttl(self.ttl_minutes)})")

    async def _sweep_safely(self) -> None:
        """스케줄러용 정리 (실패해도 루프 유지)"""
        try:
            await self.sweep()
        except Exception as e:
            logger.error(f"자동 정리 실패: {get_safe_error_message(e)}")

    async def stop_scheduler(self) -> None:
        """정리 스케줄러 중지"""
        if self._scheduler_task is None:
            return

        self._scheduler_task.cancel()
        try:
            await self._scheduler_task
        except asyncio.CancelledError:
            pass
        self._scheduler_task = None

    @property
    def is_running(self) -> bool:
        return self._scheduler_task is not None and not self._scheduler_task.done()
