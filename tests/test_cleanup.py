"""만료 파일 정리 테스트"""

import asyncio
import os
import time
from datetime import datetime, timedelta, timezone

import pytest

from app.core.config import Settings, get_settings
from app.services import CleanupService


def _write_aged_file(storage, name: str, age_minutes: int) -> str:
    """생성 시각이 age_minutes 전인 키로 파일 생성"""
    created_ms = int((time.time() - age_minutes * 60) * 1000)
    key = f"{created_ms}-abcdef12-{name}"
    (storage.upload_dir / key).write_bytes(b"data")
    return key


@pytest.mark.asyncio
class TestCleanupService:
    """CleanupService 테스트"""

    async def test_sweep_keeps_young_and_deletes_old(self, storage):
        young = _write_aged_file(storage, "young.pdf", age_minutes=5)
        old = _write_aged_file(storage, "old.pdf", age_minutes=60)
        service = CleanupService(storage, ttl_minutes=30)

        result = await service.sweep()

        assert result.deleted == 1
        assert result.errors == 0
        assert result.ttl == "30m"
        assert (storage.upload_dir / young).exists()
        assert not (storage.upload_dir / old).exists()

    async def test_sweep_uses_mtime_for_unknown_names(self, storage):
        path = storage.upload_dir / "legacy.pdf"
        path.write_bytes(b"data")
        old_time = time.time() - 3600
        os.utime(path, (old_time, old_time))

        result = await CleanupService(storage, ttl_minutes=30).sweep()

        assert result.deleted == 1
        assert not path.exists()

    async def test_sweep_with_explicit_now(self, storage):
        stored = await storage.put(b"data", "a.pdf", "application/pdf")
        service = CleanupService(storage, ttl_minutes=30)

        assert (await service.sweep()).deleted == 0

        later = stored.created_at + timedelta(minutes=31)
        assert (await service.sweep(now=later)).deleted == 1

    async def test_sweep_counts_errors_without_retry(self, storage, monkeypatch):
        _write_aged_file(storage, "a.pdf", age_minutes=60)
        _write_aged_file(storage, "b.pdf", age_minutes=60)
        calls = []

        async def failing_delete(key):
            calls.append(key)
            raise OSError("permission denied")

        monkeypatch.setattr(storage, "delete", failing_delete)

        result = await CleanupService(storage, ttl_minutes=30).sweep()

        assert result.deleted == 0
        assert result.errors == 2
        assert len(calls) == 2

    async def test_scheduler_runs_immediately_and_stops(self, storage):
        old = _write_aged_file(storage, "old.pdf", age_minutes=60)
        service = CleanupService(storage, ttl_minutes=30)

        await service.start_scheduler(interval_minutes=60)
        for _ in range(50):
            if not (storage.upload_dir / old).exists():
                break
            await asyncio.sleep(0.02)

        assert service.is_running
        assert not (storage.upload_dir / old).exists()

        await service.stop_scheduler()
        assert not service.is_running


@pytest.mark.asyncio
class TestCleanupEndpoint:
    """정리 엔드포인트 인증 테스트"""

    async def test_open_without_cron_secret(self, client, test_app):
        test_app.dependency_overrides[get_settings] = lambda: Settings(CRON_SECRET=None)

        response = await client.get("/api/cleanup")

        assert response.status_code == 200
        data = response.json()
        assert data["stats"]["deleted"] == 0
        assert data["stats"]["ttl"] == "30m"
        assert data["stats"]["duration"].endswith("ms")
        assert data["timestamp"]

    async def test_requires_secret(self, client, test_app):
        test_app.dependency_overrides[get_settings] = lambda: Settings(CRON_SECRET="cron-secret")

        assert (await client.get("/api/cleanup")).status_code == 401
        assert (
            await client.get("/api/cleanup", headers={"Authorization": "Bearer wrong"})
        ).status_code == 401

    async def test_bearer_secret(self, client, test_app):
        test_app.dependency_overrides[get_settings] = lambda: Settings(CRON_SECRET="cron-secret")

        response = await client.post(
            "/api/cleanup", headers={"Authorization": "Bearer cron-secret"}
        )

        assert response.status_code == 200

    async def test_scheduler_header(self, client, test_app):
        test_app.dependency_overrides[get_settings] = lambda: Settings(CRON_SECRET="cron-secret")

        response = await client.get("/api/cleanup", headers={"x-vercel-cron": "1"})

        assert response.status_code == 200

    async def test_deletes_expired_files(self, client, test_app, storage):
        test_app.dependency_overrides[get_settings] = lambda: Settings(CRON_SECRET=None)
        _write_aged_file(storage, "old.pdf", age_minutes=90)

        response = await client.post("/api/cleanup")

        assert response.json()["stats"]["deleted"] == 1
