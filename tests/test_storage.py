"""저장소 백엔드 테스트"""

import io
import re
from datetime import datetime, timezone

import boto3
import pytest
from botocore.response import StreamingBody
from botocore.stub import Stubber

from app.core.exceptions import StoredFileNotFoundException
from app.services.storage import (
    S3Storage,
    STREAM_CHUNK_SIZE,
    original_filename,
    parse_key_timestamp,
)

KEY_PATTERN = re.compile(r"^\d{13}-[0-9a-f]{8}-.+$")


class TestKeyHelpers:
    """저장소 키 헬퍼 테스트"""

    def test_generate_key_format(self, storage):
        key = storage.generate_key("report.pdf")
        assert KEY_PATTERN.match(key)
        assert key.endswith("-report.pdf")

    def test_generate_key_sanitizes_path(self, storage):
        key = storage.generate_key("../../etc/passwd")
        assert "/" not in key
        assert ".." not in key

    def test_generate_key_limits_utf8_bytes(self, storage):
        key = storage.generate_key("보" * 90 + ".pdf")
        filename = original_filename(key)

        assert len(filename.encode("utf-8")) <= storage.MAX_FILENAME_BYTES
        assert len(key.encode("utf-8")) < 255
        assert filename.endswith(".pdf")
        assert filename.startswith("보")

    def test_parse_key_timestamp(self):
        created = parse_key_timestamp("1700000000000-abcdef12-a.pdf")
        assert created == datetime.fromtimestamp(1700000000, tz=timezone.utc)
        assert parse_key_timestamp("plain.pdf") is None

    def test_original_filename(self):
        assert original_filename("1700000000000-abcdef12-보고서.pdf") == "보고서.pdf"
        assert original_filename("plain.pdf") == "plain.pdf"


@pytest.mark.asyncio
class TestLocalStorage:
    """로컬 저장소 테스트"""

    async def test_put_get_roundtrip(self, storage):
        stored = await storage.put(b"hello", "hello.txt", "text/plain")

        assert stored.url == f"http://testserver/uploads/{stored.key}"
        assert stored.size == 5
        assert await storage.get(stored.key) == b"hello"

    async def test_put_long_korean_filename(self, storage):
        stored = await storage.put(b"%PDF-1.4", "보" * 90 + ".pdf", "application/pdf")

        assert await storage.get(stored.key) == b"%PDF-1.4"
        assert stored.key.endswith(".pdf")

    async def test_key_from_url(self, storage):
        stored = await storage.put(b"data", "한글 파일.pdf", "application/pdf")

        assert storage.key_from_url(stored.url) == stored.key
        assert storage.key_from_url("https://elsewhere.example.com/uploads/x.pdf") is None

    async def test_get_missing_raises_404(self, storage):
        with pytest.raises(StoredFileNotFoundException) as exc_info:
            await storage.get("1700000000000-abcdef12-missing.pdf")
        assert exc_info.value.status_code == 404

    async def test_path_traversal_rejected(self, storage):
        with pytest.raises(StoredFileNotFoundException):
            await storage.get("../secret.txt")

    async def test_open_stream_chunks(self, storage):
        data = b"x" * (STREAM_CHUNK_SIZE + 10)
        stored = await storage.put(data, "big.bin", "application/octet-stream")

        chunks = [chunk async for chunk in await storage.open_stream(stored.key)]

        assert [len(chunk) for chunk in chunks] == [STREAM_CHUNK_SIZE, 10]
        assert b"".join(chunks) == data

    async def test_open_stream_missing(self, storage):
        with pytest.raises(StoredFileNotFoundException):
            await storage.open_stream("1700000000000-abcdef12-missing.pdf")

    async def test_delete(self, storage):
        stored = await storage.put(b"bye", "bye.txt", "text/plain")

        assert await storage.delete(stored.key) is True
        assert await storage.delete(stored.key) is False

    async def test_list_objects_skips_hidden(self, storage):
        stored = await storage.put(b"x", "a.png", "image/png")
        (storage.upload_dir / ".gitkeep").write_bytes(b"")

        objects = await storage.list_objects()

        assert [obj.key for obj in objects] == [stored.key]
        assert objects[0].content_type == "image/png"
        assert objects[0].created_at == parse_key_timestamp(stored.key)


@pytest.fixture
def s3_client():
    client = boto3.client(
        "s3",
        aws_access_key_id="test-key-id",
        aws_secret_access_key="test-secret",
        region_name="us-east-1",
    )
    with Stubber(client) as stubber:
        yield client, stubber


@pytest.mark.asyncio
class TestS3Storage:
    """S3 호환 저장소 테스트 (botocore Stubber)"""

    async def test_put_uses_prefix_and_public_url(self, s3_client):
        client, stubber = s3_client
        storage = S3Storage(client, "bucket", public_url="https://cdn.example.com/", prefix="uploads")
        stubber.add_response(
            "put_object",
            {},
        )

        stored = await storage.put(b"pdf", "a.pdf", "application/pdf")

        assert stored.url == f"https://cdn.example.com/uploads/{stored.key}"
        assert storage.key_from_url(stored.url) == stored.key
        assert storage.key_from_url("https://other.example.com/uploads/x.pdf") is None

    async def test_get_and_missing(self, s3_client):
        client, stubber = s3_client
        storage = S3Storage(client, "bucket", public_url="https://cdn.example.com")
        stubber.add_response(
            "get_object",
            {"Body": StreamingBody(io.BytesIO(b"content"), 7)},
        )
        stubber.add_client_error("get_object", service_error_code="NoSuchKey", http_status_code=404)

        assert await storage.get("k.pdf") == b"content"
        with pytest.raises(StoredFileNotFoundException):
            await storage.get("missing.pdf")

    async def test_open_stream_and_missing(self, s3_client):
        client, stubber = s3_client
        storage = S3Storage(client, "bucket", public_url="https://cdn.example.com")
        stubber.add_response(
            "get_object",
            {"Body": StreamingBody(io.BytesIO(b"streamed"), 8)},
        )
        stubber.add_client_error("get_object", service_error_code="NoSuchKey", http_status_code=404)

        chunks = [chunk async for chunk in await storage.open_stream("k.pdf")]

        assert b"".join(chunks) == b"streamed"
        with pytest.raises(StoredFileNotFoundException):
            await storage.open_stream("missing.pdf")

    async def test_list_objects_paginates(self, s3_client):
        client, stubber = s3_client
        storage = S3Storage(client, "bucket", public_url="https://cdn.example.com")
        modified = datetime(2024, 1, 1, tzinfo=timezone.utc)
        stubber.add_response(
            "list_objects_v2",
            {
                "Contents": [{"Key": "uploads/1700000000000-abcdef12-a.pdf", "LastModified": modified, "Size": 3}],
                "IsTruncated": True,
                "NextContinuationToken": "next",
            },
        )
        stubber.add_response(
            "list_objects_v2",
            {
                "Contents": [{"Key": "uploads/1700000000001-abcdef13-b.png", "LastModified": modified, "Size": 4}],
                "IsTruncated": False,
            },
        )

        objects = await storage.list_objects()

        assert [obj.key for obj in objects] == [
            "1700000000000-abcdef12-a.pdf",
            "1700000000001-abcdef13-b.png",
        ]
        assert objects[1].content_type == "image/png"
        assert objects[0].created_at == modified

    async def test_delete(self, s3_client):
        client, stubber = s3_client
        storage = S3Storage(client, "bucket", public_url="https://cdn.example.com")
        stubber.add_response("delete_object", {})

        assert await storage.delete("k.pdf") is True

    async def test_presigned_url_without_public_url(self, s3_client):
        client, _ = s3_client
        storage = S3Storage(client, "bucket", public_url=None, prefix="uploads")

        url = storage.url_for("k.pdf")

        assert "uploads/k.pdf" in url
        assert "Signature" in url or "X-Amz-Signature" in url
        assert storage.key_from_url(url) is None
