"""업로드 / 도구 / 다운로드 API 테스트"""

import io
from urllib.parse import quote

import pytest
from PIL import Image
from pypdf import PdfReader

from app.core.config import Settings, get_settings
from conftest import make_image, make_pdf


async def _stored_bytes(storage, url: str) -> bytes:
    return await storage.get(storage.key_from_url(url))


@pytest.mark.asyncio
class TestUpload:
    """POST /api/upload 테스트"""

    async def test_upload_then_download_identical(self, client):
        data = make_pdf(2)

        upload = await client.post(
            "/api/upload", files={"file": ("report.pdf", data, "application/pdf")}
        )

        assert upload.status_code == 200
        body = upload.json()
        assert body["url"].startswith("http://testserver/uploads/")
        assert body["pathname"].endswith("-report.pdf")
        assert body["filename"] == "report.pdf"
        assert body["size"] == len(data)
        assert body["content_type"] == "application/pdf"

        download = await client.get("/api/download", params={"url": body["url"]})

        assert download.status_code == 200
        assert download.content == data
        assert download.headers["content-disposition"] == "attachment; filename*=UTF-8''report.pdf"

    async def test_long_korean_filename(self, client):
        filename = "보" * 90 + ".pdf"

        upload = await client.post(
            "/api/upload", files={"file": (filename, make_pdf(1), "application/pdf")}
        )

        assert upload.status_code == 200
        body = upload.json()
        assert body["filename"] == filename
        assert body["pathname"].endswith(".pdf")
        assert len(body["pathname"].encode("utf-8")) < 255

    async def test_content_type_detected(self, client):
        upload = await client.post(
            "/api/upload", files={"file": ("photo", make_image(), "application/octet-stream")}
        )

        assert upload.json()["content_type"] == "image/png"

    async def test_signature_mismatch(self, client):
        response = await client.post(
            "/api/upload", files={"file": ("fake.png", make_pdf(1), "image/png")}
        )

        assert response.status_code == 400

    async def test_missing_file(self, client):
        response = await client.post("/api/upload", data={"other": "value"})

        assert response.status_code == 400

    async def test_file_too_large(self, client, test_app):
        test_app.dependency_overrides[get_settings] = lambda: Settings(MAX_FILE_SIZE_MB=1)

        response = await client.post(
            "/api/upload",
            files={"file": ("big.bin", b"\0" * (1024 * 1024 + 1), "application/octet-stream")},
        )

        assert response.status_code == 413


@pytest.mark.asyncio
class TestDownload:
    """GET /api/download 테스트"""

    async def test_korean_filename(self, client, storage):
        stored = await storage.put(b"data", "보고서.pdf", "application/pdf")

        response = await client.get("/api/download", params={"url": stored.url})

        assert response.headers["content-disposition"] == (
            f"attachment; filename*=UTF-8''{quote('보고서.pdf')}"
        )

    async def test_custom_filename(self, client, storage):
        stored = await storage.put(b"data", "a.pdf", "application/pdf")

        response = await client.get(
            "/api/download", params={"url": stored.url, "filename": "custom.pdf"}
        )

        assert "custom.pdf" in response.headers["content-disposition"]

    async def test_large_local_file_streamed(self, client, storage):
        data = bytes(range(256)) * 5000
        stored = await storage.put(data, "large.bin", "application/octet-stream")

        response = await client.get("/api/download", params={"url": stored.url})

        assert response.status_code == 200
        assert response.content == data
        assert response.headers["content-type"] == "application/octet-stream"

    async def test_missing_local_file(self, client):
        response = await client.get(
            "/api/download",
            params={"url": "http://testserver/uploads/1700000000000-abcdef12-gone.pdf"},
        )

        assert response.status_code == 404

    async def test_remote_file_streamed(self, client, remote_files):
        url = remote_files.add("remote.bin", b"remote-bytes")

        response = await client.get("/api/download", params={"url": url})

        assert response.status_code == 200
        assert response.content == b"remote-bytes"
        assert "remote.bin" in response.headers["content-disposition"]

    async def test_remote_not_found(self, client):
        response = await client.get(
            "/api/download", params={"url": "https://files.example.com/nothing"}
        )

        assert response.status_code == 404

    async def test_url_required(self, client):
        response = await client.get("/api/download")

        assert response.status_code == 400


@pytest.mark.asyncio
class TestPdfEndpoints:
    """POST /api/pdf 테스트"""

    async def test_merge(self, client, storage, remote_files):
        first = await storage.put(make_pdf(widths=[100, 200]), "a.pdf", "application/pdf")
        second_url = remote_files.add("b.pdf", make_pdf(widths=[300]))

        response = await client.post(
            "/api/pdf", params={"action": "merge"}, json={"urls": [first.url, second_url]}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["filename"].startswith("merged-")
        assert data["metadata"] == {"file_count": 2, "page_count": 3}

        reader = PdfReader(io.BytesIO(await _stored_bytes(storage, data["download_url"])))
        assert [float(page.mediabox.width) for page in reader.pages] == [100, 200, 300]

    async def test_merge_needs_two_urls(self, client, storage):
        stored = await storage.put(make_pdf(1), "a.pdf", "application/pdf")

        response = await client.post("/api/pdf?action=merge", json={"urls": [stored.url]})

        assert response.status_code == 400

    async def test_merge_file_limit(self, client, test_app, storage):
        test_app.dependency_overrides[get_settings] = lambda: Settings(MAX_MERGE_FILES=2)
        stored = await storage.put(make_pdf(1), "a.pdf", "application/pdf")

        response = await client.post(
            "/api/pdf/merge", json={"urls": [stored.url, stored.url, stored.url]}
        )

        assert response.status_code == 400

    async def test_split_action_in_body(self, client, storage):
        stored = await storage.put(make_pdf(5), "a.pdf", "application/pdf")

        response = await client.post(
            "/api/pdf", json={"action": "split", "url": stored.url, "ranges": "1-2,4"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total_files"] == 2
        assert data["original_pages"] == 5
        assert [f["pages"] for f in data["files"]] == [[1, 2], [4]]
        assert data["files"][0]["filename"].startswith("split-1-2-")
        assert data["files"][1]["filename"].startswith("split-4-")

    async def test_compress(self, client, storage):
        stored = await storage.put(make_pdf(2), "a.pdf", "application/pdf")

        response = await client.post("/api/pdf/compress", json={"url": stored.url})

        assert response.status_code == 200
        metadata = response.json()["metadata"]
        assert metadata["original_size"] > 0
        assert metadata["savings"].endswith("%")

    async def test_corrupt_pdf_is_server_error(self, client, storage):
        stored = await storage.put(b"%PDF-1.4\n1 0 obj <<", "broken.pdf", "application/pdf")

        response = await client.post("/api/pdf/compress", json={"url": stored.url})

        assert response.status_code == 500
        assert response.json()["detail"]

    async def test_rotate(self, client, storage):
        stored = await storage.put(make_pdf(2), "a.pdf", "application/pdf")

        response = await client.post(
            "/api/pdf/rotate", json={"url": stored.url, "angle": 180, "pages": "1"}
        )

        assert response.status_code == 200
        assert response.json()["metadata"]["rotated_pages"] == 1
        reader = PdfReader(io.BytesIO(await _stored_bytes(storage, response.json()["download_url"])))
        assert [page.rotation for page in reader.pages] == [180, 0]

    async def test_rotate_invalid_angle(self, client, storage):
        stored = await storage.put(make_pdf(1), "a.pdf", "application/pdf")

        response = await client.post("/api/pdf/rotate", json={"url": stored.url, "angle": 45})

        assert response.status_code == 400

    async def test_watermark_camel_case_fields(self, client, storage):
        stored = await storage.put(make_pdf(1), "a.pdf", "application/pdf")

        response = await client.post(
            "/api/pdf/watermark",
            json={"url": stored.url, "text": "DRAFT", "fontSize": 30, "color": "#112233"},
        )

        assert response.status_code == 200
        assert response.json()["metadata"] == {"text": "DRAFT"}

    async def test_watermark_invalid_opacity(self, client, storage):
        stored = await storage.put(make_pdf(1), "a.pdf", "application/pdf")

        response = await client.post(
            "/api/pdf/watermark", json={"url": stored.url, "opacity": 1.5}
        )

        assert response.status_code == 400

    async def test_info_does_not_store(self, client, storage):
        stored = await storage.put(make_pdf(3), "a.pdf", "application/pdf")

        response = await client.post("/api/pdf/info", json={"url": stored.url})

        assert response.status_code == 200
        assert response.json()["info"]["page_count"] == 3
        assert len(await storage.list_objects()) == 1

    async def test_unknown_action(self, client):
        response = await client.post("/api/pdf?action=explode", json={})

        assert response.status_code == 400

    async def test_non_pdf_source(self, client, remote_files):
        url = remote_files.add("fake.pdf", b"just text")

        response = await client.post("/api/pdf/compress", json={"url": url})

        assert response.status_code == 400

    async def test_source_fetch_failure(self, client):
        response = await client.post(
            "/api/pdf/compress", json={"url": "https://files.example.com/missing.pdf"}
        )

        assert response.status_code == 400

    async def test_invalid_url(self, client):
        response = await client.post("/api/pdf/compress", json={"url": "ftp://example.com/a.pdf"})

        assert response.status_code == 400


@pytest.mark.asyncio
class TestImageEndpoints:
    """POST /api/image 테스트"""

    async def test_resize(self, client, storage):
        stored = await storage.put(make_image(200, 100), "a.png", "image/png")

        response = await client.post(
            "/api/image", params={"action": "resize"}, json={"url": stored.url, "width": 100}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["filename"].startswith("resized-100x50-")
        assert data["filename"].endswith(".png")
        image = Image.open(io.BytesIO(await _stored_bytes(storage, data["download_url"])))
        assert image.size == (100, 50)

    async def test_resize_requires_dimension(self, client, storage):
        stored = await storage.put(make_image(), "a.png", "image/png")

        response = await client.post("/api/image/resize", json={"url": stored.url})

        assert response.status_code == 400

    @pytest.mark.parametrize("width", [0, 10001])
    async def test_resize_bounds(self, client, storage, width):
        stored = await storage.put(make_image(), "a.png", "image/png")

        response = await client.post(
            "/api/image/resize", json={"url": stored.url, "width": width}
        )

        assert response.status_code == 400

    async def test_compress(self, client, storage):
        stored = await storage.put(make_image(64, 64, noise=True), "a.png", "image/png")

        response = await client.post(
            "/api/image/compress", json={"url": stored.url, "quality": 70, "maxWidth": 32}
        )

        assert response.status_code == 200
        metadata = response.json()["metadata"]
        assert metadata["format"] == "webp"
        assert metadata["width"] == 32

    async def test_convert_invalid_format(self, client, storage):
        stored = await storage.put(make_image(), "a.png", "image/png")

        response = await client.post(
            "/api/image/convert", json={"url": stored.url, "format": "bmp"}
        )

        assert response.status_code == 400

    async def test_upscale(self, client, storage):
        stored = await storage.put(make_image(20, 10), "a.png", "image/png")

        response = await client.post("/api/image/upscale", json={"url": stored.url, "scale": 2})

        assert response.status_code == 200
        assert response.json()["metadata"] == {"scale": 2, "width": 40, "height": 20}

    async def test_upscale_invalid_scale(self, client, storage):
        stored = await storage.put(make_image(), "a.png", "image/png")

        response = await client.post("/api/image/upscale", json={"url": stored.url, "scale": 3})

        assert response.status_code == 400

    async def test_info(self, client, storage):
        stored = await storage.put(make_image(30, 20), "a.png", "image/png")

        response = await client.post("/api/image/info", json={"url": stored.url})

        assert response.json()["info"]["width"] == 30

    async def test_unknown_action(self, client):
        response = await client.post("/api/image", json={"action": "blur"})

        assert response.status_code == 400
