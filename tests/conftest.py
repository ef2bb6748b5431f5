"""공용 테스트 픽스처"""

import io
import os
import tempfile

# main 임포트 전에 테스트 환경 설정
os.environ["ENV"] = "testing"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="optinexus-test-")
for _name in (
    "BLOB_ACCESS_KEY_ID",
    "BLOB_SECRET_ACCESS_KEY",
    "BLOB_BUCKET_NAME",
    "CLOUDCONVERT_API_KEY",
    "CRON_SECRET",
    "GATE_PASSWORD",
):
    os.environ.pop(_name, None)

from typing import Dict, List, Optional, Tuple

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image
from pypdf import PdfWriter

from app.services import (
    CleanupService,
    ConversionGateway,
    ImageProcessor,
    PdfProcessor,
    SourceFetcher,
)
from app.services.storage import LocalStorage
from main import app

BASE_URL = "http://testserver"
REMOTE_URL = "https://files.example.com"


def make_pdf(page_count: int = 1, widths: Optional[List[float]] = None) -> bytes:
    """빈 페이지 PDF 생성 (widths로 페이지별 가로 크기 지정 가능)"""
    writer = PdfWriter()
    widths = widths or [612] * page_count
    for width in widths:
        writer.add_blank_page(width=width, height=792)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def make_image(
    width: int = 200,
    height: int = 100,
    mode: str = "RGB",
    fmt: str = "PNG",
    noise: bool = False,
) -> bytes:
    """테스트 이미지 생성 (noise=True면 무작위 픽셀)"""
    if noise:
        image = Image.frombytes("RGB", (width, height), os.urandom(width * height * 3))
    else:
        color = (255, 0, 0, 128) if mode == "RGBA" else (255, 0, 0)
        image = Image.new(mode, (width, height), color)
    buffer = io.BytesIO()
    image.save(buffer, fmt)
    return buffer.getvalue()


class RemoteFiles:
    """외부 파일 서버 흉내 (httpx.MockTransport 핸들러)"""

    def __init__(self):
        self.files: Dict[str, Tuple[int, bytes]] = {}
        self.requests: List[httpx.Request] = []

    def add(self, name: str, data: bytes, status_code: int = 200) -> str:
        url = f"{REMOTE_URL}/{name}"
        self.files[url] = (status_code, data)
        return url

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status_code, data = self.files.get(str(request.url), (404, b"not found"))
        return httpx.Response(status_code, content=data)


@pytest.fixture
def remote_files() -> RemoteFiles:
    return RemoteFiles()


@pytest.fixture
def storage(tmp_path) -> LocalStorage:
    return LocalStorage(upload_dir=tmp_path / "uploads", base_url=BASE_URL)


@pytest_asyncio.fixture
async def http_client(remote_files):
    async with httpx.AsyncClient(transport=httpx.MockTransport(remote_files.handler)) as client:
        yield client


@pytest.fixture
def pdf_processor() -> PdfProcessor:
    return PdfProcessor()


@pytest.fixture
def image_processor() -> ImageProcessor:
    return ImageProcessor()


@pytest.fixture
def test_app(storage, http_client):
    """테스트용 의존성을 app.state에 주입한 앱"""
    app.state.storage = storage
    app.state.http_client = http_client
    app.state.source_fetcher = SourceFetcher(
        storage=storage,
        http_client=http_client,
        max_size=10 * 1024 * 1024,
    )
    app.state.conversion_gateway = ConversionGateway(http_client=http_client, api_key=None)
    app.state.pdf_processor = PdfProcessor()
    app.state.image_processor = ImageProcessor()
    app.state.cleanup_service = CleanupService(storage, ttl_minutes=30)

    yield app

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(test_app):
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url=BASE_URL) as client:
        yield client
