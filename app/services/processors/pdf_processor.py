import io
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Set, Tuple

from pypdf import PasswordType, PdfReader, PdfWriter
from pypdf.generic import NameObject, NumberObject
from reportlab.pdfgen import canvas

from app.core.exceptions import InvalidFileTypeException, InvalidRequestException
from app.services.processors.base import BaseProcessor
from app.utils.file_validator import is_pdf

logger = logging.getLogger(__name__)


@dataclass
class SplitPart:
    """분할된 PDF 한 개"""

    data: bytes
    pages: List[int]  # 1부터 시작하는 페이지 번호


def _to_int(text: str):
    try:
        return int(text.strip())
    except ValueError:
        return None


def parse_page_ranges(range_str: str, total_pages: int) -> List[List[int]]:
    """
    페이지 범위 문자열 파싱 (예: "1-3,5,7-10")

    - 각 항목은 "N" 또는 "A-B" (1부터, 양끝 포함)
    - "A-B"는 [1, total_pages]로 잘라냄
    - 페이지를 하나도 선택하지 못한 항목은 무시
    - 빈 문자열이거나 유효한 항목이 없으면 페이지별로 하나씩

    Returns:
        0부터 시작하는 페이지 인덱스 그룹 목록
    """
    every_page = [[i] for i in range(total_pages)]

    if not range_str or not range_str.strip():
        return every_page

    groups = []
    for part in range_str.split(","):
        part = part.strip()
        if not part:
            continue

        if "-" in part:
            start_text, _, end_text = part.partition("-")
            start, end = _to_int(start_text), _to_int(end_text)
            if start is None or end is None:
                continue
            indices = list(range(max(1, start) - 1, min(total_pages, end)))
            if indices:
                groups.append(indices)
        else:
            page = _to_int(part)
            if page is not None and 1 <= page <= total_pages:
                groups.append([page - 1])

    return groups or every_page


def parse_page_selection(selection: str, total_pages: int) -> Set[int]:
    """'all' 또는 "1,3,5" 형식의 페이지 선택 파싱 (0부터 시작하는 인덱스 집합)"""
    if not selection or selection.strip().lower() == "all":
        return set(range(total_pages))

    selected = set()
    for part in selection.split(","):
        page = _to_int(part)
        if page is not None and 1 <= page <= total_pages:
            selected.add(page - 1)
    return selected


def _hex_to_rgb(color: str) -> Tuple[float, float, float]:
    """#RRGGBB → (r, g, b) 0~1 범위"""
    value = color.lstrip("#")
    return tuple(int(value[i:i + 2], 16) / 255 for i in (0, 2, 4))


class PdfProcessor(BaseProcessor):
    """PDF 처리기 (pypdf + reportlab)"""

    @property
    def kind(self) -> str:
        return "PDF"

    # =========================================================================
    # 내부 헬퍼
    # =========================================================================

    def _open(self, data: bytes, action: str) -> PdfReader:
        """PDF 열기 (시그니처 검증, 빈 비밀번호 암호화 해제)"""
        if not is_pdf(data):
            raise InvalidFileTypeException(expected_type="PDF", action=action)

        reader = PdfReader(io.BytesIO(data))
        if reader.is_encrypted:
            if reader.decrypt("") == PasswordType.NOT_DECRYPTED:
                raise InvalidRequestException("암호로 보호된 PDF는 처리할 수 없습니다")
        return reader

    @staticmethod
    def _to_bytes(writer: PdfWriter) -> bytes:
        buffer = io.BytesIO()
        writer.write(buffer)
        return buffer.getvalue()

    # =========================================================================
    # 동기 처리 (스레드에서 실행)
    # =========================================================================

    def _merge_sync(self, sources: List[bytes]) -> Tuple[bytes, int]:
        writer = PdfWriter()
        for data in sources:
            reader = self._open(data, "merge")
            for page in reader.pages:
                writer.add_page(page)
        return self._to_bytes(writer), len(writer.pages)

    def _split_sync(self, data: bytes, ranges: str) -> Tuple[List[SplitPart], int]:
        reader = self._open(data, "split")
        total_pages = len(reader.pages)

        parts = []
        for indices in parse_page_ranges(ranges, total_pages):
            writer = PdfWriter()
            for index in indices:
                writer.add_page(reader.pages[index])
            parts.append(SplitPart(data=self._to_bytes(writer), pages=[i + 1 for i in indices]))

        return parts, total_pages

    def _compress_sync(self, data: bytes) -> bytes:
        reader = self._open(data, "compress")
        writer = PdfWriter()
        for page in reader.pages:
            writer.add_page(page)

        # 콘텐츠 스트림 압축 (무손실)
        for page in writer.pages:
            page.compress_content_streams()

        writer.compress_identical_objects(remove_identicals=True, remove_orphans=True)

        if reader.metadata:
            writer.add_metadata(reader.metadata)

        return self._to_bytes(writer)

    def _rotate_sync(self, data: bytes, angle: int, pages: str) -> Tuple[bytes, int]:
        reader = self._open(data, "rotate")
        writer = PdfWriter()
        for page in reader.pages:
            writer.add_page(page)

        targets = parse_page_selection(pages, len(writer.pages))
        for index in sorted(targets):
            page = writer.pages[index]
            page[NameObject("/Rotate")] = NumberObject((page.rotation + angle) % 360)

        return self._to_bytes(writer), len(targets)

    def _build_overlay(
        self,
        width: float,
        height: float,
        text: str,
        opacity: float,
        font_size: int,
        color: str,
    ):
        """워터마크 한 페이지 생성 (페이지 중앙, 45도 대각선)"""
        buffer = io.BytesIO()
        c = canvas.Canvas(buffer, pagesize=(width, height))
        c.setFillColorRGB(*_hex_to_rgb(color))
        c.setFillAlpha(opacity)
        c.setFont("Helvetica", font_size)
        c.saveState()
        c.translate(width / 2.0, height / 2.0)
        c.rotate(45)
        c.drawCentredString(0, -font_size / 3.0, text)
        c.restoreState()
        c.showPage()
        c.save()

        buffer.seek(0)
        return PdfReader(buffer).pages[0]

    def _watermark_sync(
        self,
        data: bytes,
        text: str,
        opacity: float,
        font_size: int,
        color: str,
    ) -> bytes:
        reader = self._open(data, "watermark")
        writer = PdfWriter()

        # 같은 크기 페이지는 오버레이 재사용
        overlays: Dict[Tuple[float, float], Any] = {}

        for page in reader.pages:
            width = float(page.mediabox.width)
            height = float(page.mediabox.height)
            size = (width, height)
            if size not in overlays:
                overlays[size] = self._build_overlay(width, height, text, opacity, font_size, color)

            page.merge_page(overlays[size])
            writer.add_page(page)

        return self._to_bytes(writer)

    def _info_sync(self, data: bytes) -> Dict[str, Any]:
        reader = self._open(data, "info")
        info: Dict[str, Any] = {
            "page_count": len(reader.pages),
            "file_size": len(data),
            "encrypted": reader.is_encrypted,
        }

        metadata = reader.metadata
        if metadata:
            info.update(
                title=metadata.title,
                author=metadata.author,
                subject=metadata.subject,
                creator=metadata.creator,
                producer=metadata.producer,
            )
        return info

    # =========================================================================
    # 비동기 API
    # =========================================================================

    async def merge(self, sources: List[bytes]) -> Tuple[bytes, int]:
        """여러 PDF를 순서대로 병합 → (PDF 바이트, 전체 페이지 수)"""
        return await self._run("merge", self._merge_sync, sources)

    async def split(self, data: bytes, ranges: str = "") -> Tuple[List[SplitPart], int]:
        """PDF 분할 → (분할 결과 목록, 원본 페이지 수)"""
        return await self._run("split", self._split_sync, data, ranges)

    async def compress(self, data: bytes) -> bytes:
        return await self._run("compress", self._compress_sync, data)

    async def rotate(self, data: bytes, angle: int, pages: str = "all") -> Tuple[bytes, int]:
        """페이지 회전 → (PDF 바이트, 회전된 페이지 수)"""
        return await self._run("rotate", self._rotate_sync, data, angle, pages)

    async def watermark(
        self,
        data: bytes,
        text: str,
        opacity: float,
        font_size: int,
        color: str,
    ) -> bytes:
        return await self._run(
            "watermark", self._watermark_sync, data, text, opacity, font_size, color
        )

    async def info(self, data: bytes) -> Dict[str, Any]:
        return await self._run("info", self._info_sync, data)
