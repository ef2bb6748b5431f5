import io
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from PIL import Image, ImageFilter, ImageOps, UnidentifiedImageError

from app.core.exceptions import InvalidFileTypeException, InvalidRequestException
from app.models.request import MAX_DIMENSION
from app.services.processors.base import BaseProcessor

logger = logging.getLogger(__name__)

LANCZOS = Image.Resampling.LANCZOS

# 원본 형식 → 결과 형식 (resize는 원본 형식 유지)
_SOURCE_FORMAT_MAP = {
    "jpeg": "jpeg",
    "mpo": "jpeg",
    "png": "png",
    "webp": "webp",
    "gif": "gif",
    "tiff": "tiff",
}


@dataclass
class ImageResult:
    """이미지 처리 결과"""

    data: bytes
    format: str
    width: int
    height: int


def normalize_format(fmt: str) -> str:
    """'jpg' → 'jpeg' 등 형식 이름 정규화"""
    fmt = fmt.lower()
    return "jpeg" if fmt == "jpg" else fmt


def _has_alpha(image: Image.Image) -> bool:
    return image.mode in ("RGBA", "LA", "PA") or (
        image.mode == "P" and "transparency" in image.info
    )


class ImageProcessor(BaseProcessor):
    """이미지 처리기 (Pillow)"""

    @property
    def kind(self) -> str:
        return "이미지"

    # =========================================================================
    # 내부 헬퍼
    # =========================================================================

    def _open(self, data: bytes, action: str) -> Image.Image:
        """이미지 열기 (작업 가능한 RGB/RGBA/L 모드로 변환)"""
        try:
            image = Image.open(io.BytesIO(data))
            image.load()
        except Image.DecompressionBombError:
            raise InvalidRequestException("이미지 해상도가 너무 큽니다")
        except (UnidentifiedImageError, OSError):
            raise InvalidFileTypeException(expected_type="이미지", action=action)

        source_format = (image.format or "").lower()
        if image.mode not in ("RGB", "RGBA", "L"):
            image = image.convert("RGBA" if _has_alpha(image) else "RGB")

        # convert() 후에도 원본 형식 정보 유지
        image.info["source_format"] = source_format
        return image

    @staticmethod
    def _flatten(image: Image.Image) -> Image.Image:
        """알파 채널을 흰 배경에 합성 (JPEG 저장용)"""
        if image.mode == "RGBA":
            background = Image.new("RGB", image.size, (255, 255, 255))
            background.paste(image, mask=image.getchannel("A"))
            return background
        if image.mode not in ("RGB", "L"):
            return image.convert("RGB")
        return image

    def _save(self, image: Image.Image, fmt: str, quality: int) -> bytes:
        """형식별 인코딩"""
        fmt = normalize_format(fmt)
        buffer = io.BytesIO()

        if fmt == "jpeg":
            self._flatten(image).save(
                buffer, "JPEG", quality=quality, optimize=True, progressive=True
            )
        elif fmt == "webp":
            image.save(buffer, "WEBP", quality=quality, method=4)
        elif fmt == "png":
            image.save(buffer, "PNG", optimize=True)
        elif fmt == "tiff":
            image.save(buffer, "TIFF", compression="tiff_lzw")
        elif fmt == "gif":
            image.save(buffer, "GIF")
        else:
            raise InvalidRequestException(f"지원하지 않는 형식입니다: {fmt}")

        return buffer.getvalue()

    def _result(self, image: Image.Image, fmt: str, quality: int) -> ImageResult:
        return ImageResult(
            data=self._save(image, fmt, quality),
            format=normalize_format(fmt),
            width=image.width,
            height=image.height,
        )

    # =========================================================================
    # 동기 처리 (스레드에서 실행)
    # =========================================================================

    def _compress_sync(
        self,
        data: bytes,
        quality: int,
        fmt: str,
        max_width: Optional[int],
        max_height: Optional[int],
    ) -> ImageResult:
        image = self._open(data, "compress")

        # 최대 크기 안으로 축소 (확대하지 않음)
        if max_width or max_height:
            image.thumbnail((max_width or image.width, max_height or image.height), LANCZOS)

        return self._result(image, fmt, quality)

    def _resize_sync(
        self,
        data: bytes,
        width: Optional[int],
        height: Optional[int],
        fit: str,
    ) -> ImageResult:
        image = self._open(data, "resize")
        source_format = image.info.get("source_format", "")

        if width and height:
            size = (width, height)
            if fit == "cover":
                resized = ImageOps.fit(image, size, LANCZOS)
            elif fit == "contain":
                resized = ImageOps.pad(image, size, LANCZOS)
            elif fit == "inside":
                resized = ImageOps.contain(image, size, LANCZOS)
            elif fit == "outside":
                ratio = max(width / image.width, height / image.height)
                resized = image.resize(
                    (max(1, round(image.width * ratio)), max(1, round(image.height * ratio))),
                    LANCZOS,
                )
            else:
                resized = image.resize(size, LANCZOS)
        else:
            # 한쪽만 지정하면 비율 유지
            if width:
                new_size = (width, max(1, round(image.height * width / image.width)))
            else:
                new_size = (max(1, round(image.width * height / image.height)), height)
            resized = image.resize(new_size, LANCZOS)

        output_format = _SOURCE_FORMAT_MAP.get(source_format, "png")
        return self._result(resized, output_format, 90)

    def _convert_sync(self, data: bytes, fmt: str, quality: int) -> ImageResult:
        image = self._open(data, "convert")
        return self._result(image, fmt, quality)

    def _upscale_sync(self, data: bytes, scale: int) -> ImageResult:
        image = self._open(data, "upscale")
        new_width = image.width * scale
        new_height = image.height * scale

        if new_width > MAX_DIMENSION or new_height > MAX_DIMENSION:
            raise InvalidRequestException(
                f"업스케일 결과가 최대 크기({MAX_DIMENSION}px)를 초과합니다: {new_width}x{new_height}"
            )

        upscaled = image.resize((new_width, new_height), LANCZOS)
        upscaled = upscaled.filter(ImageFilter.UnsharpMask(radius=1, percent=60, threshold=2))
        return self._result(upscaled, "png", 100)

    def _info_sync(self, data: bytes) -> Dict[str, Any]:
        try:
            image = Image.open(io.BytesIO(data))
        except Image.DecompressionBombError:
            raise InvalidRequestException("이미지 해상도가 너무 큽니다")
        except (UnidentifiedImageError, OSError):
            raise InvalidFileTypeException(expected_type="이미지", action="info")

        return {
            "format": (image.format or "").lower(),
            "width": image.width,
            "height": image.height,
            "mode": image.mode,
            "has_alpha": _has_alpha(image),
            "size": len(data),
        }

    # =========================================================================
    # 비동기 API
    # =========================================================================

    async def compress(
        self,
        data: bytes,
        quality: int = 80,
        fmt: str = "webp",
        max_width: Optional[int] = None,
        max_height: Optional[int] = None,
    ) -> ImageResult:
        return await self._run(
            "compress", self._compress_sync, data, quality, fmt, max_width, max_height
        )

    async def resize(
        self,
        data: bytes,
        width: Optional[int] = None,
        height: Optional[int] = None,
        fit: str = "cover",
    ) -> ImageResult:
        return await self._run("resize", self._resize_sync, data, width, height, fit)

    async def convert(self, data: bytes, fmt: str, quality: int = 90) -> ImageResult:
        return await self._run("convert", self._convert_sync, data, fmt, quality)

    async def upscale(self, data: bytes, scale: int = 2) -> ImageResult:
        """Lanczos 보간 + 약한 샤프닝으로 확대 (PNG 출력)"""
        return await self._run("upscale", self._upscale_sync, data, scale)

    async def info(self, data: bytes) -> Dict[str, Any]:
        return await self._run("info", self._info_sync, data)
