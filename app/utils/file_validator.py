from typing import Optional

# 파일 시그니처 (매직 바이트)
FILE_SIGNATURES = {
    "pdf": [b"%PDF"],
    "png": [b"\x89PNG\r\n\x1a\n"],
    "jpeg": [b"\xff\xd8\xff"],
    "gif": [b"GIF87a", b"GIF89a"],
    "tiff": [b"II*\x00", b"MM\x00*"],
    "bmp": [b"BM"],
}

# MIME 타입 매핑
MIME_TYPES = {
    "pdf": "application/pdf",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "doc": "application/msword",
    "ppt": "application/vnd.ms-powerpoint",
    "webp": "image/webp",
    "jpeg": "image/jpeg",
    "jpg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "tiff": "image/tiff",
    "bmp": "image/bmp",
}


def _normalize_extension(extension: str) -> str:
    return extension.lower().lstrip(".")


def detect_format(data: bytes) -> Optional[str]:
    """
    매직 바이트로 파일 형식 감지

    Args:
        data: 파일 데이터 (앞부분만 있어도 됨)

    Returns:
        형식 문자열 (예: 'pdf', 'png') 또는 None
    """
    header = data[:16]

    # WebP: RIFF....WEBP
    if header[:4] == b"RIFF" and header[8:12] == b"WEBP":
        return "webp"

    for fmt, signatures in FILE_SIGNATURES.items():
        for sig in signatures:
            if header.startswith(sig):
                return fmt

    return None


def validate_file_signature(data: bytes, expected_extension: str) -> bool:
    """
    파일 시그니처(매직 바이트) 검증

    Args:
        data: 검증할 파일 데이터
        expected_extension: 예상 확장자 (예: '.pdf')

    Returns:
        시그니처가 유효하면 True
    """
    expected = _normalize_extension(expected_extension)
    if expected == "jpg":
        expected = "jpeg"

    # 시그니처가 정의되지 않은 형식은 통과
    if expected not in FILE_SIGNATURES and expected != "webp":
        return True

    return detect_format(data) == expected


def get_mime_type(extension: str) -> str:
    """확장자에 해당하는 MIME 타입 반환 (모르면 application/octet-stream)"""
    return MIME_TYPES.get(_normalize_extension(extension), "application/octet-stream")


def is_pdf(data: bytes) -> bool:
    """PDF 파일 여부 확인 (앞부분 1KB 내 %PDF 헤더 허용)"""
    return b"%PDF" in data[:1024]
