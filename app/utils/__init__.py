from app.utils.file_validator import (
    detect_format,
    get_mime_type,
    is_pdf,
    validate_file_signature,
)
from app.utils.redaction import get_safe_error_message, sanitize_error_message

__all__ = [
    "detect_format",
    "get_mime_type",
    "is_pdf",
    "validate_file_signature",
    "get_safe_error_message",
    "sanitize_error_message",
]
