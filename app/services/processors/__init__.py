from app.services.processors.base import BaseProcessor
from app.services.processors.image_processor import ImageProcessor, ImageResult
from app.services.processors.pdf_processor import (
    PdfProcessor,
    SplitPart,
    parse_page_ranges,
    parse_page_selection,
)

__all__ = [
    "BaseProcessor",
    "ImageProcessor",
    "ImageResult",
    "PdfProcessor",
    "SplitPart",
    "parse_page_ranges",
    "parse_page_selection",
]
