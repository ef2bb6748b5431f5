from app.services.cleanup_service import CleanupResult, CleanupService
from app.services.cloudconvert import ConversionGateway, ConversionJob, get_conversion_formats
from app.services.processors import ImageProcessor, PdfProcessor
from app.services.source_fetcher import SourceFetcher, default_filename
from app.services.storage import StorageBackend, StoredObject, create_storage

__all__ = [
    "CleanupResult",
    "CleanupService",
    "ConversionGateway",
    "ConversionJob",
    "get_conversion_formats",
    "ImageProcessor",
    "PdfProcessor",
    "SourceFetcher",
    "default_filename",
    "StorageBackend",
    "StoredObject",
    "create_storage",
]
