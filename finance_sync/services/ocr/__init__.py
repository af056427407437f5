"""Receipt OCR package."""

from finance_sync.services.ocr.extractors import (
    ExtractionFailedError,
    MindeeTextExtractor,
    OCRError,
    PlainTextExtractor,
    TextExtractor,
    UnsupportedUploadError,
)
from finance_sync.services.ocr.parser import guess_category, parse_receipt_text
from finance_sync.services.ocr.quality import assess_image, is_image
from finance_sync.services.ocr.service import ReceiptService

__all__ = [
    # Extractors
    "MindeeTextExtractor",
    "PlainTextExtractor",
    "TextExtractor",
    # Parsing
    "guess_category",
    "parse_receipt_text",
    # Photo quality
    "assess_image",
    "is_image",
    # Service
    "ReceiptService",
    # Errors
    "ExtractionFailedError",
    "OCRError",
    "UnsupportedUploadError",
]
