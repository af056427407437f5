"""Services package."""

from finance_sync.services.ocr import (
    ExtractionFailedError,
    MindeeTextExtractor,
    OCRError,
    PlainTextExtractor,
    ReceiptService,
    TextExtractor,
    UnsupportedUploadError,
)
from finance_sync.services.store import (
    ChannelHandle,
    DuplicateError,
    InMemoryStore,
    NotFoundError,
    RealtimeError,
    RemoteStore,
    StoreConnectionError,
    StoreError,
    StoreResponse,
)

__all__ = [
    # OCR services
    "ExtractionFailedError",
    "MindeeTextExtractor",
    "OCRError",
    "PlainTextExtractor",
    "ReceiptService",
    "TextExtractor",
    "UnsupportedUploadError",
    # Store services
    "ChannelHandle",
    "DuplicateError",
    "InMemoryStore",
    "NotFoundError",
    "RealtimeError",
    "RemoteStore",
    "StoreConnectionError",
    "StoreError",
    "StoreResponse",
]
