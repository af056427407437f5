"""
Text Extraction

DESIGN DECISION: OCR engines only READ. They turn an uploaded file into
text plus a confidence score; deciding what the text means (merchant,
total, date) is the job of the receipt parser. That keeps the parser
testable without an OCR account and lets us swap engines freely.

Engines:
- Mindee (receipt API): images and PDFs
- Plain text: .txt uploads and pasted receipts, no network involved
"""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Optional

import structlog
from mindee import Client, PredictResponse
from mindee.product import ReceiptV5
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from finance_sync.config import get_settings
from finance_sync.config.settings import MindeeSettings
from finance_sync.models.receipt import ExtractedText, ExtractionMetadata


logger = structlog.get_logger(__name__)


class OCRError(Exception):
    """Base exception for OCR errors."""
    pass


class ExtractionFailedError(OCRError):
    """The engine could not read the document."""
    pass


class UnsupportedUploadError(OCRError):
    """The upload is too large or of a type we do not accept."""
    pass


class TextExtractor(ABC):
    """Reads text out of an uploaded file."""

    @abstractmethod
    async def extract_text(
        self,
        data: bytes,
        filename: str,
        mime_type: Optional[str] = None,
    ) -> ExtractedText:
        """
        Extract the text of a document.

        Raises:
            UnsupportedUploadError: If this engine cannot read the file type
            ExtractionFailedError: If reading fails
        """
        pass


class PlainTextExtractor(TextExtractor):
    """Decodes text uploads as-is. Confidence is always 1."""

    async def extract_text(
        self,
        data: bytes,
        filename: str,
        mime_type: Optional[str] = None,
    ) -> ExtractedText:
        started = time.perf_counter()
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise UnsupportedUploadError(f"{filename} is not UTF-8 text") from e

        return ExtractedText(
            text=text,
            confidence=1.0,
            metadata=ExtractionMetadata(
                processing_time_ms=int((time.perf_counter() - started) * 1000),
                page_count=1,
            ),
        )


class MindeeTextExtractor(TextExtractor):
    """
    Text extraction with the Mindee receipt API.

    Text and plain-text mime types are decoded locally instead of being
    sent to Mindee.
    """

    def __init__(self, settings: Optional[MindeeSettings] = None):
        self._settings = settings or get_settings().mindee
        self._client: Optional[Client] = None
        self._plain = PlainTextExtractor()

    def _get_client(self) -> Client:
        """Get or create Mindee client."""
        if self._client is None:
            self._client = Client(api_key=self._settings.api_key)
        return self._client

    async def extract_text(
        self,
        data: bytes,
        filename: str,
        mime_type: Optional[str] = None,
    ) -> ExtractedText:
        if (mime_type or "").startswith("text/") or filename.lower().endswith(".txt"):
            return await self._plain.extract_text(data, filename, mime_type)

        started = time.perf_counter()
        try:
            response = await asyncio.to_thread(self._parse, data, filename)
        except ExtractionFailedError:
            raise
        except Exception as e:
            raise ExtractionFailedError(f"Failed to read {filename}: {e}") from e

        document = response.document
        prediction = document.inference.prediction

        text = str(document.ocr).strip() if document.ocr else ""
        if not text:
            text = self._text_from_prediction(prediction)

        return ExtractedText(
            text=text,
            confidence=self._confidence(prediction),
            metadata=ExtractionMetadata(
                processing_time_ms=int((time.perf_counter() - started) * 1000),
                language=getattr(getattr(prediction, "locale", None), "language", None),
                page_count=getattr(document, "n_pages", None) or 1,
            ),
        )

    @retry(
        retry=retry_if_exception_type(ConnectionError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _parse(self, data: bytes, filename: str) -> PredictResponse:
        client = self._get_client()
        source = client.source_from_bytes(data, filename)
        return client.parse(ReceiptV5, source, include_words=True)

    def _confidence(self, prediction) -> float:
        """Average confidence of the key receipt fields that were found."""
        confidences = []
        for field_name in ("total_amount", "date", "supplier_name"):
            field = getattr(prediction, field_name, None)
            if field is not None and field.value is not None and field.confidence is not None:
                confidences.append(float(field.confidence))
        if not confidences:
            return 0.0
        return min(max(sum(confidences) / len(confidences), 0.0), 1.0)

    def _text_from_prediction(self, prediction) -> str:
        """
        Rebuild receipt-like text from structured fields.

        Used when the API returned no word-level OCR.
        """
        lines = []
        supplier = getattr(prediction, "supplier_name", None)
        if supplier is not None and supplier.value:
            lines.append(str(supplier.value))

        for item in getattr(prediction, "line_items", None) or []:
            description = getattr(item, "description", None)
            amount = getattr(item, "total_amount", None)
            if description and amount is not None:
                lines.append(f"{description} {amount:.2f}")

        receipt_date = getattr(prediction, "date", None)
        if receipt_date is not None and receipt_date.value:
            lines.append(f"Date: {receipt_date.value}")

        total = getattr(prediction, "total_amount", None)
        if total is not None and total.value is not None:
            lines.append(f"Total: {total.value:.2f}")

        return "\n".join(lines)
