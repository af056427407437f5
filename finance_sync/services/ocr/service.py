"""
Receipt Scanning Service

Flow: upload -> checks -> photo quality -> archive -> extract -> parse -> review.

CRITICAL: A scan never creates a transaction. It returns a ReceiptScan
for the user to review; the transaction is created only when they
accept it (see FinanceWorkspace.add_receipt_transaction).
"""

from datetime import datetime, timezone
from decimal import Decimal
from pathlib import PurePath
from typing import Optional
from uuid import UUID, uuid4

import structlog
from pydantic import ValidationError

from finance_sync.audit import AuditLogger
from finance_sync.config import get_settings
from finance_sync.config.settings import AppSettings
from finance_sync.models.receipt import ImageQuality, ReceiptData, ReceiptScan
from finance_sync.models.records import TransactionCreate, TransactionType
from finance_sync.models.results import ErrorKind, Failure, Result, Success, failure
from finance_sync.services.ocr.extractors import OCRError, TextExtractor, UnsupportedUploadError
from finance_sync.services.ocr.parser import parse_receipt_text
from finance_sync.services.ocr.quality import assess_image, is_image
from finance_sync.services.store.interface import RemoteStore


logger = structlog.get_logger(__name__)


class ReceiptService:
    """
    Scans uploaded receipts into reviewable ReceiptData.

    Args:
        extractor: OCR engine
        store: Where uploads are archived; None skips archiving
        audit_logger: Audit trail for scans and rejections
        app_settings: Upload limits and confidence threshold
        bucket: Storage bucket for archived receipts
    """

    def __init__(
        self,
        extractor: TextExtractor,
        store: Optional[RemoteStore] = None,
        audit_logger: Optional[AuditLogger] = None,
        app_settings: Optional[AppSettings] = None,
        bucket: str = "receipts",
    ):
        self._extractor = extractor
        self._store = store
        self._audit = audit_logger or AuditLogger()
        self._settings = app_settings or get_settings().app
        self._bucket = bucket

    def check_upload(self, data: bytes, filename: str) -> None:
        """
        Raises:
            UnsupportedUploadError: Empty, too large, or an unaccepted extension
        """
        if not data:
            raise UnsupportedUploadError("The uploaded file is empty")

        if len(data) > self._settings.max_upload_size_bytes:
            raise UnsupportedUploadError(
                f"File is too large. Maximum size is {self._settings.max_upload_size_mb} MB"
            )

        extension = PurePath(filename).suffix.lower().lstrip(".")
        if extension not in self._settings.supported_formats_list:
            raise UnsupportedUploadError(
                f"Unsupported file type '.{extension}'. "
                f"Accepted: {', '.join(self._settings.supported_formats_list)}"
            )

    async def scan(
        self,
        data: bytes,
        filename: str,
        mime_type: Optional[str] = None,
        user_id: Optional[UUID] = None,
    ) -> Result:
        """
        Read a receipt upload.

        Returns:
            Success(ReceiptScan) or Failure. Archive problems do not fail
            the scan; they become a warning on it.
        """
        try:
            self.check_upload(data, filename)
        except UnsupportedUploadError as e:
            self._audit.log_receipt_rejected(filename, str(e))
            return failure(str(e), ErrorKind.VALIDATION)

        warnings: list[str] = []
        image_check = None
        if self._settings.check_image_quality and is_image(filename):
            image_check = assess_image(data)
            if image_check.quality == ImageQuality.UNUSABLE:
                reason = "The photo cannot be used: " + "; ".join(image_check.issues)
                self._audit.log_receipt_rejected(filename, reason)
                return failure(reason, ErrorKind.VALIDATION)
            warnings.extend(image_check.issues)

        storage_path = None
        if self._store is not None and self._settings.archive_receipts:
            storage_path, warning = await self._archive(data, filename, mime_type, user_id)
            if warning:
                warnings.append(warning)

        try:
            extracted = await self._extractor.extract_text(data, filename, mime_type)
        except UnsupportedUploadError as e:
            self._audit.log_receipt_rejected(filename, str(e))
            return failure(str(e), ErrorKind.VALIDATION)
        except OCRError as e:
            self._audit.log_external_service_error("ocr", str(e))
            return failure("Could not read the receipt. Please try a clearer image.", ErrorKind.STORE)

        receipt = parse_receipt_text(extracted.text, confidence=extracted.confidence)

        if not receipt.has_amount:
            warnings.append("No total found on the receipt. Please enter the amount.")
        if extracted.confidence < self._settings.min_ocr_confidence:
            warnings.append(
                f"Extraction confidence ({extracted.confidence:.0%}) is below ideal. "
                "Please review the extracted data carefully."
            )

        self._audit.log_receipt_scanned(
            filename, receipt.merchant, str(receipt.amount), extracted.confidence,
        )
        return Success(value=ReceiptScan(
            filename=filename,
            storage_path=storage_path,
            image_check=image_check,
            extracted=extracted,
            receipt=receipt,
            warnings=warnings,
        ))

    async def _archive(
        self,
        data: bytes,
        filename: str,
        mime_type: Optional[str],
        user_id: Optional[UUID],
    ) -> tuple[Optional[str], Optional[str]]:
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
        owner = str(user_id) if user_id else "anonymous"
        path = f"{owner}/{stamp}-{uuid4().hex[:8]}-{PurePath(filename).name}"

        response = await self._store.upload_file(
            self._bucket, path, data, mime_type or "application/octet-stream",
        )
        if not response.ok:
            logger.warning("receipt_archive_failed", filename=filename, error=response.error.message)
            return None, "The receipt could not be archived; the scan result is still usable."
        return path, None

    def to_transaction(
        self,
        receipt: ReceiptData,
        category_id: Optional[UUID] = None,
    ) -> Result:
        """
        Build an expense candidate from a reviewed receipt.

        Returns:
            Success(TransactionCreate), or Failure when there is no amount
        """
        if receipt.amount <= Decimal("0"):
            return failure("The receipt has no amount to record", ErrorKind.VALIDATION)

        description = receipt.merchant
        if receipt.items:
            description = f"{receipt.merchant}: {', '.join(i.name for i in receipt.items[:5])}"

        try:
            candidate = TransactionCreate(
                type=TransactionType.EXPENSE,
                amount=receipt.amount,
                category_id=category_id,
                description=description[:500],
                date=receipt.date,
            )
        except ValidationError as e:
            return Failure.from_validation(e)
        return Success(value=candidate)
