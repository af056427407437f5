"""
Receipt Models

Two steps, two models:
1. ExtractedText - what the OCR engine read (raw text + confidence)
2. ReceiptData   - our best guess at merchant, amount, date and items

CRITICAL: ReceiptData is a GUESS. It is shown to the user for review
and only becomes a transaction after they accept it.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from finance_sync.models.records import CalendarDate, Money


class ExtractionMetadata(BaseModel):
    """Details reported by the OCR engine."""

    processing_time_ms: Optional[int] = Field(default=None, ge=0)
    language: Optional[str] = None
    page_count: Optional[int] = Field(default=None, ge=1)


class ExtractedText(BaseModel):
    """Raw text read from an uploaded file."""

    text: str
    confidence: float = Field(
        ...,
        ge=0.0,
        le=1.0,
        description="Engine confidence in the text (0-1)"
    )
    metadata: Optional[ExtractionMetadata] = None


class ReceiptItem(BaseModel):
    """A priced line on a receipt."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=200)
    price: Money = Field(..., ge=0)


class ReceiptData(BaseModel):
    """
    Structured guess derived from receipt text.

    Every field has a safe default so parsing never fails:
    "Unknown Merchant", amount 0, today's date, category "General".
    """

    merchant: str = "Unknown Merchant"
    amount: Money = Field(default=Decimal("0.00"), ge=0)
    date: CalendarDate = Field(default_factory=CalendarDate.today)
    category: str = "General"
    items: list[ReceiptItem] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    raw_text: str = ""

    @property
    def has_amount(self) -> bool:
        return self.amount > 0


class ImageQuality(str, Enum):
    """Image quality assessment result."""
    GOOD = "good"
    ACCEPTABLE = "acceptable"
    POOR = "poor"            # Scanned, with a warning
    UNUSABLE = "unusable"    # Rejected before OCR


class ImageCheck(BaseModel):
    """What a quick look at an uploaded photo found."""

    quality: ImageQuality
    score: float = Field(..., ge=0.0, le=1.0)
    width: Optional[int] = None
    height: Optional[int] = None
    issues: list[str] = Field(default_factory=list)


class ReceiptScan(BaseModel):
    """Everything one receipt upload produced."""

    filename: str
    storage_path: Optional[str] = None
    image_check: Optional[ImageCheck] = None
    extracted: ExtractedText
    receipt: ReceiptData
    warnings: list[str] = Field(default_factory=list)
