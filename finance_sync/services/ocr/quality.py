"""
Receipt Photo Quality

A quick look at an uploaded photo before it is sent for OCR.

DESIGN DECISION: Simple histogram heuristics rather than an ML model:
1. No extra latency or API cost before the OCR call
2. Predictable, explainable issues the user can act on
3. Good enough to catch the photos OCR cannot read anyway

Only raster images are checked; PDFs and text uploads skip this step.
"""

from io import BytesIO
from pathlib import PurePath

import structlog
from PIL import Image, UnidentifiedImageError

from finance_sync.models.receipt import ImageCheck, ImageQuality


logger = structlog.get_logger(__name__)

IMAGE_EXTENSIONS = ("jpg", "jpeg", "png", "webp")


def is_image(filename: str) -> bool:
    return PurePath(filename).suffix.lower().lstrip(".") in IMAGE_EXTENSIONS


def _quality_for(score: float) -> ImageQuality:
    if score >= 0.7:
        return ImageQuality.GOOD
    if score >= 0.5:
        return ImageQuality.ACCEPTABLE
    if score >= 0.3:
        return ImageQuality.POOR
    return ImageQuality.UNUSABLE


def _contrast_range(histogram: list[int], total: int) -> int:
    """Width of the band holding the middle 90% of pixel values."""
    cumulative = 0
    low = None
    high = 255
    for value, count in enumerate(histogram):
        cumulative += count
        if low is None and cumulative >= total * 0.05:
            low = value
        if cumulative >= total * 0.95:
            high = value
            break
    return high - (low or 0)


def assess_image(data: bytes) -> ImageCheck:
    """
    Score a receipt photo between 0 and 1.

    A file that does not decode as an image is UNUSABLE.
    """
    try:
        image = Image.open(BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        logger.info("receipt_image_unreadable", error=str(e))
        return ImageCheck(
            quality=ImageQuality.UNUSABLE,
            score=0.0,
            issues=["The file is not a readable image"],
        )

    issues = []
    score = 1.0
    width, height = image.size

    shortest = min(width, height)
    if shortest < 300:
        issues.append("Image resolution too low (minimum 300px on smallest side)")
        score -= 0.4
    elif shortest < 500:
        issues.append("Image resolution is low, text may be hard to read")
        score -= 0.2

    # Long receipts are tall, so only flag really extreme strips
    if max(width, height) / max(shortest, 1) > 8:
        issues.append("Unusual aspect ratio - image may be cropped incorrectly")
        score -= 0.2

    gray = image if image.mode == "L" else image.convert("L")
    histogram = gray.histogram()
    total = sum(histogram) or 1

    if sum(histogram[:50]) / total > 0.7:
        issues.append("Image is very dark - please take photo in better lighting")
        score -= 0.3
    elif sum(histogram[200:]) / total > 0.7 and _contrast_range(histogram, total) < 50:
        # White paper is bright; only a washed-out photo is also flat
        issues.append("Image is overexposed - please reduce lighting or angle")
        score -= 0.3

    if _contrast_range(histogram, total) < 50:
        issues.append("Image has very low contrast - text may be hard to read")
        score -= 0.25

    score = max(0.0, min(1.0, score))
    return ImageCheck(
        quality=_quality_for(score),
        score=round(score, 2),
        width=width,
        height=height,
        issues=issues,
    )
