"""Field extraction: recover structured receipt fields from positioned text."""

from .categories import (
    PaymentMethod,
    ReceiptCategory,
    classify_category,
    display_category,
    payment_method_from_label,
)
from .config import ExtractionConfig
from .engine import ExtractionEngine
from .models import ExtractedReceipt, ExtractionCandidate, LineItem

__all__ = [
    "ExtractedReceipt",
    "ExtractionCandidate",
    "ExtractionConfig",
    "ExtractionEngine",
    "LineItem",
    "PaymentMethod",
    "ReceiptCategory",
    "classify_category",
    "display_category",
    "payment_method_from_label",
]
