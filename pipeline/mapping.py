"""Map a validated extraction onto the caller-facing receipt record."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from extraction.categories import display_category
from extraction.models import ExtractedReceipt
from extraction.money import fmt_money
from validation.models import ValidationResult

UNKNOWN_MERCHANT = "Unknown Merchant"

# Records below this confidence are flagged for manual review
REVIEW_THRESHOLD = 0.6


@dataclass
class RecordItem:
    name: str
    quantity: Decimal
    unit_price: Optional[Decimal]
    total_price: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "quantity": fmt_money(self.quantity),
            "unit_price": fmt_money(self.unit_price),
            "total_price": fmt_money(self.total_price),
        }


@dataclass
class ReceiptRecord:
    id: str
    merchant_name: str
    total_amount: Decimal
    currency: str
    date: Optional[date]
    category: str
    description: str
    items: List[RecordItem] = field(default_factory=list)
    notes: Optional[str] = None
    ocr_text: str = ""
    confidence: float = 0.0
    needs_review: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "merchant_name": self.merchant_name,
            "total_amount": fmt_money(self.total_amount),
            "currency": self.currency,
            "date": self.date.isoformat() if self.date else None,
            "category": self.category,
            "description": self.description,
            "items": [it.to_dict() for it in self.items],
            "notes": self.notes,
            "ocr_text": self.ocr_text,
            "confidence": self.confidence,
            "needs_review": self.needs_review,
        }


def to_record(
    receipt: ExtractedReceipt,
    validation: ValidationResult,
    id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
) -> ReceiptRecord:
    merchant = (receipt.merchant_name or "").strip() or UNKNOWN_MERCHANT
    items = [
        RecordItem(
            name=it.name,
            quantity=it.quantity if it.quantity is not None else Decimal("1"),
            unit_price=it.unit_price,
            total_price=it.total_price,
        )
        for it in receipt.line_items
    ]
    notes = "; ".join(w.message for w in validation.warnings) or None
    return ReceiptRecord(
        id=id_factory(),
        merchant_name=merchant,
        total_amount=receipt.total if receipt.total is not None else Decimal("0.00"),
        currency=receipt.currency,
        date=receipt.date,
        category=display_category(receipt.category),
        description=f"Scanned receipt from {merchant}",
        items=items,
        notes=notes,
        ocr_text=receipt.raw_text,
        confidence=validation.confidence,
        needs_review=(
            not validation.is_valid
            or bool(validation.warnings)
            or validation.confidence < REVIEW_THRESHOLD
        ),
    )
