"""
extraction.models — Structured receipt produced by the extraction engine.

Money is held as :class:`decimal.Decimal` and serialised as decimal
strings; dates are serialised as ISO-8601; enums by member name.
Optional fields serialise as ``None``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from .categories import PaymentMethod, ReceiptCategory
from .money import fmt_money, to_decimal


@dataclass(frozen=True)
class ExtractionCandidate:
    """A provisional value for one field.

    ``position`` is ``(block_index, line_index)`` in the order the field
    was scanned.  ``score`` is the unclamped rule sum used for ranking;
    ``confidence`` is the same value clamped to ``[0, 1]``.
    """

    field: str
    value: Any
    confidence: float
    position: Tuple[int, int]
    score: float = 0.0


@dataclass
class LineItem:
    name: str
    total_price: Decimal
    quantity: Optional[Decimal] = None
    unit_price: Optional[Decimal] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "quantity": fmt_money(self.quantity),
            "unit_price": fmt_money(self.unit_price),
            "total_price": fmt_money(self.total_price),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LineItem":
        return cls(
            name=d["name"],
            total_price=to_decimal(d["total_price"]),
            quantity=to_decimal(d.get("quantity")),
            unit_price=to_decimal(d.get("unit_price")),
        )


_MONEY_FIELDS = ("subtotal", "tax", "tip", "discount", "total")


@dataclass
class ExtractedReceipt:
    merchant_name: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    date: Optional[date] = None
    time: Optional[str] = None
    line_items: List[LineItem] = field(default_factory=list)
    subtotal: Optional[Decimal] = None
    tax: Optional[Decimal] = None
    tip: Optional[Decimal] = None
    discount: Optional[Decimal] = None
    total: Optional[Decimal] = None
    payment_method: Optional[PaymentMethod] = None
    category: ReceiptCategory = ReceiptCategory.OTHER
    currency: str = "USD"
    raw_text: str = ""
    confidence: float = 0.0
    field_confidences: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "merchant_name": self.merchant_name,
            "address": self.address,
            "phone": self.phone,
            "date": self.date.isoformat() if self.date else None,
            "time": self.time,
            "line_items": [it.to_dict() for it in self.line_items],
        }
        for name in _MONEY_FIELDS:
            d[name] = fmt_money(getattr(self, name))
        d.update({
            "payment_method": self.payment_method.name if self.payment_method else None,
            "category": self.category.name,
            "currency": self.currency,
            "raw_text": self.raw_text,
            "confidence": self.confidence,
            "field_confidences": dict(self.field_confidences),
        })
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ExtractedReceipt":
        pm = d.get("payment_method")
        return cls(
            merchant_name=d.get("merchant_name"),
            address=d.get("address"),
            phone=d.get("phone"),
            date=date.fromisoformat(d["date"]) if d.get("date") else None,
            time=d.get("time"),
            line_items=[LineItem.from_dict(it) for it in d.get("line_items", [])],
            subtotal=to_decimal(d.get("subtotal")),
            tax=to_decimal(d.get("tax")),
            tip=to_decimal(d.get("tip")),
            discount=to_decimal(d.get("discount")),
            total=to_decimal(d.get("total")),
            payment_method=PaymentMethod[pm] if pm else None,
            category=ReceiptCategory[d.get("category") or "OTHER"],
            currency=d.get("currency") or "USD",
            raw_text=d.get("raw_text", ""),
            confidence=float(d.get("confidence", 0.0)),
            field_confidences={k: float(v) for k, v in (d.get("field_confidences") or {}).items()},
        )
