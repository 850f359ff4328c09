"""
extraction.engine — Map a recognition result onto an :class:`ExtractedReceipt`.

Each field is found independently (see :mod:`extraction.fields`); a
field that cannot be found is left as ``None`` and never raises.  The
overall confidence is the mean of the winning confidences for merchant,
date and total, with a missing field contributing 0.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

from recognition.models import RecognitionResult

from . import fields as F
from .categories import classify_category
from .config import ExtractionConfig
from .models import ExtractedReceipt

logger = logging.getLogger(__name__)

_SCORED_FIELDS = ("merchant_name", "date", "total")


class ExtractionEngine:
    """Stateless field extractor; safe to share across threads."""

    def __init__(self, config: Optional[ExtractionConfig] = None):
        self.config = config or ExtractionConfig()

    def extract(self, result: RecognitionResult) -> ExtractedReceipt:
        cfg = self.config
        top_down = F.blocks_top_down(result)
        bottom_up = F.blocks_bottom_up(result)

        field_conf: Dict[str, float] = {}

        total_winner = F.select_winner(F.find_total_candidates(bottom_up, cfg))
        total_price = total_winner.value if total_winner else None
        if total_winner:
            field_conf["total"] = total_winner.confidence

        merchant = F.find_merchant(top_down, cfg)
        if merchant:
            field_conf["merchant_name"] = merchant.confidence

        date_winner = F.select_winner(F.find_date_candidates(top_down, cfg))
        if date_winner:
            field_conf["date"] = date_winner.confidence

        items = F.find_line_items(top_down, cfg)
        merchant_name = merchant.value if merchant else None
        category, category_score = classify_category(
            merchant_name or "", [it.name for it in items], result.full_text,
        )
        field_conf["category"] = round(category_score, 4)

        overall = sum(field_conf.get(name, 0.0) for name in _SCORED_FIELDS) / len(_SCORED_FIELDS)

        receipt = ExtractedReceipt(
            merchant_name=merchant_name,
            address=F.find_address(top_down, cfg),
            phone=F.find_phone(top_down, cfg),
            date=date_winner.value if date_winner else None,
            time=F.find_time_of_day(top_down, cfg),
            line_items=items,
            subtotal=F.find_subtotal(bottom_up),
            tax=F.find_tax(bottom_up),
            tip=F.find_tip(bottom_up),
            discount=F.find_discount(bottom_up),
            total=total_price.value if total_price else None,
            payment_method=F.find_payment_method(bottom_up),
            category=category,
            currency=F.detect_currency(total_price, result.full_text, cfg.default_currency),
            raw_text=result.full_text,
            confidence=overall,
            field_confidences=field_conf,
        )
        logger.debug(
            "Extracted merchant=%r total=%s date=%s items=%d conf=%.3f",
            receipt.merchant_name, receipt.total, receipt.date, len(items), overall,
        )
        return receipt
