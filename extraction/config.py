from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtractionConfig:
    # Block-count cutoffs (heuristic, tune per receipt source)
    merchant_blocks: int = 5
    date_blocks: int = 8
    time_fallback_blocks: int = 10
    phone_blocks: int = 10
    address_blocks: int = 10

    # Line-item region: drop this many header / footer blocks
    item_header_skip: int = 3
    item_footer_skip: int = 5
    min_item_name_len: int = 3

    # Used when the recognition engine reports no per-line confidence
    default_line_confidence: float = 0.8

    min_merchant_len: int = 2
    default_currency: str = "USD"

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ExtractionConfig":
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logger.warning("Ignoring unknown extraction options: %s", sorted(unknown))
        return cls(**{k: v for k, v in data.items() if k in known})
