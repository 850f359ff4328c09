"""
pipeline.serialization — JSON helpers for receipts and pipeline outcomes.

* ``json_sanitize`` — convert an object tree into JSON-safe types
  (``Decimal`` as strings, dates as ISO-8601, enums by name).
* ``save_json`` — pretty-print a dictionary to disk.
* ``dumps_receipt`` / ``loads_receipt`` — lossless receipt round trip.
"""

from __future__ import annotations

import enum
import json
import math
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Union

import numpy as np

from extraction.models import ExtractedReceipt
from validation.models import ValidationResult


def json_sanitize(obj: Any) -> Any:
    """Recursively convert *obj* into JSON-serialisable Python types.

    Objects exposing ``to_dict`` are converted through it, so domain
    types keep their own field naming.
    """
    if obj is None:
        return None
    if hasattr(obj, "to_dict") and callable(obj.to_dict):
        return json_sanitize(obj.to_dict())
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, (date, datetime)):
        return obj.isoformat()
    if isinstance(obj, enum.Enum):
        return obj.name
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        return json_sanitize(float(obj))
    if isinstance(obj, np.ndarray):
        return json_sanitize(obj.tolist())
    if isinstance(obj, (list, tuple)):
        return [json_sanitize(x) for x in obj]
    if isinstance(obj, dict):
        return {str(k): json_sanitize(v) for k, v in obj.items()}
    if isinstance(obj, (int, float, str, bool)):
        if isinstance(obj, float) and (math.isnan(obj) or math.isinf(obj)):
            return None
        return obj
    return str(obj)


def save_json(data: Any, out_path: Union[str, Path]) -> str:
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with open(out_path, "w", encoding="utf-8") as f:
        json.dump(json_sanitize(data), f, ensure_ascii=False, indent=2)
    return str(out_path)


def dumps_receipt(receipt: ExtractedReceipt) -> str:
    return json.dumps(receipt.to_dict(), ensure_ascii=False, indent=2)


def loads_receipt(text: str) -> ExtractedReceipt:
    return ExtractedReceipt.from_dict(json.loads(text))


def load_receipt(path: Union[str, Path]) -> ExtractedReceipt:
    with open(path, encoding="utf-8") as f:
        data: Dict[str, Any] = json.load(f)
    # Accept a full pipeline outcome or extract output as well as a bare receipt
    if isinstance(data.get("receipt"), dict):
        data = data["receipt"]
    return ExtractedReceipt.from_dict(data)


def dumps_validation(result: ValidationResult) -> str:
    return json.dumps(result.to_dict(), ensure_ascii=False, indent=2)
