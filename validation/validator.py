"""
validation.validator — Cross-field checks on an extracted receipt.

Rules
-----
* total missing or not positive                      -> error (HIGH)
* subtotal, tax, total present and
  ``|total - (subtotal + tax + tip - discount)| > 0.50`` -> warning
* negative subtotal / tax / tip / discount           -> error (MEDIUM)
* merchant name blank                                -> error (MEDIUM)
* date missing or in the future                      -> error (HIGH)
* date more than 365 days old                        -> warning
* ``|sum(item totals) - subtotal| > 1.0``            -> warning
* item with quantity and unit price whose product is
  off from its total by more than 0.05               -> warning

Final confidence is ``base - 0.1 * errors - 0.05 * warnings`` clamped
to ``[0, 1]``, where *base* is the extraction confidence.  The receipt
is valid when there are no errors.  ``validate`` never raises.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from extraction.models import ExtractedReceipt
from normalization.utils import clamp01

from .models import FieldError, FieldWarning, Severity, ValidationResult

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True)
class ValidationConfig:
    total_tolerance: Decimal = Decimal("0.50")
    items_tolerance: Decimal = Decimal("1.00")
    line_item_tolerance: Decimal = Decimal("0.05")
    max_age_days: int = 365
    error_penalty: float = 0.1
    warning_penalty: float = 0.05

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ValidationConfig":
        if not data:
            return cls()
        kwargs: Dict[str, Any] = {}
        for f in fields(cls):
            if f.name not in data:
                continue
            value = data[f.name]
            kwargs[f.name] = Decimal(str(value)) if isinstance(f.default, Decimal) else type(f.default)(value)
        return cls(**kwargs)


class ReceiptValidator:
    """Validates receipts against a clock supplied by the caller.

    Parameters
    ----------
    config : ValidationConfig, optional
        Tolerances and penalties.
    today : callable, optional
        Returns the reference date; defaults to ``date.today``.
    """

    def __init__(
        self,
        config: Optional[ValidationConfig] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        self.config = config or ValidationConfig()
        self._today = today or date.today

    # ------------------------------------------------------------------
    # Rule groups
    # ------------------------------------------------------------------

    def _check_amounts(self, r: ExtractedReceipt, errors: List[FieldError], warnings: List[FieldWarning]) -> None:
        if r.total is None:
            errors.append(FieldError("total", "Total amount is missing", Severity.HIGH))
        elif r.total <= ZERO:
            errors.append(FieldError("total", f"Total amount must be positive, got {r.total}", Severity.HIGH))

        for name in ("subtotal", "tax", "tip", "discount"):
            value = getattr(r, name)
            if value is not None and value < ZERO:
                errors.append(FieldError(name, f"{name.capitalize()} cannot be negative", Severity.MEDIUM))

        if r.subtotal is not None and r.tax is not None and r.total is not None:
            expected = r.subtotal + r.tax + (r.tip or ZERO) - (r.discount or ZERO)
            diff = abs(r.total - expected)
            if diff > self.config.total_tolerance:
                warnings.append(FieldWarning(
                    "total",
                    f"Total {r.total} does not match subtotal + tax + tip - discount = {expected} (off by {diff})",
                    "Check the total, subtotal and tax amounts",
                ))

    def _check_merchant(self, r: ExtractedReceipt, errors: List[FieldError]) -> None:
        if not (r.merchant_name or "").strip():
            errors.append(FieldError("merchant_name", "Merchant name is missing", Severity.MEDIUM))

    def _check_date(self, r: ExtractedReceipt, errors: List[FieldError], warnings: List[FieldWarning]) -> None:
        if r.date is None:
            errors.append(FieldError("date", "Transaction date is missing", Severity.HIGH))
            return
        today = self._today()
        if r.date > today:
            errors.append(FieldError("date", f"Transaction date {r.date.isoformat()} is in the future", Severity.HIGH))
        elif r.date < today - timedelta(days=self.config.max_age_days):
            warnings.append(FieldWarning(
                "date",
                f"Transaction date {r.date.isoformat()} is more than {self.config.max_age_days} days old",
                "Confirm the year was read correctly",
            ))

    def _check_items(self, r: ExtractedReceipt, warnings: List[FieldWarning]) -> None:
        if not r.line_items:
            return
        for idx, item in enumerate(r.line_items):
            if item.total_price < ZERO:
                warnings.append(FieldWarning(
                    f"line_items[{idx}]", f"Item {item.name!r} has a negative price", None,
                ))
            if item.quantity is not None and item.unit_price is not None:
                expected = item.quantity * item.unit_price
                if abs(expected - item.total_price) > self.config.line_item_tolerance:
                    warnings.append(FieldWarning(
                        f"line_items[{idx}]",
                        f"Item {item.name!r}: {item.quantity} x {item.unit_price} != {item.total_price}",
                        "Check quantity and unit price",
                    ))
        if r.subtotal is not None:
            item_sum = sum((it.total_price for it in r.line_items), ZERO)
            if abs(item_sum - r.subtotal) > self.config.items_tolerance:
                warnings.append(FieldWarning(
                    "line_items",
                    f"Line items sum to {item_sum} but subtotal is {r.subtotal}",
                    "Some items may be missing or misread",
                ))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def validate(self, receipt: ExtractedReceipt) -> ValidationResult:
        errors: List[FieldError] = []
        warnings: List[FieldWarning] = []
        try:
            self._check_amounts(receipt, errors, warnings)
            self._check_merchant(receipt, errors)
            self._check_date(receipt, errors, warnings)
            self._check_items(receipt, warnings)
        except Exception as exc:
            logger.warning("Validation rule failed: %s: %s", type(exc).__name__, exc)
            errors.append(FieldError("receipt", f"Validation could not complete: {exc}", Severity.CRITICAL))

        confidence = clamp01(
            receipt.confidence
            - self.config.error_penalty * len(errors)
            - self.config.warning_penalty * len(warnings)
        )
        logger.debug("Validated receipt: %d errors, %d warnings", len(errors), len(warnings))
        return ValidationResult(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            confidence=confidence,
        )
