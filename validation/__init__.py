"""Receipt validation and reconciliation."""

from .models import FieldError, FieldWarning, Severity, ValidationResult
from .validator import ReceiptValidator, ValidationConfig

__all__ = [
    "FieldError",
    "FieldWarning",
    "ReceiptValidator",
    "Severity",
    "ValidationConfig",
    "ValidationResult",
]
