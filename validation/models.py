from __future__ import annotations

import enum
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


class Severity(enum.IntEnum):
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str
    severity: Severity

    def to_dict(self) -> Dict[str, Any]:
        return {"field": self.field, "message": self.message, "severity": self.severity.name}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "FieldError":
        return cls(d["field"], d["message"], Severity[d["severity"]])


@dataclass(frozen=True)
class FieldWarning:
    field: str
    message: str
    suggestion: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "FieldWarning":
        return cls(d["field"], d["message"], d.get("suggestion"))


@dataclass
class ValidationResult:
    is_valid: bool
    errors: List[FieldError] = field(default_factory=list)
    warnings: List[FieldWarning] = field(default_factory=list)
    confidence: float = 0.0

    def warnings_for(self, field_name: str) -> List[FieldWarning]:
        return [w for w in self.warnings if w.field == field_name]

    def errors_for(self, field_name: str) -> List[FieldError]:
        return [e for e in self.errors if e.field == field_name]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ValidationResult":
        return cls(
            is_valid=bool(d["is_valid"]),
            errors=[FieldError.from_dict(e) for e in d.get("errors", [])],
            warnings=[FieldWarning.from_dict(w) for w in d.get("warnings", [])],
            confidence=float(d.get("confidence", 0.0)),
        )
