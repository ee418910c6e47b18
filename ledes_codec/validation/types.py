import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List


class Severity(str, Enum):
    CRITICAL = "critical"
    ERROR = "error"


def _new_id() -> str:
    return uuid.uuid4().hex


def _jsonable(value):
    if isinstance(value, Decimal):
        return float(value)
    return value


@dataclass
class ValidationError:
    record_number: int
    field: str
    value: Any
    rule: str
    message: str
    severity: Severity
    id: str = field(default_factory=_new_id)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "recordNumber": self.record_number, "field": self.field,
                "value": _jsonable(self.value), "rule": self.rule, "message": self.message,
                "severity": self.severity.value}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ValidationError":
        return cls(record_number=int(d.get("recordNumber", 0)), field=d.get("field", ""), value=d.get("value"),
                   rule=d.get("rule", ""), message=d.get("message", ""), severity=Severity(d.get("severity", "error")),
                   id=d.get("id") or _new_id())


@dataclass
class ValidationWarning:
    record_number: int
    field: str
    value: Any
    message: str
    suggestion: str = ""
    id: str = field(default_factory=_new_id)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "recordNumber": self.record_number, "field": self.field,
                "value": _jsonable(self.value), "message": self.message, "suggestion": self.suggestion}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ValidationWarning":
        return cls(record_number=int(d.get("recordNumber", 0)), field=d.get("field", ""), value=d.get("value"),
                   message=d.get("message", ""), suggestion=d.get("suggestion", ""), id=d.get("id") or _new_id())


@dataclass
class ValidationResult:
    errors: List[ValidationError] = field(default_factory=list)
    warnings: List[ValidationWarning] = field(default_factory=list)
    record_count: int = 0
    total_amount: Decimal = Decimal("0")

    @property
    def is_valid(self) -> bool:
        # only critical findings block; plain errors are reported but let export proceed
        return not any(e.severity is Severity.CRITICAL for e in self.errors)

    @property
    def critical_errors(self) -> List[ValidationError]:
        return [e for e in self.errors if e.severity is Severity.CRITICAL]

    def to_dict(self) -> Dict[str, Any]:
        return {"isValid": self.is_valid, "errors": [e.to_dict() for e in self.errors],
                "warnings": [w.to_dict() for w in self.warnings], "recordCount": self.record_count,
                "totalAmount": float(self.total_amount)}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ValidationResult":
        return cls(errors=[ValidationError.from_dict(e) for e in d.get("errors", [])],
                   warnings=[ValidationWarning.from_dict(w) for w in d.get("warnings", [])],
                   record_count=int(d.get("recordCount", 0)),
                   total_amount=Decimal(str(d.get("totalAmount", 0))))
