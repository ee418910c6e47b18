import logging
import re
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Union

from ..models import RuleKind, TimeEntry, ValidationRule
from .types import Severity, ValidationError, ValidationWarning

logger = logging.getLogger(__name__)

Finding = Union[ValidationError, ValidationWarning]

# wire field name -> TimeEntry attribute
FIELD_ATTRS = {
    "id": "id",
    "matterId": "matter_id",
    "matterTitle": "matter_title",
    "clientId": "client_id",
    "clientName": "client_name",
    "description": "description",
    "hours": "hours",
    "rate": "rate",
    "amount": "amount",
    "date": "date",
    "userId": "user_id",
    "activityType": "activity_type",
    "status": "status",
    "timekeeperName": "timekeeper_name",
}


def field_value(entry: TimeEntry, name: str):
    return getattr(entry, FIELD_ATTRS.get(name, name), None)


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class Rule(ABC):
    @property
    @abstractmethod
    def rule_id(self) -> str: ...
    @abstractmethod
    def check(self, record_number: int, entry: TimeEntry) -> List[Finding]: ...


class RequiredFieldRule(Rule):
    def __init__(self, field: str, message: str, severity: Severity = Severity.ERROR):
        self.field = field; self.message = message; self.severity = severity
    @property
    def rule_id(self) -> str: return "required"
    def check(self, record_number, entry):
        value = field_value(entry, self.field)
        if _blank(value):
            return [ValidationError(record_number, self.field, value, self.rule_id, self.message, self.severity)]
        return []


class PositiveNumberRule(Rule):
    def __init__(self, field: str, message: str):
        self.field = field; self.message = message
    @property
    def rule_id(self) -> str: return "range"
    def check(self, record_number, entry):
        value = field_value(entry, self.field)
        if value is None or value <= 0:
            return [ValidationError(record_number, self.field, value, self.rule_id, self.message, Severity.ERROR)]
        return []


class DailyHoursRule(Rule):
    def __init__(self, max_hours: float = 24):
        self.max_hours = Decimal(str(max_hours))
    @property
    def rule_id(self) -> str: return "daily_hours"
    def check(self, record_number, entry):
        if entry.hours > self.max_hours:
            return [ValidationWarning(record_number, "hours", entry.hours,
                                      f"Entry exceeds {self.max_hours} hours for a single day",
                                      "Verify the hours entered are correct")]
        return []


class DescriptionLengthRule(Rule):
    def __init__(self, max_chars: int = 500):
        self.max_chars = max_chars
    @property
    def rule_id(self) -> str: return "description_length"
    def check(self, record_number, entry):
        desc = entry.description or ""
        if len(desc) > self.max_chars:
            return [ValidationWarning(record_number, "description", desc, "Description is very long",
                                      "Consider shortening the description for better readability")]
        return []


class ConfiguredRule(Rule):
    """A client-specific rule from a configuration. Never produces critical findings."""

    def __init__(self, rule: ValidationRule):
        self.rule = rule
    @property
    def rule_id(self) -> str: return self.rule.kind.value

    def _error(self, record_number, value, default_message) -> List[Finding]:
        return [ValidationError(record_number, self.rule.field, value, self.rule_id,
                                self.rule.message or default_message, Severity.ERROR)]

    def check(self, record_number, entry):
        r = self.rule
        value = field_value(entry, r.field)
        if r.kind is RuleKind.REQUIRED:
            if r.value is not False and _blank(value):
                return self._error(record_number, value, f"{r.field} is required")
            return []
        if r.kind is RuleKind.FORMAT:
            if _blank(value):
                return []
            if not re.fullmatch(str(r.value), str(value)):
                return self._error(record_number, value, f"{r.field} has an invalid format")
            return []
        if r.kind is RuleKind.RANGE:
            lo, hi = _bounds(r.value)
            try:
                num = Decimal(str(value))
            except (InvalidOperation, ValueError):
                return self._error(record_number, value, f"{r.field} must be a number")
            if (lo is not None and num < lo) or (hi is not None and num > hi):
                return self._error(record_number, value, f"{r.field} is out of range")
            return []
        logger.debug("Skipping custom rule %s on %s", r.id, r.field)
        return []


def _bounds(value):
    if isinstance(value, dict):
        lo, hi = value.get("min"), value.get("max")
    else:
        lo, hi = value, None
    return (_num(lo), _num(hi))


def _num(v) -> Optional[Decimal]:
    return None if v is None else Decimal(str(v))
