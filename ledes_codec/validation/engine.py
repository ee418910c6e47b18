import logging
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence

from ..models import Configuration, TimeEntry
from ..settings import Settings
from .rules import (ConfiguredRule, DailyHoursRule, DescriptionLengthRule, PositiveNumberRule,
                    RequiredFieldRule, Rule)
from .types import Severity, ValidationError, ValidationResult, ValidationWarning

logger = logging.getLogger(__name__)

BUILTIN_RULES: Sequence[Rule] = (
    RequiredFieldRule("description", "Line item description is required", Severity.ERROR),
    RequiredFieldRule("matterId", "Matter ID is required", Severity.CRITICAL),
    PositiveNumberRule("hours", "Hours must be greater than zero"),
    PositiveNumberRule("rate", "Rate must be greater than zero"),
)


def _warning_rules(settings: Optional[Settings]) -> List[Rule]:
    vcfg = (settings or {}).get("validation", {})
    return [DailyHoursRule(max_hours=vcfg.get("max_hours_per_entry", 24)),
            DescriptionLengthRule(max_chars=int(vcfg.get("max_description_length", 500)))]


def _configured_rules(configuration: Optional[Configuration]) -> List[Rule]:
    if configuration is None:
        return []
    return [ConfiguredRule(r) for r in configuration.validation_rules if r.active]


def validate(entries: Iterable[TimeEntry], configuration: Optional[Configuration] = None,
             settings: Optional[Settings] = None) -> ValidationResult:
    entries_list = list(entries)
    configured = _configured_rules(configuration)
    warning_rules = _warning_rules(settings)
    errors: List[ValidationError] = []
    warnings: List[ValidationWarning] = []
    for n, e in enumerate(entries_list, start=1):
        seen = set()
        for r in BUILTIN_RULES:
            for f in r.check(n, e):
                errors.append(f); seen.add((f.field, f.rule))
        for r in configured:
            for f in r.check(n, e):
                if (f.field, f.rule) not in seen:
                    errors.append(f); seen.add((f.field, f.rule))
        for r in warning_rules:
            warnings.extend(r.check(n, e))
    total = sum((e.amount for e in entries_list), Decimal("0"))
    result = ValidationResult(errors=errors, warnings=warnings, record_count=len(entries_list), total_amount=total)
    logger.info("Validated %d entries: %d errors (%d critical), %d warnings", len(entries_list), len(errors),
                len(result.critical_errors), len(warnings))
    return result
