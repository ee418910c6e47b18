from __future__ import annotations

import datetime as dt
import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from .errors import ConfigurationError
from .mapper import parse_mapping
from .utbms import UTBMSActivityCode
from .validation.types import ValidationResult


class Format(str, Enum):
    LEDES1998B = "LEDES1998B"
    LEDES20 = "LEDES2.0"
    LEDESXML = "LEDESXML"

    @property
    def tag(self) -> str:
        return {"LEDES1998B": "1998B", "LEDES2.0": "2.0", "LEDESXML": "XML"}[self.value]

    @property
    def extension(self) -> str:
        return "xml" if self is Format.LEDESXML else "csv"

    @classmethod
    def parse(cls, value) -> "Format":
        if isinstance(value, Format):
            return value
        try:
            return cls(str(value).strip())
        except ValueError:
            raise ConfigurationError(f"Unknown LEDES format: {value!r}") from None


class BillingStatus(str, Enum):
    ALL = "all"
    BILLED = "billed"
    UNBILLED = "unbilled"


class RuleKind(str, Enum):
    REQUIRED = "required"
    FORMAT = "format"
    RANGE = "range"
    CUSTOM = "custom"


def utc_now() -> str:
    return dt.datetime.now(dt.timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def to_decimal(value, default: str = "0") -> Decimal:
    if value is None or value == "":
        return Decimal(default)
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"not a number: {value!r}") from None


def _iso_date(value) -> str:
    if isinstance(value, (dt.date, dt.datetime)):
        return value.strftime("%Y-%m-%d")
    s = str(value or "")[:10]
    dt.date.fromisoformat(s)  # raises ValueError on garbage
    return s


def _pick(d: Dict[str, Any], *keys, default=None):
    for k in keys:
        if k in d and d[k] is not None:
            return d[k]
    return default


def _flag(value) -> bool:
    if isinstance(value, str):
        s = value.strip().lower()
        if s in ("true", "yes", "on", "1"):
            return True
        if s in ("false", "no", "off", "0", ""):
            return False
        raise ValueError(f"not a boolean: {value!r}")
    return bool(value)


def _text(value) -> Optional[str]:
    return None if value is None else str(value)


@dataclass
class TimeEntry:
    id: str
    matter_id: Optional[str]
    client_id: Optional[str]
    description: str
    hours: Decimal
    rate: Decimal
    amount: Decimal
    date: str
    matter_title: str = ""
    client_name: str = ""
    user_id: Optional[str] = None
    activity_type: Optional[str] = None
    billable: bool = True
    status: str = "draft"
    timekeeper_name: Optional[str] = None
    timekeeper_classification: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "TimeEntry":
        return cls(
            id=str(_pick(d, "id", default="")),
            matter_id=_pick(d, "matterId", "matter_id"),
            client_id=_pick(d, "clientId", "client_id"),
            description=_pick(d, "description", default="") or "",
            hours=to_decimal(_pick(d, "hours", "duration_hours")),
            rate=to_decimal(_pick(d, "rate")),
            amount=to_decimal(_pick(d, "amount")),
            date=str(_pick(d, "date", default=""))[:10],
            matter_title=_pick(d, "matterTitle", "matter_title", default=""),
            client_name=_pick(d, "clientName", "client_name", default=""),
            user_id=_pick(d, "userId", "user_id", "timekeeper_id"),
            activity_type=_text(_pick(d, "activityType", "activity_type")),
            billable=_flag(_pick(d, "billable", default=True)),
            status=_pick(d, "status", default="draft"),
            timekeeper_name=_pick(d, "timekeeperName", "timekeeper_name"),
            timekeeper_classification=_pick(d, "timekeeperClassification", "timekeeper_classification"),
        )


@dataclass(frozen=True)
class DateRange:
    start: str
    end: str

    def __post_init__(self):
        object.__setattr__(self, "start", _iso_date(self.start))
        object.__setattr__(self, "end", _iso_date(self.end))
        if self.start > self.end:
            raise ValueError(f"start date {self.start} is after end date {self.end}")

    def contains(self, iso_date: str) -> bool:
        return self.start <= (iso_date or "")[:10] <= self.end


@dataclass
class ExportFilters:
    date_range: DateRange
    client_ids: Sequence[str] = ()
    matter_ids: Sequence[str] = ()
    timekeepers: Sequence[str] = ()
    minimum_amount: Optional[Decimal] = None
    billing_status: BillingStatus = BillingStatus.ALL

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ExportFilters":
        rng = _pick(d, "dateRange", "date_range", default={})
        minimum = _pick(d, "minimumAmount", "minimum_amount")
        return cls(
            date_range=DateRange(_pick(rng, "startDate", "start_date", "start"),
                                 _pick(rng, "endDate", "end_date", "end")),
            client_ids=tuple(_pick(d, "clientIds", "client_ids", default=())),
            matter_ids=tuple(_pick(d, "matterIds", "matter_ids", default=())),
            timekeepers=tuple(_pick(d, "timekeepers", default=())),
            minimum_amount=to_decimal(minimum) if minimum is not None else None,
            billing_status=BillingStatus(_pick(d, "billingStatus", "billing_status", default="all")),
        )


@dataclass
class OutputOptions:
    file_name: Optional[str] = None
    include_header: bool = True
    delimiter: str = ","
    currency: Optional[str] = None
    decimal_places: int = 2
    invoice_number: Optional[str] = None
    invoice_date: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> "OutputOptions":
        d = d or {}
        delimiter = _pick(d, "delimiter", default=",")
        if len(delimiter) != 1:
            raise ValueError("delimiter must be a single character")
        return cls(
            file_name=_pick(d, "fileName", "file_name"),
            include_header=_flag(_pick(d, "includeHeader", "include_header", default=True)),
            delimiter=delimiter,
            currency=_pick(d, "currencyFormat", "currency"),
            decimal_places=int(_pick(d, "decimalPlaces", "decimal_places", default=2)),
            invoice_number=_pick(d, "invoiceNumber", "invoice_number"),
            invoice_date=_pick(d, "invoiceDate", "invoice_date"),
        )


@dataclass
class ExportRequest:
    configuration_id: str
    filters: ExportFilters
    format: Optional[Format] = None
    output_options: OutputOptions = field(default_factory=OutputOptions)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ExportRequest":
        fmt = _pick(d, "format")
        return cls(
            configuration_id=str(_pick(d, "configurationId", "configuration_id", default="")),
            filters=ExportFilters.from_dict(_pick(d, "filters", default={})),
            format=Format.parse(fmt) if fmt else None,
            output_options=OutputOptions.from_dict(_pick(d, "outputOptions", "output_options")),
        )


@dataclass
class ValidationRule:
    id: str
    field: str
    kind: RuleKind
    value: Any = None
    message: str = ""
    active: bool = True

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ValidationRule":
        try:
            kind = RuleKind(_pick(d, "ruleType", "kind", default="required"))
        except ValueError:
            raise ConfigurationError(f"Unknown validation rule type in rule {d.get('id')!r}") from None
        if not _pick(d, "field"):
            raise ConfigurationError(f"Validation rule {d.get('id')!r} has no field")
        value = d.get("value")
        if kind is RuleKind.FORMAT:
            try:
                re.compile(str(value))
            except re.error as exc:
                raise ConfigurationError(f"Invalid pattern in rule {d.get('id')!r}: {exc}") from None
        if kind is RuleKind.RANGE:
            bounds = value.values() if isinstance(value, dict) else [value]
            try:
                for b in bounds:
                    to_decimal(b)
            except ValueError:
                raise ConfigurationError(f"Non-numeric bound in rule {d.get('id')!r}") from None
        return cls(id=str(_pick(d, "id", default="")), field=d["field"], kind=kind,
                   value=value, message=_pick(d, "errorMessage", "message", default=""),
                   active=_flag(_pick(d, "isActive", "active", default=True)))

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "field": self.field, "ruleType": self.kind.value, "value": self.value,
                "errorMessage": self.message, "isActive": self.active}


@dataclass
class CustomField:
    id: str
    field_name: str
    field_type: str = "text"
    required: bool = False
    default_value: Optional[str] = None
    validation_pattern: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CustomField":
        return cls(id=str(_pick(d, "id", default="")), field_name=_pick(d, "fieldName", "field_name", default=""),
                   field_type=_pick(d, "fieldType", "field_type", default="text"),
                   required=_flag(_pick(d, "isRequired", "required", default=False)),
                   default_value=_pick(d, "defaultValue", "default_value"),
                   validation_pattern=_pick(d, "validationPattern", "validation_pattern"))

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "fieldName": self.field_name, "fieldType": self.field_type,
                "isRequired": self.required, "defaultValue": self.default_value,
                "validationPattern": self.validation_pattern}


_CONFIG_WIRE_NAMES = {
    "client_id": "clientId", "client_name": "clientName", "activity_codes": "utbmsMapping",
    "default_activity_code": "defaultActivityCode", "validation_rules": "validationRules",
    "custom_fields": "customFields", "active": "isActive", "created_at": "createdAt", "updated_at": "updatedAt",
}


@dataclass
class Configuration:
    id: str
    client_id: str
    client_name: str
    format: Format
    version: str = "1.0"
    activity_codes: Dict[str, UTBMSActivityCode] = field(default_factory=dict)
    default_activity_code: Optional[UTBMSActivityCode] = None
    validation_rules: List[ValidationRule] = field(default_factory=list)
    custom_fields: List[CustomField] = field(default_factory=list)
    active: bool = True
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Configuration":
        """Build a configuration, rejecting unknown formats and UTBMS codes up front."""
        client_name = (_pick(d, "clientName", "client_name", default="") or "").strip()
        if not client_name:
            raise ConfigurationError("Client name is required")
        raw_mapping = _pick(d, "utbmsMapping", "activity_codes", default={}) or {}
        default_code = None
        if "activityCodes" in raw_mapping or "defaultActivityCode" in raw_mapping:
            default_code = raw_mapping.get("defaultActivityCode")
            raw_mapping = raw_mapping.get("activityCodes") or {}
        default_code = _pick(d, "defaultActivityCode", "default_activity_code", default=default_code)
        if default_code:
            try:
                default_code = UTBMSActivityCode(default_code)
            except ValueError:
                raise ConfigurationError(f"Unknown UTBMS activity code {default_code!r} as default") from None
        return cls(
            id=str(_pick(d, "id", default="")),
            client_id=str(_pick(d, "clientId", "client_id", default="")),
            client_name=client_name,
            format=Format.parse(_pick(d, "format", default="")),
            version=str(_pick(d, "version", default="1.0")),
            activity_codes=parse_mapping(raw_mapping),
            default_activity_code=default_code or None,
            validation_rules=[ValidationRule.from_dict(r) for r in _pick(d, "validationRules", "validation_rules", default=[])],
            custom_fields=[CustomField.from_dict(c) for c in _pick(d, "customFields", "custom_fields", default=[])],
            active=_flag(_pick(d, "isActive", "active", default=True)),
            created_at=_pick(d, "createdAt", "created_at", default=""),
            updated_at=_pick(d, "updatedAt", "updated_at", default=""),
        )

    @staticmethod
    def wire_keys(d: Dict[str, Any]) -> Dict[str, Any]:
        """Rename snake_case keys to the camelCase names ``to_dict`` writes. A camelCase key wins over its alias."""
        out = {k: v for k, v in d.items() if k not in _CONFIG_WIRE_NAMES}
        for k, v in d.items():
            if k in _CONFIG_WIRE_NAMES:
                out.setdefault(_CONFIG_WIRE_NAMES[k], v)
        return out

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "clientId": self.client_id,
            "clientName": self.client_name,
            "format": self.format.value,
            "version": self.version,
            "utbmsMapping": {
                "activityCodes": {k: v.value for k, v in self.activity_codes.items()},
                "defaultActivityCode": self.default_activity_code.value if self.default_activity_code else None,
            },
            "validationRules": [r.to_dict() for r in self.validation_rules],
            "customFields": [c.to_dict() for c in self.custom_fields],
            "isActive": self.active,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass
class ExportResult:
    success: bool
    file_name: str
    record_count: int
    total_amount: Decimal
    format: Optional[Format]
    export_date: str
    validation_result: ValidationResult
    download_url: Optional[str] = None
    errors: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        out = {
            "success": self.success,
            "fileName": self.file_name,
            "recordCount": self.record_count,
            "totalAmount": float(self.total_amount),
            "format": self.format.value if self.format else None,
            "exportDate": self.export_date,
            "validationResult": self.validation_result.to_dict(),
        }
        if self.download_url is not None:
            out["downloadUrl"] = self.download_url
        if self.errors is not None:
            out["errors"] = list(self.errors)
        return out

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ExportResult":
        fmt = d.get("format")
        return cls(
            success=bool(d["success"]),
            file_name=d.get("fileName", ""),
            record_count=int(d.get("recordCount", 0)),
            total_amount=to_decimal(d.get("totalAmount")),
            format=Format(fmt) if fmt else None,
            export_date=d.get("exportDate", ""),
            validation_result=ValidationResult.from_dict(d.get("validationResult") or {}),
            download_url=d.get("downloadUrl"),
            errors=d.get("errors"),
        )
