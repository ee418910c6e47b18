from __future__ import annotations

import logging
from types import MappingProxyType
from typing import TYPE_CHECKING, Dict, Mapping

from .errors import ConfigurationError
from .utbms import UTBMSActivityCode

if TYPE_CHECKING:
    from .models import Configuration

logger = logging.getLogger(__name__)

GENERAL_WORK = "general_work"
FALLBACK_CODE = UTBMSActivityCode.L110

# internal activity type -> UTBMS activity code, used when a configuration has no entry
DEFAULT_ACTIVITY_MAP: Mapping[str, UTBMSActivityCode] = MappingProxyType({
    "legal_research": UTBMSActivityCode.L300,
    "document_review": UTBMSActivityCode.L400,
    "document_drafting": UTBMSActivityCode.L500,
    "client_meeting": UTBMSActivityCode.L110,
    "court_appearance": UTBMSActivityCode.L500,
    "correspondence": UTBMSActivityCode.L110,
    "phone_call": UTBMSActivityCode.L110,
    GENERAL_WORK: UTBMSActivityCode.L110,
})


def parse_mapping(raw: Mapping[str, str]) -> Dict[str, UTBMSActivityCode]:
    """Validate a raw ``{activity_type: code}`` table into typed codes.

    Keys are stripped and must be non-empty and unique after stripping;
    every value must be a known UTBMS activity code.
    """
    if not isinstance(raw, Mapping):
        raise ConfigurationError("UTBMS mapping must be a mapping of activity type to code")
    out: Dict[str, UTBMSActivityCode] = {}
    for key, code in raw.items():
        k = (key or "").strip() if isinstance(key, str) else ""
        if not k:
            raise ConfigurationError(f"Invalid activity type key {key!r} in UTBMS mapping")
        if k in out:
            raise ConfigurationError(f"Duplicate activity type {k!r} in UTBMS mapping")
        try:
            out[k] = UTBMSActivityCode(code)
        except ValueError:
            raise ConfigurationError(f"Unknown UTBMS activity code {code!r} for {k!r}") from None
    return out


def resolve(activity_type: str | None, configuration: "Configuration | None" = None) -> UTBMSActivityCode:
    """Configuration override, then the built-in table, then the configuration
    default, then L110. Never raises."""
    key = ("" if activity_type is None else str(activity_type)).strip() or GENERAL_WORK
    if configuration is not None:
        mapped = configuration.activity_codes.get(key)
        if mapped:
            return mapped
    if key in DEFAULT_ACTIVITY_MAP:
        return DEFAULT_ACTIVITY_MAP[key]
    if configuration is not None and configuration.default_activity_code:
        logger.debug("No mapping for %r; using configuration default %s", key, configuration.default_activity_code.value)
        return configuration.default_activity_code
    logger.debug("No mapping for %r; falling back to %s", key, FALLBACK_CODE.value)
    return FALLBACK_CODE
