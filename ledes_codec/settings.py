from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

SETTINGS_PATH = Path(os.environ.get("LEDES_CODEC_SETTINGS", "config/settings.yml"))

DEFAULTS: Dict[str, Any] = {
    "database": "data/ledes_codec.db",
    "export_dir": "exports",
    "history_limit": 50,
    "currency": "USD",
    "format_version": "2.0",
    "firm": {
        "name": "Law Firm",
        "id": "FIRM001",
        "billing_attorney": {"name": "Billing Attorney", "id": "ATT001"},
        "address": {"street1": "", "city": "", "state": "", "zip_code": "", "country": "US"},
    },
    "client_address": {"street1": "", "city": "", "state": "", "zip_code": "", "country": "US"},
    "timekeeper": {"id": "TK001", "name": "Billing Attorney", "classification": "Attorney"},
    "task": {"code": "T001", "description": "General Legal Services"},
    "practice_area": "General Practice",
    "office_location": "Main Office",
    "invoice_description": "Professional Services for {client_name}",
    "validation": {"max_hours_per_entry": 24, "max_description_length": 500},
}


def _load_yaml(p: Path) -> Dict[str, Any]:
    if not p.exists():
        return {}
    data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{p}: settings must be a mapping")
    return data


def _deep_merge(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(a)
    for k, v in b.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


class Settings(dict):
    """Plain dict of settings with attribute shortcuts for the common keys."""

    @property
    def database(self) -> str:
        return self["database"]

    @property
    def export_dir(self) -> Path:
        return Path(self["export_dir"])

    @property
    def history_limit(self) -> int:
        return int(self["history_limit"])

    @property
    def currency(self) -> str:
        return self["currency"]


def load_settings(path: Optional[Path | str] = None, overrides: Optional[Dict[str, Any]] = None) -> Settings:
    p = Path(path) if path else SETTINGS_PATH
    merged = _deep_merge(DEFAULTS, _load_yaml(p))
    if os.environ.get("LEDES_CODEC_DB"):
        merged["database"] = os.environ["LEDES_CODEC_DB"]
    if os.environ.get("LEDES_CODEC_EXPORT_DIR"):
        merged["export_dir"] = os.environ["LEDES_CODEC_EXPORT_DIR"]
    if overrides:
        merged = _deep_merge(merged, overrides)
    logger.debug("Loaded settings from %s", p)
    return Settings(merged)
