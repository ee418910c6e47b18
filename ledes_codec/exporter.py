"""
exporter.py
-----------

Runs one LEDES export end to end:

    requested -> filtering -> validating -> blocked | encoding -> failed | completed

Filtering, validation and encoding are pure. The only side effects are
writing the export file and appending the result to the history log.
``Exporter.export`` never raises: configuration lookups, encoder failures
and unexpected exceptions all come back as a failed ``ExportResult``
carrying a single critical ``export_error`` finding.
"""
from __future__ import annotations

import datetime as dt
import logging
import re
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

from .errors import ConfigurationNotFound
from .filters import apply_filters
from .ledes.common import EncodingContext
from .ledes.encoders import encode
from .models import Configuration, ExportRequest, ExportResult, Format, TimeEntry
from .settings import Settings, load_settings
from .sources import EntrySource
from .store import ConfigurationStore, ExportHistory
from .validation.engine import validate
from .validation.types import Severity, ValidationError, ValidationResult

logger = logging.getLogger(__name__)

_UNSAFE = re.compile(r'[\\/:*?"<>|\x00-\x1f]')


class ExportState(str, Enum):
    REQUESTED = "requested"
    FILTERING = "filtering"
    VALIDATING = "validating"
    BLOCKED = "blocked"
    ENCODING = "encoding"
    FAILED = "failed"
    COMPLETED = "completed"


def build_file_name(fmt: Format, client_name: str, export_date: dt.date, override: Optional[str] = None) -> str:
    if override:
        name = _UNSAFE.sub("_", Path(override).name)
        return name if name.lower().endswith("." + fmt.extension) else f"{name}.{fmt.extension}"
    client = _UNSAFE.sub("_", client_name)
    return f"LEDES_{fmt.tag}_{client}_{export_date.isoformat()}.{fmt.extension}"


def _utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _iso(ts: dt.datetime) -> str:
    return ts.replace(microsecond=0).isoformat().replace("+00:00", "Z")


class Exporter:
    def __init__(self, configurations: ConfigurationStore, source: EntrySource, history: ExportHistory,
                 settings: Optional[Settings] = None, clock: Callable[[], dt.datetime] = _utc_now):
        self.configurations = configurations
        self.source = source
        self.history = history
        self.settings = settings or load_settings()
        self.clock = clock

    def _enter(self, state: ExportState, request: ExportRequest) -> None:
        logger.debug("export %s -> %s", request.configuration_id, state.value)

    def _configuration(self, configuration_id: str) -> Configuration:
        cfg = self.configurations.get(configuration_id)
        if cfg is None:
            raise ConfigurationNotFound(configuration_id)
        return cfg

    def _filtered_entries(self, request: ExportRequest) -> List[TimeEntry]:
        self._enter(ExportState.FILTERING, request)
        entries = self.source.get_entries(request.filters.date_range, billable_only=True)
        return apply_filters(entries, request.filters)

    def preview(self, request: ExportRequest) -> ValidationResult:
        """Filter and validate without encoding, writing a file or touching history."""
        cfg = self._configuration(request.configuration_id)
        return validate(self._filtered_entries(request), cfg, self.settings)

    def export(self, request: ExportRequest) -> ExportResult:
        now = self.clock()
        self._enter(ExportState.REQUESTED, request)
        try:
            return self._run(request, now)
        except Exception as exc:
            logger.exception("LEDES export failed for configuration %s", request.configuration_id)
            self._enter(ExportState.FAILED, request)
            return failure_result(request.format, now, str(exc) or exc.__class__.__name__)

    def _run(self, request: ExportRequest, now: dt.datetime) -> ExportResult:
        cfg = self._configuration(request.configuration_id)
        fmt = request.format or cfg.format
        entries = self._filtered_entries(request)

        self._enter(ExportState.VALIDATING, request)
        validation = validate(entries, cfg, self.settings)
        if not validation.is_valid:
            self._enter(ExportState.BLOCKED, request)
            logger.warning("LEDES export for %s blocked by %d critical error(s)", cfg.client_name,
                           len(validation.critical_errors))
            result = ExportResult(success=False, file_name="", record_count=0, total_amount=Decimal("0"),
                                  format=fmt, export_date=_iso(now), validation_result=validation,
                                  errors=[e.message for e in validation.errors])
            return result

        self._enter(ExportState.ENCODING, request)
        opts = request.output_options
        ctx = EncodingContext(
            entries=entries, configuration=cfg, date_range=request.filters.date_range, options=opts,
            settings=self.settings,
            invoice_number=opts.invoice_number or f"INV-{int(now.timestamp() * 1000)}",
            invoice_date=opts.invoice_date or now.date().isoformat(),
            created_at=_iso(now),
        )
        text = encode(fmt, ctx)

        file_name = build_file_name(fmt, cfg.client_name, now.date(), opts.file_name)
        path = self._materialize(file_name, text)
        result = ExportResult(success=True, file_name=file_name, record_count=len(entries),
                              total_amount=ctx.total_amount(), format=fmt, export_date=_iso(now),
                              validation_result=validation, download_url=path.resolve().as_uri())
        self.history.append(result)
        self._enter(ExportState.COMPLETED, request)
        logger.info("Exported %d entries (%s) for %s to %s", len(entries), fmt.value, cfg.client_name, path)
        return result

    def _materialize(self, file_name: str, text: str) -> Path:
        out_dir = self.settings.export_dir
        out_dir.mkdir(parents=True, exist_ok=True)
        path = out_dir / file_name
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(text)
        return path


def failure_result(fmt: Optional[Format], now: dt.datetime, message: str) -> ExportResult:
    error = ValidationError(record_number=0, field="export", value=None, rule="export_error",
                            message=message, severity=Severity.CRITICAL)
    fmt = fmt if isinstance(fmt, Format) else None
    return ExportResult(success=False, file_name="", record_count=0, total_amount=Decimal("0"), format=fmt,
                        export_date=_iso(now),
                        validation_result=ValidationResult(errors=[error]),
                        errors=[message])
