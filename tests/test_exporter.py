import csv
import datetime as dt
import io
from decimal import Decimal
from pathlib import Path
from urllib.parse import unquote, urlparse

from lxml import etree

from ledes_codec.exporter import ExportState, Exporter, build_file_name
from ledes_codec.models import (DateRange, ExportFilters, ExportRequest, Format, OutputOptions, TimeEntry)
from ledes_codec.sources import EntrySource, StaticEntrySource
from ledes_codec.validation.types import Severity

FIXED_NOW = dt.datetime(2024, 3, 15, 12, 0, tzinfo=dt.timezone.utc)


def e(i, **kw):
    d = dict(id=str(i), matterId="M1", matterTitle="Acme v. Beta", clientId="client-1", clientName="Acme",
             description="Review contract", hours=2, rate=300, amount=600, date="2024-03-01",
             activityType="document_review", status="draft", billable=True)
    d.update(kw)
    return TimeEntry.from_dict(d)


def make_exporter(store, history, settings, entries, fmt="LEDES1998B", mapping=None):
    cfg = store.create({"id": "config-1", "clientId": "client-1", "clientName": "Acme", "format": fmt,
                        "utbmsMapping": mapping or {}})
    exporter = Exporter(store, StaticEntrySource(entries), history, settings, clock=lambda: FIXED_NOW)
    return cfg, exporter


def request(fmt=None, **opts):
    return ExportRequest("config-1", ExportFilters(DateRange("2024-03-01", "2024-03-01")),
                         format=Format(fmt) if fmt else None, output_options=OutputOptions(**opts))


def artifact(result) -> Path:
    return Path(unquote(urlparse(result.download_url).path))


def test_single_entry_export(store, history, settings):
    _, exporter = make_exporter(store, history, settings, [e(1)])
    result = exporter.export(request())
    assert result.success is True
    assert result.record_count == 1
    assert result.total_amount == Decimal("600")
    assert result.format is Format.LEDES1998B
    assert result.file_name == "LEDES_1998B_Acme_2024-03-15.csv"
    assert result.errors is None
    rows = list(csv.DictReader(io.StringIO(artifact(result).read_text(encoding="utf-8"))))
    assert len(rows) == 1
    assert rows[0]["LINE_ITEM_ACTIVITY_CODE"] == "L400"
    assert rows[0]["INVOICE_TOTAL"] == "600.00"
    assert [r.file_name for r in history.list()] == [result.file_name]


def test_missing_matter_blocks_export(store, history, settings):
    _, exporter = make_exporter(store, history, settings, [e(1, matterId=""), e(2)])
    result = exporter.export(request())
    assert result.success is False
    assert result.record_count == 0
    assert result.total_amount == 0
    assert result.file_name == ""
    assert result.download_url is None
    critical = [x for x in result.validation_result.errors if x.severity is Severity.CRITICAL]
    assert len(critical) == 1 and critical[0].field == "matterId"
    assert result.errors == ["Matter ID is required"]
    # totals still visible on the validation result
    assert result.validation_result.total_amount == Decimal("1200")
    assert not (Path(settings["export_dir"]).exists() and any(Path(settings["export_dir"]).iterdir()))
    assert history.list() == []


def test_non_critical_errors_still_export(store, history, settings):
    _, exporter = make_exporter(store, history, settings, [e(1, description=""), e(2, hours=0, amount=0)])
    result = exporter.export(request())
    assert result.success is True
    assert result.record_count == 2
    assert {x.severity for x in result.validation_result.errors} == {Severity.ERROR}
    assert artifact(result).exists()


def test_totals_agree_across_formats(store, history, settings):
    entries = [e(1), e(2, hours=1.5, rate=250, amount=375, activityType="legal_research"),
               e(3, hours=3, rate=100, amount=300, date="2024-02-01")]
    _, exporter = make_exporter(store, history, settings, entries)
    expected = Decimal("975")
    for fmt in ("LEDES1998B", "LEDES2.0"):
        result = exporter.export(request(fmt))
        rows = list(csv.DictReader(io.StringIO(artifact(result).read_text(encoding="utf-8"))))
        assert result.record_count == len(rows) == 2
        assert result.total_amount == expected == sum(Decimal(r["LINE_ITEM_TOTAL"]) for r in rows)
        assert {Decimal(r["INVOICE_TOTAL"]) for r in rows} == {expected}
    result = exporter.export(request("LEDESXML"))
    assert result.file_name.endswith(".xml")
    root = etree.fromstring(artifact(result).read_bytes())
    assert len(root.findall("line_items/line_item")) == result.record_count == 2
    assert Decimal(root.findtext("summary/total_amount")) == result.total_amount == expected


def test_fractional_cent_amounts_total_the_written_lines(store, history, settings):
    entries = [e(1, hours="0.25", rate="333.33", amount="83.3325"),
               e(2, hours="0.25", rate="333.33", amount="83.3325")]
    _, exporter = make_exporter(store, history, settings, entries)
    result = exporter.export(request("LEDES1998B"))
    rows = list(csv.DictReader(io.StringIO(artifact(result).read_text(encoding="utf-8"))))
    assert [r["LINE_ITEM_TOTAL"] for r in rows] == ["83.33", "83.33"]
    assert {r["INVOICE_TOTAL"] for r in rows} == {"166.66"}
    assert result.total_amount == Decimal("166.66")

    result = exporter.export(request("LEDESXML"))
    root = etree.fromstring(artifact(result).read_bytes())
    lines = sum(Decimal(i.findtext("amount")) for i in root.findall("line_items/line_item"))
    assert lines == Decimal(root.findtext("summary/total_amount")) == result.total_amount == Decimal("166.66")


def test_format_defaults_to_configuration(store, history, settings):
    _, exporter = make_exporter(store, history, settings, [e(1)], fmt="LEDES2.0")
    result = exporter.export(request())
    assert result.format is Format.LEDES20
    assert result.file_name == "LEDES_2.0_Acme_2024-03-15.csv"


def test_configuration_mapping_override(store, history, settings):
    _, exporter = make_exporter(store, history, settings, [e(1)], mapping={"document_review": "L410"})
    result = exporter.export(request(invoice_number="INV-42"))
    rows = list(csv.DictReader(io.StringIO(artifact(result).read_text(encoding="utf-8"))))
    assert rows[0]["LINE_ITEM_ACTIVITY_CODE"] == "L410"
    assert rows[0]["INVOICE_NUMBER"] == "INV-42"


def test_unknown_configuration_fails_without_raising(store, history, settings):
    exporter = Exporter(store, StaticEntrySource([e(1)]), history, settings, clock=lambda: FIXED_NOW)
    result = exporter.export(request())
    assert result.success is False
    assert result.record_count == 0
    [err] = result.validation_result.errors
    assert err.rule == "export_error" and err.severity is Severity.CRITICAL and err.field == "export"
    assert "config-1" in result.errors[0]
    assert history.list() == []


def test_unsupported_format_fails(store, history, settings):
    _, exporter = make_exporter(store, history, settings, [e(1)])
    req = request()
    req.format = "LEDES3000"
    result = exporter.export(req)
    assert result.success is False
    assert result.format is None
    assert result.validation_result.errors[0].rule == "export_error"


class BrokenSource(EntrySource):
    def get_entries(self, date_range, billable_only=True):
        raise RuntimeError("billing service unavailable")


def test_source_failure_becomes_failed_result(store, history, settings):
    make_exporter(store, history, settings, [])
    exporter = Exporter(store, BrokenSource(), history, settings, clock=lambda: FIXED_NOW)
    result = exporter.export(request())
    assert result.success is False
    assert result.errors == ["billing service unavailable"]
    assert result.to_dict()["validationResult"]["isValid"] is False


def test_preview_has_no_side_effects(store, history, settings):
    _, exporter = make_exporter(store, history, settings, [e(1, matterId="")])
    v = exporter.preview(request())
    assert not v.is_valid
    assert history.list() == []


def test_build_file_name():
    d = FIXED_NOW.date()
    assert build_file_name(Format.LEDESXML, "Acme", d) == "LEDES_XML_Acme_2024-03-15.xml"
    assert build_file_name(Format.LEDES1998B, "A/B Corp", d) == "LEDES_1998B_A_B Corp_2024-03-15.csv"
    assert build_file_name(Format.LEDES20, "Acme", d, override="../march") == "march.csv"


def test_states_are_ordered():
    assert [s.value for s in ExportState] == ["requested", "filtering", "validating", "blocked", "encoding",
                                              "failed", "completed"]
