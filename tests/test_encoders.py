import csv
import io
from decimal import Decimal

import pytest
from lxml import etree

from ledes_codec.errors import UnsupportedFormatError
from ledes_codec.ledes.common import EncodingContext, decimal_str, ledes_date
from ledes_codec.ledes.encoders import ENCODERS, encode
from ledes_codec.ledes.ledes1998b import LEDES_1998B_FIELDS
from ledes_codec.ledes.ledes20 import LEDES_20_FIELDS
from ledes_codec.models import Configuration, DateRange, Format, OutputOptions, TimeEntry


def e(i, hours, rate, amount, desc="Review contract", activity="document_review", **kw):
    d = dict(id=str(i), matterId="M1", matterTitle="Acme v. Beta", clientId="C1", clientName="Acme",
             description=desc, hours=hours, rate=rate, amount=amount, date="2024-03-0%d" % i,
             activityType=activity, userId="TK9")
    d.update(kw)
    return TimeEntry.from_dict(d)


ENTRIES = [
    e(1, "2", "300", "600"),
    e(2, "1.5", "250", "375", activity="legal_research"),
    e(3, "0.25", "400", "100", activity="unknown_type"),
]


def ctx(settings, entries=ENTRIES, **opts):
    cfg = Configuration.from_dict({"id": "c1", "clientId": "C1", "clientName": "Acme", "format": "LEDES1998B"})
    return EncodingContext(entries=entries, configuration=cfg, date_range=DateRange("2024-03-01", "2024-03-31"),
                           options=OutputOptions(**opts), settings=settings, invoice_number="INV-1",
                           invoice_date="2024-03-31", created_at="2024-03-31T12:00:00Z")


def parse(text, delimiter=","):
    return list(csv.DictReader(io.StringIO(text), delimiter=delimiter))


def test_helpers():
    assert ledes_date("2024-03-01") == "2024/03/01"
    assert decimal_str(Decimal("600")) == "600.00"
    assert decimal_str(Decimal("0.125"), 2) == "0.13"


def test_every_format_has_an_encoder():
    assert set(ENCODERS) == set(Format)


def test_1998b_rows(settings):
    text = encode(Format.LEDES1998B, ctx(settings))
    assert text.splitlines()[0] == ",".join(LEDES_1998B_FIELDS)
    rows = parse(text)
    assert len(rows) == 3
    first = rows[0]
    assert first["INVOICE_DATE"] == "2024/03/31"
    assert first["BILLING_START_DATE"] == "2024/03/01"
    assert first["BILLING_END_DATE"] == "2024/03/31"
    assert first["LINE_ITEM_DATE"] == "2024/03/01"
    assert first["LINE_ITEM_NUMBER"] == "1"
    assert first["LINE_ITEM_NUMBER_OF_UNITS"] == "2.00"
    assert first["LINE_ITEM_UNIT_COST"] == "300.00"
    assert first["LINE_ITEM_TOTAL"] == "600.00"
    assert first["EXP_FEE_INV_ADJ_TYPE"] == "F"
    assert first["LINE_ITEM_TASK_CODE"] == "T001"
    assert first["TIMEKEEPER_ID"] == "TK9"
    assert first["LAW_FIRM_NAME"] == "Ross AI Legal Services"
    assert first["INVOICE_DESCRIPTION"] == "Professional Services for Acme"
    assert [r["LINE_ITEM_ACTIVITY_CODE"] for r in rows] == ["L400", "L300", "L110"]
    assert [r["LINE_ITEM_NUMBER"] for r in rows] == ["1", "2", "3"]


def test_invoice_total_matches_line_sum_on_every_row(settings):
    for fmt in (Format.LEDES1998B, Format.LEDES20):
        rows = parse(encode(fmt, ctx(settings)))
        line_sum = sum(Decimal(r["LINE_ITEM_TOTAL"]) for r in rows)
        assert line_sum == Decimal("1075")
        assert {r["INVOICE_TOTAL"] for r in rows} == {"1075.00"}


def test_invoice_total_is_sum_of_rounded_lines_at_zero_places(settings):
    entries = [e(1, "1", "10.4", "10.4"), e(2, "1", "10.4", "10.4"), e(3, "1", "10.4", "10.4")]
    rows = parse(encode(Format.LEDES20, ctx(settings, entries, decimal_places=0)))
    assert [r["LINE_ITEM_TOTAL"] for r in rows] == ["10", "10", "10"]
    assert {r["INVOICE_TOTAL"] for r in rows} == {"30"}
    root = etree.fromstring(encode(Format.LEDESXML, ctx(settings, entries, decimal_places=0)).encode())
    assert root.findtext("summary/total_amount") == "30"


def test_ledes20_is_superset_of_1998b(settings):
    assert LEDES_20_FIELDS[:len(LEDES_1998B_FIELDS)] == LEDES_1998B_FIELDS
    rows = parse(encode(Format.LEDES20, ctx(settings)))
    assert list(rows[0].keys()) == LEDES_20_FIELDS
    assert rows[0]["CLIENT_ID"] == "C1"
    assert rows[0]["MATTER_DESCRIPTION"] == "Acme v. Beta"
    assert rows[0]["CURRENCY_CODE"] == "USD"
    assert rows[0]["PRACTICE_AREA"] == "General Practice"
    assert rows[0]["DISCOUNT_AMOUNT"] == "" and rows[0]["VOUCHER_NUMBER"] == ""


def test_description_with_comma_and_quote_round_trips(settings):
    desc = 'Reviewed "Smith, Jones" memo, revised draft'
    text = encode(Format.LEDES1998B, ctx(settings, [e(1, "1", "100", "100", desc=desc)]))
    assert '"Reviewed ""Smith, Jones"" memo, revised draft"' in text
    assert parse(text)[0]["LINE_ITEM_DESCRIPTION"] == desc


def test_custom_delimiter_and_no_header(settings):
    text = encode(Format.LEDES1998B, ctx(settings, [e(1, "1", "100", "100", desc="a|b")], delimiter="|",
                                        include_header=False))
    assert len(text.splitlines()) == 1
    values = next(csv.reader(io.StringIO(text), delimiter="|"))
    assert values[LEDES_1998B_FIELDS.index("LINE_ITEM_DESCRIPTION")] == "a|b"


def test_string_flags_from_the_wire(settings):
    opts = OutputOptions.from_dict({"includeHeader": "false", "delimiter": ";"})
    assert opts.include_header is False
    assert OutputOptions.from_dict({"include_header": "True"}).include_header is True
    c = ctx(settings)
    c.options = opts
    assert len(encode(Format.LEDES1998B, c).splitlines()) == 3
    assert TimeEntry.from_dict({"id": "1", "date": "2024-03-01", "billable": "no"}).billable is False
    with pytest.raises(ValueError):
        OutputOptions.from_dict({"includeHeader": "maybe"})


def test_xml_structure_and_totals(settings):
    text = encode(Format.LEDESXML, ctx(settings))
    assert text.startswith("<?xml")
    root = etree.fromstring(text.encode("utf-8"))
    assert root.tag == "ledes"
    assert [c.tag for c in root] == ["header", "invoice", "line_items", "summary"]
    assert root.findtext("invoice/billing_period/start_date") == "2024-03-01"
    assert root.findtext("invoice/matter_number") == "M1"
    items = root.findall("line_items/line_item")
    assert len(items) == 3
    assert [i.findtext("activity/code") for i in items] == ["L400", "L300", "L110"]
    assert items[0].findtext("date") == "2024-03-01"
    amounts = sum(Decimal(i.findtext("amount")) for i in items)
    assert amounts == Decimal(root.findtext("summary/total_amount")) == Decimal(root.findtext("summary/total_fees"))
    assert root.findtext("summary/total_expenses") == "0.00"
    assert root.findtext("summary/total_hours") == "3.75"
    assert root.findtext("summary/currency") == "USD"
    assert root.findtext("header/client/name") == "Acme"


def test_xml_escapes_markup_in_narrative(settings):
    desc = "Call re <motion> & exhibits"
    root = etree.fromstring(encode(Format.LEDESXML, ctx(settings, [e(1, "1", "100", "100", desc=desc)])).encode())
    assert root.findtext("line_items/line_item/narrative") == desc


def test_empty_batch_encodes_to_zero_totals(settings):
    root = etree.fromstring(encode(Format.LEDESXML, ctx(settings, [])).encode())
    assert root.findall("line_items/line_item") == []
    assert root.findtext("summary/total_amount") == "0.00"
    assert parse(encode(Format.LEDES1998B, ctx(settings, []))) == []


def test_unknown_format_rejected(settings):
    with pytest.raises(UnsupportedFormatError):
        encode("LEDES3000", ctx(settings))
