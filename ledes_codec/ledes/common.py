"""
ledes/common.py
---------------

Pieces shared by the LEDES encoders: the encoding context handed to every
encoder, date/number formatting and the per-entry 1998B line record that
LEDES 2.0 extends.
"""
from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Sequence

from ..mapper import resolve
from ..models import Configuration, DateRange, OutputOptions, TimeEntry
from ..settings import Settings


@dataclass
class EncodingContext:
    entries: Sequence[TimeEntry]
    configuration: Configuration
    date_range: DateRange
    options: OutputOptions
    settings: Settings
    invoice_number: str
    invoice_date: str  # ISO YYYY-MM-DD
    created_at: str  # ISO timestamp

    @property
    def currency(self) -> str:
        return self.options.currency or self.settings.currency

    @property
    def places(self) -> int:
        return self.options.decimal_places

    def total_amount(self) -> Decimal:
        return invoice_total(self.entries, self.places)

    def total_hours(self) -> Decimal:
        return sum((e.hours for e in self.entries), Decimal("0"))

    def timekeeper(self, entry: TimeEntry) -> Dict[str, str]:
        tk = self.settings["timekeeper"]
        return {"id": entry.user_id or tk["id"],
                "name": entry.timekeeper_name or tk["name"],
                "classification": entry.timekeeper_classification or tk["classification"]}


def ledes_date(iso: str) -> str:
    """'2024-03-01' -> '2024/03/01'"""
    return (iso or "")[:10].replace("-", "/")


def quantize(value, places: int = 2) -> Decimal:
    return Decimal(value).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def decimal_str(value, places: int = 2) -> str:
    return str(quantize(value, places))


def invoice_total(entries: Iterable[TimeEntry], places: int = 2) -> Decimal:
    """Sum of the line amounts as written, each rounded to ``places`` first."""
    return sum((quantize(e.amount, places) for e in entries), Decimal("0"))


def line_record(ctx: EncodingContext, index: int, entry: TimeEntry, invoice_total: str) -> Dict[str, Any]:
    firm = ctx.settings["firm"]
    tk = ctx.timekeeper(entry)
    client_name = entry.client_name or ctx.configuration.client_name
    return {
        "INVOICE_DATE": ledes_date(ctx.invoice_date),
        "INVOICE_NUMBER": ctx.invoice_number,
        "CLIENT_MATTER_NUMBER": entry.matter_id or "",
        "LAW_FIRM_MATTER_ID": entry.matter_id or "",
        "INVOICE_TOTAL": invoice_total,
        "BILLING_START_DATE": ledes_date(ctx.date_range.start),
        "BILLING_END_DATE": ledes_date(ctx.date_range.end),
        "INVOICE_DESCRIPTION": ctx.settings["invoice_description"].format(client_name=client_name),
        "LINE_ITEM_NUMBER": index,
        "EXP_FEE_INV_ADJ_TYPE": "F",
        "LINE_ITEM_NUMBER_OF_UNITS": decimal_str(entry.hours, 2),
        "LINE_ITEM_UNIT_COST": decimal_str(entry.rate, ctx.places),
        "LINE_ITEM_TOTAL": decimal_str(entry.amount, ctx.places),
        "LINE_ITEM_DATE": ledes_date(entry.date),
        "LINE_ITEM_TASK_CODE": ctx.settings["task"]["code"],
        "LINE_ITEM_EXPENSE_CODE": "",
        "LINE_ITEM_ACTIVITY_CODE": resolve(entry.activity_type, ctx.configuration).value,
        "TIMEKEEPER_ID": tk["id"],
        "LINE_ITEM_DESCRIPTION": entry.description or "",
        "LAW_FIRM_NAME": firm["name"],
        "BILLING_ATTORNEY": firm["billing_attorney"]["name"],
        "BILLING_ATTORNEY_ID": firm["billing_attorney"]["id"],
        "TIMEKEEPER_NAME": tk["name"],
        "TIMEKEEPER_CLASSIFICATION": tk["classification"],
    }


def write_delimited(records: Iterable[Dict[str, Any]], headers: Sequence[str], options: OutputOptions) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, delimiter=options.delimiter, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    if options.include_header:
        writer.writerow(headers)
    for r in records:
        writer.writerow([r.get(k, "") for k in headers])
    return buf.getvalue()


def records(ctx: EncodingContext) -> List[Dict[str, Any]]:
    total = decimal_str(ctx.total_amount(), ctx.places)
    return [line_record(ctx, i, e, total) for i, e in enumerate(ctx.entries, start=1)]
