from .common import EncodingContext, records, write_delimited
from .ledes1998b import LEDES_1998B_FIELDS

# appended after the 1998B columns; the adjustment/vendor columns stay blank
LEDES_20_EXTENSION_FIELDS = [
    "CLIENT_ID", "MATTER_DESCRIPTION", "PRACTICE_AREA", "OFFICE_LOCATION",
    "CURRENCY_CODE", "DISCOUNT_AMOUNT", "WRITEOFF_AMOUNT", "WRITEUP_AMOUNT",
    "ADJUSTMENT_REASON", "VENDOR_NAME", "VENDOR_ID", "CHECK_NUMBER", "VOUCHER_NUMBER",
]
LEDES_20_FIELDS = LEDES_1998B_FIELDS + LEDES_20_EXTENSION_FIELDS


def to_ledes_20(ctx: EncodingContext) -> str:
    rows = records(ctx)
    for row, e in zip(rows, ctx.entries):
        row.update({
            "CLIENT_ID": e.client_id or ctx.configuration.client_id,
            "MATTER_DESCRIPTION": e.matter_title or "",
            "PRACTICE_AREA": ctx.settings["practice_area"],
            "OFFICE_LOCATION": ctx.settings["office_location"],
            "CURRENCY_CODE": ctx.currency,
        })
    return write_delimited(rows, LEDES_20_FIELDS, ctx.options)
