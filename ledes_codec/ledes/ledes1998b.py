from .common import EncodingContext, records, write_delimited

LEDES_1998B_FIELDS = [
    "INVOICE_DATE", "INVOICE_NUMBER", "CLIENT_MATTER_NUMBER", "LAW_FIRM_MATTER_ID",
    "INVOICE_TOTAL", "BILLING_START_DATE", "BILLING_END_DATE", "INVOICE_DESCRIPTION",
    "LINE_ITEM_NUMBER", "EXP_FEE_INV_ADJ_TYPE", "LINE_ITEM_NUMBER_OF_UNITS",
    "LINE_ITEM_UNIT_COST", "LINE_ITEM_TOTAL", "LINE_ITEM_DATE", "LINE_ITEM_TASK_CODE",
    "LINE_ITEM_EXPENSE_CODE", "LINE_ITEM_ACTIVITY_CODE", "TIMEKEEPER_ID",
    "LINE_ITEM_DESCRIPTION", "LAW_FIRM_NAME", "BILLING_ATTORNEY", "BILLING_ATTORNEY_ID",
    "TIMEKEEPER_NAME", "TIMEKEEPER_CLASSIFICATION",
]


def to_ledes_1998b(ctx: EncodingContext) -> str:
    return write_delimited(records(ctx), LEDES_1998B_FIELDS, ctx.options)
