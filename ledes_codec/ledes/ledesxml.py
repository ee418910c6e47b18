from lxml import etree

from ..mapper import resolve
from ..utbms import get_activity
from .common import EncodingContext, decimal_str


def _sub(parent, tag, text=None):
    el = etree.SubElement(parent, tag)
    if text is not None:
        el.text = str(text)
    return el


def _address(parent, addr):
    a = _sub(parent, "address")
    _sub(a, "street1", addr.get("street1", ""))
    if addr.get("street2"):
        _sub(a, "street2", addr["street2"])
    _sub(a, "city", addr.get("city", ""))
    _sub(a, "state", addr.get("state", ""))
    _sub(a, "zip_code", addr.get("zip_code", ""))
    _sub(a, "country", addr.get("country", ""))


def to_ledes_xml(ctx: EncodingContext) -> str:
    """Build the ``<ledes>`` document: header, invoice, line_items, summary, in that order."""
    s = ctx.settings
    firm = s["firm"]
    cfg = ctx.configuration
    places = ctx.places
    root = etree.Element("ledes")

    header = _sub(root, "header")
    _sub(header, "version", s["format_version"])
    _sub(header, "created_date", ctx.created_at)
    law_firm = _sub(header, "law_firm")
    _sub(law_firm, "name", firm["name"])
    _sub(law_firm, "id", firm["id"])
    _address(law_firm, firm["address"])
    client = _sub(header, "client")
    _sub(client, "name", cfg.client_name)
    _sub(client, "id", cfg.client_id)
    _address(client, s["client_address"])

    first = ctx.entries[0] if ctx.entries else None
    invoice = _sub(root, "invoice")
    _sub(invoice, "invoice_number", ctx.invoice_number)
    _sub(invoice, "invoice_date", ctx.invoice_date)
    _sub(invoice, "matter_number", (first.matter_id if first else "") or "")
    _sub(invoice, "matter_description", (first.matter_title if first else "") or "")
    period = _sub(invoice, "billing_period")
    _sub(period, "start_date", ctx.date_range.start)
    _sub(period, "end_date", ctx.date_range.end)
    attorney = _sub(invoice, "billing_attorney")
    _sub(attorney, "name", firm["billing_attorney"]["name"])
    _sub(attorney, "id", firm["billing_attorney"]["id"])

    items = _sub(root, "line_items")
    for n, e in enumerate(ctx.entries, start=1):
        tk = ctx.timekeeper(e)
        code = resolve(e.activity_type, cfg)
        defn = get_activity(code)
        item = _sub(items, "line_item")
        _sub(item, "line_number", n)
        _sub(item, "date", e.date)
        t = _sub(item, "timekeeper")
        _sub(t, "id", tk["id"])
        _sub(t, "name", tk["name"])
        _sub(t, "classification", tk["classification"])
        act = _sub(item, "activity")
        _sub(act, "code", code.value)
        _sub(act, "description", defn.description if defn else "")
        task = _sub(item, "task")
        _sub(task, "code", s["task"]["code"])
        _sub(task, "description", s["task"]["description"])
        _sub(item, "units", decimal_str(e.hours, 2))
        _sub(item, "rate", decimal_str(e.rate, places))
        _sub(item, "amount", decimal_str(e.amount, places))
        _sub(item, "narrative", e.description or "")

    total = decimal_str(ctx.total_amount(), places)
    summary = _sub(root, "summary")
    _sub(summary, "total_fees", total)
    _sub(summary, "total_expenses", decimal_str(0, places))
    _sub(summary, "total_amount", total)
    _sub(summary, "total_hours", decimal_str(ctx.total_hours(), 2))
    _sub(summary, "currency", ctx.currency)

    return etree.tostring(root, pretty_print=True, xml_declaration=True, encoding="UTF-8").decode("utf-8")
