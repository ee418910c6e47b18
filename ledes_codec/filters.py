from typing import Iterable, List

from .models import BillingStatus, ExportFilters, TimeEntry


def matches(entry: TimeEntry, filters: ExportFilters) -> bool:
    if not filters.date_range.contains(entry.date):
        return False
    if filters.client_ids and entry.client_id not in filters.client_ids:
        return False
    if filters.matter_ids and entry.matter_id not in filters.matter_ids:
        return False
    if filters.timekeepers and entry.user_id not in filters.timekeepers:
        return False
    if filters.minimum_amount is not None and entry.amount < filters.minimum_amount:
        return False
    if filters.billing_status is BillingStatus.BILLED and entry.status != "billed":
        return False
    if filters.billing_status is BillingStatus.UNBILLED and entry.status == "billed":
        return False
    return entry.billable


def apply_filters(entries: Iterable[TimeEntry], filters: ExportFilters) -> List[TimeEntry]:
    """Entries passing every filter, in input order. Entries are not copied or modified."""
    return [e for e in entries if matches(e, filters)]
