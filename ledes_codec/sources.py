"""
sources.py
----------

Where time entries come from. The exporter only needs
``get_entries(date_range, billable_only)``; the billing subsystem owns the
entries themselves.

``HttpEntrySource`` reads them from the billing service over HTTP:

    GET {base_url}/time-entries?start=2024-03-01&end=2024-03-31&billable=true

and expects either a JSON list of entries or ``{"entries": [...]}``.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Iterable, List

import requests

from .models import DateRange, TimeEntry

logger = logging.getLogger(__name__)


class EntrySource(ABC):
    @abstractmethod
    def get_entries(self, date_range: DateRange, billable_only: bool = True) -> List[TimeEntry]: ...


class StaticEntrySource(EntrySource):
    def __init__(self, entries: Iterable[TimeEntry | dict] = ()):
        self.entries = [e if isinstance(e, TimeEntry) else TimeEntry.from_dict(e) for e in entries]

    def get_entries(self, date_range, billable_only=True):
        return [e for e in self.entries if date_range.contains(e.date) and (e.billable or not billable_only)]


class HttpEntrySource(EntrySource):
    def __init__(self, base_url: str, timeout: float = 30, session: requests.Session | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def get_entries(self, date_range, billable_only=True):
        endpoint = f"{self.base_url}/time-entries"
        params = {"start": date_range.start, "end": date_range.end, "billable": str(billable_only).lower()}
        logger.info("Fetching time entries from %s", endpoint)
        resp = self.session.get(endpoint, params=params, timeout=self.timeout)
        resp.raise_for_status()
        data = resp.json()
        items = data.get("entries", []) if isinstance(data, dict) else data
        entries = [TimeEntry.from_dict(it) for it in items]
        logger.info("Fetched %d time entries", len(entries))
        return entries
