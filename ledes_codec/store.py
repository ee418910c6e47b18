"""
store.py
--------

SQLite persistence for export configurations and the export history log.

Configurations are stored as JSON documents keyed by id and re-validated
through ``Configuration.from_dict`` on every read and write, so a row with
an unknown format or UTBMS code never reaches the exporter.

The history log keeps the most recent ``limit`` export results. Appends run
under a process lock inside a ``BEGIN IMMEDIATE`` transaction, which also
serialises writers in other processes sharing the database file.
"""
from __future__ import annotations

import json
import logging
import secrets
import sqlite3
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

import yaml

from .errors import ConfigurationError, ConfigurationNotFound
from .models import Configuration, ExportResult, utc_now

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS ledes_configurations (
  id TEXT PRIMARY KEY,
  client_id TEXT,
  client_name TEXT NOT NULL,
  format TEXT NOT NULL,
  active INTEGER NOT NULL DEFAULT 1,
  body TEXT NOT NULL,
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS ledes_export_history (
  seq INTEGER PRIMARY KEY AUTOINCREMENT,
  exported_at TEXT NOT NULL,
  success INTEGER NOT NULL,
  body TEXT NOT NULL
);
"""


def connect(db_path: str) -> sqlite3.Connection:
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path, check_same_thread=False, isolation_level=None)
    conn.executescript(SCHEMA)
    return conn


def new_configuration_id() -> str:
    return f"ledes-{int(time.time() * 1000)}-{secrets.token_hex(4)}"


class _SqliteStore:
    def __init__(self, db_path: str = ":memory:", conn: Optional[sqlite3.Connection] = None):
        self._conn = conn or connect(db_path)
        self._lock = threading.RLock()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            self._conn.execute("BEGIN IMMEDIATE")
            try:
                yield self._conn
            except BaseException:
                self._conn.execute("ROLLBACK")
                raise
            self._conn.execute("COMMIT")

    def close(self) -> None:
        self._conn.close()


class ConfigurationStore(_SqliteStore):

    def list(self, active_only: bool = False) -> List[Configuration]:
        sql = "SELECT body FROM ledes_configurations"
        if active_only:
            sql += " WHERE active=1"
        with self._lock:
            rows = self._conn.execute(sql + " ORDER BY created_at, rowid").fetchall()
        return [Configuration.from_dict(json.loads(r[0])) for r in rows]

    def get(self, configuration_id: str) -> Optional[Configuration]:
        with self._lock:
            row = self._conn.execute("SELECT body FROM ledes_configurations WHERE id=?", (configuration_id,)).fetchone()
        return Configuration.from_dict(json.loads(row[0])) if row else None

    def _write(self, cfg: Configuration, insert: bool) -> None:
        params = (cfg.client_id, cfg.client_name, cfg.format.value, int(cfg.active),
                  json.dumps(cfg.to_dict()), cfg.created_at, cfg.updated_at, cfg.id)
        with self._transaction() as conn:
            if insert:
                conn.execute("INSERT INTO ledes_configurations(client_id, client_name, format, active, body, created_at, updated_at, id) "
                             "VALUES (?,?,?,?,?,?,?,?)", params)
            else:
                conn.execute("UPDATE ledes_configurations SET client_id=?, client_name=?, format=?, active=?, body=?, "
                             "created_at=?, updated_at=? WHERE id=?", params)

    def create(self, data: Dict[str, Any]) -> Configuration:
        now = utc_now()
        body = dict(data)
        body["id"] = body.get("id") or new_configuration_id()
        body["createdAt"] = body.get("createdAt") or now
        body["updatedAt"] = now
        cfg = Configuration.from_dict(body)
        try:
            self._write(cfg, insert=True)
        except sqlite3.IntegrityError:
            raise ConfigurationError(f"Configuration {cfg.id} already exists") from None
        logger.info("Created LEDES configuration %s for %s (%s)", cfg.id, cfg.client_name, cfg.format.value)
        return cfg

    def update(self, configuration_id: str, changes: Dict[str, Any]) -> Configuration:
        current = self.get(configuration_id)
        if current is None:
            raise ConfigurationNotFound(configuration_id)
        body = current.to_dict()
        changes = Configuration.wire_keys(changes)
        mapping = changes.get("utbmsMapping")
        if isinstance(mapping, dict) and not ({"activityCodes", "defaultActivityCode"} & set(mapping)):
            # a flat mapping replaces the codes only
            changes["utbmsMapping"] = dict(body["utbmsMapping"], activityCodes=mapping)
        body.update({k: v for k, v in changes.items() if k not in ("id", "createdAt")})
        body["updatedAt"] = utc_now()
        cfg = Configuration.from_dict(body)
        self._write(cfg, insert=False)
        logger.info("Updated LEDES configuration %s", cfg.id)
        return cfg

    def delete(self, configuration_id: str) -> bool:
        with self._transaction() as conn:
            cur = conn.execute("DELETE FROM ledes_configurations WHERE id=?", (configuration_id,))
        if cur.rowcount:
            logger.info("Deleted LEDES configuration %s", configuration_id)
        return cur.rowcount > 0

    def seed_from_yaml(self, path) -> int:
        """Insert configurations listed under ``configurations:`` whose id is not stored yet."""
        p = Path(path)
        if not p.exists():
            return 0
        data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
        added = 0
        for item in data.get("configurations", []):
            if item.get("id") and self.get(item["id"]) is not None:
                continue
            self.create(item)
            added += 1
        logger.info("Seeded %d LEDES configurations from %s", added, p)
        return added


class ExportHistory(_SqliteStore):

    def __init__(self, db_path: str = ":memory:", limit: int = 50, conn: Optional[sqlite3.Connection] = None):
        super().__init__(db_path, conn)
        self.limit = limit

    def append(self, result: ExportResult) -> None:
        with self._transaction() as conn:
            conn.execute("INSERT INTO ledes_export_history(exported_at, success, body) VALUES (?,?,?)",
                         (result.export_date, int(result.success), json.dumps(result.to_dict())))
            conn.execute("DELETE FROM ledes_export_history WHERE seq NOT IN "
                         "(SELECT seq FROM ledes_export_history ORDER BY seq DESC LIMIT ?)", (self.limit,))
        logger.info("Recorded export %s (success=%s)", result.file_name or "<none>", result.success)

    def list(self, limit: Optional[int] = None) -> List[ExportResult]:
        with self._lock:
            rows = self._conn.execute("SELECT body FROM ledes_export_history ORDER BY seq DESC LIMIT ?",
                                      (limit if limit is not None else self.limit,)).fetchall()
        return [ExportResult.from_dict(json.loads(r[0])) for r in rows]

    def clear(self) -> None:
        with self._transaction() as conn:
            conn.execute("DELETE FROM ledes_export_history")
