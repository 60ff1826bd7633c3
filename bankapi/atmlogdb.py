"""Access to the ATM log table, which also carries per-card balances."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from .accountdb import AccountTable

log = logging.getLogger(__name__)


def _as_text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return 0


class AtmLogTable(AccountTable):
    """ATM sensor log entries and balances keyed by the ``UID`` column."""

    table_name = "atmlogdb"
    key_column = "UID"
    history_limit = 10

    def get_all(self) -> list[dict[str, Any]]:
        """Return the most recent log rows, newest first."""
        return self._fetch_all(
            f"SELECT * FROM {self.table_name} "
            f"ORDER BY id DESC LIMIT {int(self.history_limit)}"
        )

    def get_by_condition(self, cond, value) -> dict[str, Any]:
        """Return ``{"balance": ...}`` for the row matching UID ``cond`` and name ``value``."""
        row = self._fetch_one(
            f"SELECT balance FROM {self.table_name} "
            f"WHERE {self.key_column} = :uid_value AND name = :name_value",
            {"uid_value": cond, "name_value": value},
        )
        if not row:
            log.debug("no data found for %s = %s in %s", cond, value, self.table_name)
        return row

    def insert(self, data: Mapping[str, Any]) -> bool:
        """Log one sensor event from ``time``, ``clientName`` and ``SensorType``."""
        params = {
            "time": _as_text(data.get("time")),
            "clientName": _as_text(data.get("clientName")),
            "sensor": _as_int(data.get("SensorType")),
        }
        self._write(
            f"INSERT INTO {self.table_name} (dates, RFID_name, data_type) "
            "VALUES (:time, :clientName, :sensor)",
            params,
        )
        log.debug("insert success into %s", self.table_name)
        return True

    def update(self, id, data) -> bool:
        """Apply balance action ``id`` (deposit, withdraw, send) on the UID column."""
        return super().update(id, data)

    def deposit(self, uid, amount) -> bool:
        """Add ``amount`` to the row of card ``uid``; False if none matched."""
        return super().deposit(uid, amount)

    def withdraw(self, uid, amount) -> bool:
        """Take ``amount`` from card ``uid``; False if unknown or funds are short."""
        return super().withdraw(uid, amount)

    def transfer(self, uid, target_uid, amount) -> bool:
        """Move ``amount`` from card ``uid`` to UID ``target_uid`` atomically."""
        return super().transfer(uid, target_uid, amount)