"""Access to the account table and its balance operations."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from .database import Action, Table, resolve_card_uid

log = logging.getLogger(__name__)


class _Abort(Exception):
    """Raised inside a transaction to roll it back."""


def _payload(data: Mapping[str, Any] | None) -> Mapping[str, Any]:
    """Return the nested ``data`` object of a request body, or an empty one."""
    if data:
        inner = data.get("data")
        if isinstance(inner, Mapping):
            return inner
    return {}


class AccountTable(Table):
    """Bank accounts keyed by RFID card, with deposit, withdrawal and transfer."""

    table_name = "accountdb"
    key_column = "RFID_UUID"

    def get_by_condition(self, cond, value) -> dict[str, Any]:
        """Return the account whose card key equals ``cond``, flagged with ``success``.

        ``value`` is accepted for interface compatibility and not used.
        """
        row = self._fetch_one(
            f"SELECT * FROM {self.table_name} WHERE {self.key_column} = :id_value",
            {"id_value": cond},
        )
        if row:
            row["success"] = 1
        else:
            log.debug("no data found for %s = %s in %s", self.key_column, cond, self.table_name)
        return row

    def update(self, id, data) -> bool:
        """Apply the balance operation ``id`` using the request body's ``data`` object."""
        try:
            action = Action(id)
        except ValueError:
            raise ValueError(f"unknown balance action: {id!r}") from None
        recv = _payload(data)
        uid = recv.get("UID", "")
        amount = recv.get("amount", "")
        if action is Action.DEPOSIT:
            return self.deposit(uid, amount)
        if action is Action.WITHDRAW:
            return self.withdraw(uid, amount)
        return self.transfer(uid, recv.get("targetUID", ""), amount)

    def deposit(self, uid, amount) -> bool:
        """Add ``amount`` to the account of card ``uid``; False if no account matched."""
        key = resolve_card_uid(uid)
        affected = self._write(
            f"UPDATE {self.table_name} SET balance = balance + :amount "
            f"WHERE {self.key_column} = :uid",
            {"amount": amount, "uid": key},
        )
        if affected == 0:
            log.debug("deposit failed, no account for %s", key)
            return False
        log.debug("deposit success uid=%s amount=%s", uid, amount)
        return True

    def withdraw(self, uid, amount) -> bool:
        """Take ``amount`` from card ``uid``; False if unknown or funds are short."""
        key = resolve_card_uid(uid)
        affected = self._write(
            f"UPDATE {self.table_name} SET balance = balance - :amount "
            f"WHERE {self.key_column} = :uid AND balance >= :amount",
            {"amount": amount, "uid": key},
        )
        if affected == 0:
            log.debug("withdraw failed (insufficient funds) uid=%s", uid)
            return False
        log.debug("withdraw success uid=%s amount=%s", uid, amount)
        return True

    def transfer(self, uid, target_uid, amount) -> bool:
        """Move ``amount`` from card ``uid`` to account ``target_uid`` atomically.

        The sender is given as a card UID; the receiver as an account key.
        Returns False, with nothing changed, if either side fails.
        """
        sender = resolve_card_uid(uid)
        try:
            with self.manager.transaction() as conn:
                taken = self._write(
                    f"UPDATE {self.table_name} SET balance = balance - :amount "
                    f"WHERE {self.key_column} = :uid AND balance >= :amount",
                    {"amount": amount, "uid": sender},
                    conn,
                )
                if taken == 0:
                    raise _Abort("withdraw failed (insufficient funds)")
                given = self._write(
                    f"UPDATE {self.table_name} SET balance = balance + :amount "
                    f"WHERE {self.key_column} = :uid",
                    {"amount": amount, "uid": target_uid},
                    conn,
                )
                if given == 0:
                    raise _Abort("deposit failed (receiver not found)")
        except _Abort as exc:
            log.warning("transfer rolled back: %s", exc)
            return False
        return True