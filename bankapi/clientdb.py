"""Access to the client table."""

from __future__ import annotations

from typing import Any

from .database import Table


class ClientTable(Table):
    """Clients, listed together with whether each one holds an account."""

    table_name = "clientdb"

    def get_all(self) -> list[dict[str, Any]]:
        """Return every client with a ``hasAccount`` flag of 1 or 0."""
        return self._fetch_all(
            "SELECT c.*, "
            "CASE WHEN EXISTS ("
            "  SELECT 1 FROM accountdb AS a WHERE a.client_id = c.id"
            ") THEN 1 ELSE 0 END AS hasAccount "
            f"FROM {self.table_name} AS c"
        )