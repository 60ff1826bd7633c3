"""Access to the announcement view log table."""

from __future__ import annotations

from typing import Any

from .database import Table


class AnnounceLogTable(Table):
    """Records of announcements being viewed, summarised per announcement."""

    table_name = "announcelogdb"

    def get_all(self) -> list[dict[str, Any]]:
        """Return each logged announcement with its record count, busiest first."""
        summary = (
            "SELECT ann.id AS announce_id, ann.title AS title, "
            "COUNT(entry.id) AS record_count "
            f"FROM announcedb AS ann INNER JOIN {self.table_name} AS entry "
            "ON entry.announce_id = ann.id "
            "GROUP BY ann.id, ann.title "
            "ORDER BY record_count DESC"
        )
        return self._fetch_all(summary)