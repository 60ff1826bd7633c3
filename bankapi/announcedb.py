"""Access to the announcement table."""

from __future__ import annotations

from .database import Table


class AnnounceTable(Table):
    """Announcements, with the generic table operations."""

    table_name = "announcedb"