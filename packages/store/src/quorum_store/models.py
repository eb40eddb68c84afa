"""Persisted report data models.

Decoupled from quorum_core so the store layer can be used independently
and quorum_core has no knowledge of persistence concerns.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class SavedReport:
    """Paths of one persisted review run.

    ``items_path`` is None when synthesis did not parse and only the markdown
    document was written.
    """

    name: str
    report_path: str
    items_path: str | None = None
    verdict: str | None = None
    score: int | None = None
    total_items: int | None = None

    def to_summary_line(self) -> dict:
        return {"reportPath": self.report_path, "itemsPath": self.items_path}
