"""FileStore: reports as plain files next to the code under review.

Layout inside the output directory (default ``reviews/``):

    <label>_<timestamp>.md           the rendered report
    <label>_<timestamp>_items.json   the synthesis result, only when it parsed
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from quorum_store.base import BaseStore
from quorum_store.models import SavedReport

logger = logging.getLogger(__name__)

_ITEMS_SUFFIX = "_items.json"


class FileStore(BaseStore):
    def __init__(self, root: str = "reviews"):
        self.root = Path(root)

    def save(self, name: str, document: str, items: dict | None = None) -> SavedReport:
        self.root.mkdir(parents=True, exist_ok=True)

        report_path = self.root / f"{name}.md"
        report_path.write_text(document, encoding="utf-8")

        items_path = None
        if items is not None:
            items_path = self.root / f"{name}{_ITEMS_SUFFIX}"
            items_path.write_text(json.dumps(items, indent=2, ensure_ascii=False), encoding="utf-8")

        return SavedReport(
            name=name,
            report_path=str(report_path),
            items_path=str(items_path) if items_path else None,
            verdict=(items or {}).get("verdict"),
            score=(items or {}).get("score"),
            total_items=len(items.get("items", [])) if items else None,
        )

    def list_reports(self) -> list[SavedReport]:
        if not self.root.is_dir():
            return []
        reports = []
        for report_path in sorted(self.root.glob("*.md")):
            name = report_path.stem
            items_path = self.root / f"{name}{_ITEMS_SUFFIX}"
            items = self._read_items(items_path)
            reports.append(
                SavedReport(
                    name=name,
                    report_path=str(report_path),
                    items_path=str(items_path) if items_path.exists() else None,
                    verdict=items.get("verdict") if items else None,
                    score=items.get("score") if items else None,
                    total_items=len(items.get("items", [])) if items else None,
                )
            )
        # Names end in a fixed-width UTC timestamp; order by it rather than by label.
        return sorted(reports, key=lambda r: r.name.rsplit("_", 1)[-1])

    @staticmethod
    def _read_items(path: Path) -> dict | None:
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Could not read %s: %s", path, e)
            return None
        return data if isinstance(data, dict) else None
