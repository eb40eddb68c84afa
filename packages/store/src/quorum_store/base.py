"""Abstract store interface.

The CLI depends on BaseStore rather than a concrete backend, so report
persistence can move (object storage, a shared drive) without touching CLI
code.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from quorum_store.models import SavedReport

_TIMESTAMP_CHARS_RE = re.compile(r"[:.]")


def report_basename(label: str, now: datetime | None = None) -> str:
    """Name shared by a run's document and items file: ``{label}_{timestamp}``.

    ``feature/login`` at 2026-10-19T08:30:05.123Z → ``feature-login_2026-10-19T08-30-05``.
    """
    now = now or datetime.now(timezone.utc)
    timestamp = _TIMESTAMP_CHARS_RE.sub("-", now.astimezone(timezone.utc).isoformat())[:19]
    return f"{label.replace('/', '-')}_{timestamp}"


class BaseStore(ABC):
    """Pluggable persistence for review reports."""

    @abstractmethod
    def save(self, name: str, document: str, items: dict | None = None) -> SavedReport:
        """Persist a report document and, when present, its structured items."""

    @abstractmethod
    def list_reports(self) -> list[SavedReport]:
        """Return saved reports, oldest first.

        Returns an empty list if nothing has been saved and never raises.
        """

    def close(self) -> None:
        """Release any resources held by the store.

        Default is a no-op so callers can always call close() safely.
        """
