"""Review pipeline data models.

Plain dataclasses shared by the pool, the synthesizer and the report
assembler. ReviewItem and SynthesisResult are only ever built from parsed
synthesis output, never from raw reviewer text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

FAILURE_MARKER = "❌"

SEVERITIES = ("critical", "major", "minor", "suggestion")
RECOMMENDATIONS = ("must-fix", "recommended", "optional")
VERDICTS = ("approve", "request-changes")

_LEADING_INT_RE = re.compile(r"\s*(-?\d+)")


def _as_int(value, default: int) -> int:
    """Lenient int: 7, 7.5, "7" and "7/10" all give 7; anything else gives default."""
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        # json.loads accepts NaN and Infinity.
        return int(value) if value == value and abs(value) != float("inf") else default
    if isinstance(value, str):
        match = _LEADING_INT_RE.match(value)
        if match:
            return int(match.group(1))
    return default


@dataclass(frozen=True)
class ReviewerSpec:
    """One configured reviewer identity."""

    name: str
    provider: str
    model_id: str
    thinking: str | None = None  # "off" | "minimal" | "low" | "medium" | "high" | "xhigh"

    @property
    def ref(self) -> str:
        return f"{self.provider}/{self.model_id}"


@dataclass(frozen=True)
class ReviewerOutcome:
    name: str
    text: str

    @property
    def succeeded(self) -> bool:
        return not self.text.startswith(FAILURE_MARKER)


@dataclass
class ReviewItem:
    id: int
    severity: str
    file: str
    title: str
    description: str
    suggestion: str
    recommendation: str
    reporters: list[str] = field(default_factory=list)
    line: str | None = None

    @classmethod
    def from_dict(cls, d: dict, position: int = 0) -> ReviewItem:
        """Build an item from decoded JSON; a missing or non-numeric id becomes ``position``."""
        if not isinstance(d, dict):
            raise TypeError(f"review item must be an object, got {type(d).__name__}")
        line = d.get("line")
        reporters = d.get("reporters") or []
        if isinstance(reporters, str):
            reporters = [reporters]
        return cls(
            id=_as_int(d.get("id"), position),
            severity=str(d.get("severity", "minor")),
            file=str(d.get("file", "")),
            # Models emit line as "42", 42 or "10-20"; keep it as text.
            line=str(line) if line not in (None, "") else None,
            title=str(d.get("title", "")),
            description=str(d.get("description", "")),
            suggestion=str(d.get("suggestion", "")),
            recommendation=str(d.get("recommendation", "optional")),
            reporters=[str(r) for r in reporters],
        )

    def to_dict(self) -> dict:
        d = {
            "id": self.id,
            "severity": self.severity,
            "file": self.file,
            "title": self.title,
            "description": self.description,
            "suggestion": self.suggestion,
            "recommendation": self.recommendation,
            "reporters": list(self.reporters),
        }
        if self.line is not None:
            d["line"] = self.line
        return d

    @property
    def location(self) -> str:
        return f"{self.file}:{self.line}" if self.line else self.file


@dataclass
class SynthesisResult:
    summary: str
    score: int
    verdict: str  # "approve" | "request-changes"
    items: list[ReviewItem] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d: dict) -> SynthesisResult:
        """Build a result from decoded JSON.

        Raises TypeError/ValueError when the payload is not shaped like a
        synthesis result, so the parser can fall through to its next tier.
        """
        if not isinstance(d, dict):
            raise TypeError(f"synthesis result must be an object, got {type(d).__name__}")
        items = d.get("items", [])
        if not isinstance(items, list):
            raise TypeError("'items' must be a list")
        parsed = [ReviewItem.from_dict(item, n) for n, item in enumerate(items, 1)]
        # Ids must be unique within a result; renumber in order if the model repeated one.
        if len({i.id for i in parsed}) != len(parsed):
            for n, item in enumerate(parsed, 1):
                item.id = n
        return cls(
            summary=str(d.get("summary", "")),
            score=_as_int(d.get("score"), 0),
            verdict=str(d.get("verdict", "")),
            items=parsed,
        )

    def to_dict(self) -> dict:
        return {
            "summary": self.summary,
            "score": self.score,
            "verdict": self.verdict,
            "items": [i.to_dict() for i in self.items],
        }


@dataclass(frozen=True)
class SynthesisOutcome:
    """Either a parsed SynthesisResult or only the raw synthesis text.

    ``raw`` is always populated so callers have something to render.
    """

    result: SynthesisResult | None
    raw: str

    @property
    def parsed(self) -> bool:
        return self.result is not None


@dataclass(frozen=True)
class ChangeSet:
    diff: str
    stat: str
    log: str

    @property
    def is_empty(self) -> bool:
        return not self.diff.strip()

    @property
    def stat_summary(self) -> str:
        """Last line of --stat output, e.g. '3 files changed, 10 insertions(+)'."""
        lines = self.stat.strip().splitlines()
        return lines[-1].strip() if lines else ""


@dataclass(frozen=True)
class Report:
    document: str
    items: dict | None = None  # SynthesisResult.to_dict() when synthesis parsed
