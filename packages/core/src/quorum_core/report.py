"""Markdown report assembly.

Produces the two in-memory artifacts of a run: the human-readable document
and, when synthesis parsed, the structured items record. Writing them to disk
is the store's job.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Sequence

from quorum_core.models import RECOMMENDATIONS, Report, ReviewerOutcome, SynthesisOutcome, SynthesisResult

_SEVERITY_ICON = {
    "critical": "🔴",
    "major": "🟠",
    "minor": "🟡",
    "suggestion": "🔵",
}

_GROUP_LABELS = {
    "must-fix": "🔴 Must fix",
    "recommended": "🟠 Recommended",
    "optional": "🔵 Optional",
}


def format_synthesis(result: SynthesisResult) -> str:
    """Render a SynthesisResult as markdown, grouped by recommendation tier.

    Items keep their received order inside each group. The synthesis model
    sorts them; they are not re-sorted here.
    """
    verdict = "✅ approve" if result.verdict == "approve" else f"🔄 {result.verdict or 'request-changes'}"
    lines = [f"**Score**: {result.score}/10 | **Verdict**: {verdict}", "", result.summary, ""]

    groups = [(_GROUP_LABELS[r], [i for i in result.items if i.recommendation == r]) for r in RECOMMENDATIONS]
    # Anything the model labelled outside the known tiers is still shown.
    others = [i for i in result.items if i.recommendation not in RECOMMENDATIONS]
    groups.append(("⚪ Other", others))

    for label, items in groups:
        if not items:
            continue
        lines += [f"### {label}", ""]
        for item in items:
            icon = _SEVERITY_ICON.get(item.severity, "⚪")
            lines += [
                f"#### {icon} #{item.id} {item.title}",
                f"- **Severity**: {item.severity} | **Location**: `{item.location}` "
                f"| **Reported by**: {', '.join(item.reporters)}",
                "",
                item.description,
                "",
                f"> **Suggestion**: {item.suggestion}",
                "",
            ]

    return "\n".join(lines)


def assemble_report(
    target_label: str,
    base_ref: str,
    focus: str,
    outcomes: Sequence[ReviewerOutcome],
    synthesis: SynthesisOutcome,
    generated_at: datetime | None = None,
) -> Report:
    generated_at = generated_at or datetime.now(timezone.utc)

    lines = [
        f"# Code review: {target_label}",
        f"> Base: {base_ref} | Generated: {generated_at.isoformat()}",
    ]
    if focus:
        lines.append(f"> Focus: {focus}")
    lines += ["", "---", ""]

    for outcome in outcomes:
        if not outcome.succeeded:
            continue
        lines += [f"## {outcome.name}'s review", "", outcome.text, "", "---", ""]

    lines += ["## Synthesis", ""]
    if synthesis.result is not None:
        lines.append(format_synthesis(synthesis.result))
    else:
        lines.append(synthesis.raw)

    items = synthesis.result.to_dict() if synthesis.result is not None else None
    return Report(document="\n".join(lines), items=items)
