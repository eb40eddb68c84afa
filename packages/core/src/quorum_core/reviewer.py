"""Core multi-reviewer orchestration.

    Idle → Gathering → Synthesizing → Assembling → Done
                └──→ Abort (every reviewer failed)

run_review drives one pass through that state machine and hands back a
ReviewSummary. Persisting the report is left to the caller so quorum_core has
no dependency on the store layer.
"""

from __future__ import annotations

import enum
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Protocol

from quorum_core.config import load_reviewers, load_synthesis_model
from quorum_core.models import ChangeSet, Report, ReviewerOutcome, SynthesisOutcome
from quorum_core.pool import ProgressCallback, run_all
from quorum_core.prompts import build_review_prompt, reviewer_system_prompt
from quorum_core.report import assemble_report
from quorum_core.synthesis import synthesize
from quorum_core.tools import build_tools

if TYPE_CHECKING:
    from quorum_core.providers.registry import ModelRegistry

logger = logging.getLogger(__name__)


class Stage(enum.Enum):
    IDLE = "idle"
    GATHERING = "gathering"
    ABORT = "abort"
    SYNTHESIZING = "synthesizing"
    ASSEMBLING = "assembling"
    DONE = "done"


class AllReviewersFailedError(RuntimeError):
    """Every reviewer failed; there is nothing to synthesize."""

    def __init__(self, outcomes: list[ReviewerOutcome]):
        self.outcomes = outcomes
        details = "; ".join(f"{o.name}: {o.text}" for o in outcomes)
        super().__init__(f"All {len(outcomes)} reviewer(s) failed. {details}")


class ChangeSource(Protocol):
    def resolve(self, ref: str) -> str: ...

    def branch_label(self, target_ref: str) -> str: ...

    def collect(self, base_ref: str, target_ref: str) -> ChangeSet: ...


@dataclass
class ReviewSummary:
    """Result returned by run_review: everything the CLI needs to persist and report.

    Decoupled from quorum_store so quorum_core has no dependency on the store layer.
    """

    target_label: str
    base_ref: str
    target_ref: str
    outcomes: list[ReviewerOutcome]
    synthesis: SynthesisOutcome
    report: Report
    stage: Stage = Stage.DONE
    reviewed_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def successful(self) -> list[ReviewerOutcome]:
        return [o for o in self.outcomes if o.succeeded]


# on_stage(stage, detail): informational narration hook for each transition.
StageCallback = Callable[[Stage, str], None]


def _enter(stage: Stage, on_stage: StageCallback | None = None, detail: str = "") -> Stage:
    logger.debug("Pipeline stage: %s %s", stage.value, detail)
    if on_stage is not None:
        on_stage(stage, detail)
    return stage


def _truncate_diff(changes: ChangeSet, max_chars: int | None) -> ChangeSet:
    if not max_chars or len(changes.diff) <= max_chars:
        return changes
    logger.warning("Diff is %d chars; truncating to %d", len(changes.diff), max_chars)
    return ChangeSet(diff=changes.diff[:max_chars] + "\n... [diff truncated]", stat=changes.stat, log=changes.log)


async def run_review(
    registry: ModelRegistry,
    source: ChangeSource,
    config: dict,
    target_ref: str = "HEAD",
    base_ref: str = "main",
    focus: str = "",
    cwd: str | None = None,
    on_progress: ProgressCallback | None = None,
    on_stage: StageCallback | None = None,
) -> ReviewSummary | None:
    """Run the full multi-reviewer pipeline and return a ReviewSummary.

    Returns None when there are no changes between the two refs.
    Raises AllReviewersFailedError when no reviewer produced a review; the
    synthesizer is never called in that case.
    """
    _enter(Stage.IDLE, on_stage)
    reviewers = load_reviewers(config)
    synthesis_spec = load_synthesis_model(config)
    language = config.get("language", "English")
    tools = build_tools(config.get("tools", []), cwd or os.getcwd())

    resolved_base = source.resolve(base_ref)
    resolved_target = source.resolve(target_ref)
    changes = source.collect(resolved_base, resolved_target)
    if changes.is_empty:
        logger.info("No changes between %s and %s", resolved_base, resolved_target)
        return None
    changes = _truncate_diff(changes, config.get("max_diff_chars"))

    _enter(Stage.GATHERING, on_stage, changes.stat_summary)
    prompt = build_review_prompt(changes, focus=focus, language=language)
    outcomes = await run_all(
        registry,
        reviewers,
        prompt,
        system_prompt=reviewer_system_prompt(language),
        tools=tools,
        on_progress=on_progress,
    )

    successful = [o for o in outcomes if o.succeeded]
    if not successful:
        _enter(Stage.ABORT, on_stage)
        raise AllReviewersFailedError(outcomes)

    _enter(Stage.SYNTHESIZING, on_stage, f"{len(successful)}/{len(outcomes)} review(s)")
    synthesis = await synthesize(registry, successful, synthesis_spec, language=language)

    _enter(Stage.ASSEMBLING, on_stage)
    target_label = source.branch_label(target_ref)
    report = assemble_report(target_label, resolved_base, focus, outcomes, synthesis)

    return ReviewSummary(
        target_label=target_label,
        base_ref=resolved_base,
        target_ref=resolved_target,
        outcomes=outcomes,
        synthesis=synthesis,
        report=report,
        stage=_enter(Stage.DONE, on_stage),
    )
