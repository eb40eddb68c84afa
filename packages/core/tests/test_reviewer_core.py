"""Tests for the core review pipeline: run_review and its stage transitions."""

import json

import pytest

from quorum_core.models import FAILURE_MARKER, ChangeSet
from quorum_core.reviewer import AllReviewersFailedError, Stage, _truncate_diff, run_review

DIFF = "diff --git a/app.py b/app.py\n--- a/app.py\n+++ b/app.py\n@@ -1 +1 @@\n-x = 1\n+x = 2\n"
STAT = " app.py | 2 +-\n 1 file changed, 1 insertion(+), 1 deletion(-)\n"
LOG = "abc1234 Bump x\n"

SYNTHESIS_JSON = {
    "summary": "Small, safe change.",
    "score": 7,
    "verdict": "approve",
    "items": [
        {
            "id": 1,
            "severity": "major",
            "file": "app.py",
            "line": "1",
            "title": "Magic number",
            "description": "2 has no name.",
            "suggestion": "Extract a constant.",
            "recommendation": "recommended",
            "reporters": ["Alpha", "Gamma"],
        },
        {
            "id": 2,
            "severity": "suggestion",
            "file": "app.py",
            "title": "Add a test",
            "description": "No test covers x.",
            "suggestion": "Add one.",
            "recommendation": "optional",
            "reporters": ["Gamma"],
        },
    ],
}


class StubSource:
    def __init__(self, diff=DIFF, stat=STAT, log=LOG, label="feature/x"):
        self.changes = ChangeSet(diff=diff, stat=stat, log=log)
        self.label = label
        self.collected = []

    def resolve(self, ref):
        return "origin/main" if ref == "main" else ref

    def branch_label(self, target_ref):
        return self.label if target_ref == "HEAD" else target_ref

    def collect(self, base_ref, target_ref):
        self.collected.append((base_ref, target_ref))
        return self.changes


def make_config(**overrides):
    config = {
        "reviewers": [
            {"name": "Alpha", "provider": "openai", "id": "alpha"},
            {"name": "Beta", "provider": "acme", "id": "x1"},
            {"name": "Gamma", "provider": "anthropic", "id": "gamma", "thinking": "high"},
        ],
        "synthesis": {"provider": "anthropic", "id": "synth"},
        "tools": [],
        "language": "English",
        "max_diff_chars": 200000,
    }
    config.update(overrides)
    return config


def _scripts(**extra):
    scripts = {
        "alpha": "Alpha: x = 2 is a magic number.",
        "gamma": "Gamma: magic number; add a test.",
        "synth": f"```json\n{json.dumps(SYNTHESIS_JSON)}\n```",
    }
    scripts.update(extra)
    return scripts


# ---------------------------------------------------------------------------
# run_review: happy path
# ---------------------------------------------------------------------------


class TestRunReview:
    @pytest.mark.asyncio
    async def test_partial_failure_still_produces_a_report(self, make_registry):
        registry = make_registry(_scripts())
        summary = await run_review(registry, StubSource(), make_config())

        assert summary.stage is Stage.DONE
        assert [o.name for o in summary.outcomes] == ["Alpha", "Beta", "Gamma"]
        assert summary.outcomes[1].text == f"{FAILURE_MARKER} Model not found: acme/x1"
        assert [o.name for o in summary.successful] == ["Alpha", "Gamma"]

        doc = summary.report.document
        assert doc.startswith("# Code review: feature/x")
        assert "> Base: origin/main" in doc
        assert "## Alpha's review" in doc
        assert "## Gamma's review" in doc
        assert "## Beta's review" not in doc
        assert "**Score**: 7/10 | **Verdict**: ✅ approve" in doc

        assert summary.report.items["score"] == 7
        assert [i["id"] for i in summary.report.items["items"]] == [1, 2]

    @pytest.mark.asyncio
    async def test_refs_are_resolved_before_collecting(self, make_registry):
        source = StubSource()
        summary = await run_review(make_registry(_scripts()), source, make_config(), target_ref="HEAD", base_ref="main")
        assert source.collected == [("origin/main", "HEAD")]
        assert summary.base_ref == "origin/main"
        assert summary.target_label == "feature/x"

    @pytest.mark.asyncio
    async def test_synthesis_sees_only_successful_reviews(self, make_registry):
        registry = make_registry(_scripts())
        await run_review(registry, StubSource(), make_config())

        prompt = registry.sessions_for("synth")[0].prompts[0]
        assert "## Alpha's review" in prompt
        assert "## Gamma's review" in prompt
        assert "Beta" not in prompt
        assert FAILURE_MARKER not in prompt

    @pytest.mark.asyncio
    async def test_every_reviewer_gets_the_same_prompt_with_focus(self, make_registry):
        registry = make_registry(_scripts())
        await run_review(registry, StubSource(), make_config(), focus="security")

        prompts = [registry.sessions_for(m)[0].prompts[0] for m in ("alpha", "gamma")]
        assert prompts[0] == prompts[1]
        assert "## Areas to focus on\nsecurity" in prompts[0]
        assert DIFF in prompts[0]
        assert "> Focus: security" not in prompts[0]

    @pytest.mark.asyncio
    async def test_unparsed_synthesis_keeps_raw_text(self, make_registry):
        registry = make_registry(_scripts(synth="I could not produce JSON, sorry."))
        summary = await run_review(registry, StubSource(), make_config())

        assert not summary.synthesis.parsed
        assert summary.report.items is None
        assert "I could not produce JSON, sorry." in summary.report.document

    @pytest.mark.asyncio
    async def test_missing_synthesis_model_falls_back_to_concatenation(self, make_registry):
        scripts = _scripts()
        del scripts["synth"]
        summary = await run_review(make_registry(scripts), StubSource(), make_config())

        assert summary.report.items is None
        assert "# Alpha\n\nAlpha: x = 2 is a magic number." in summary.synthesis.raw

    @pytest.mark.asyncio
    async def test_stage_transitions_in_order(self, make_registry):
        stages = []
        await run_review(
            make_registry(_scripts()),
            StubSource(),
            make_config(),
            on_stage=lambda stage, detail: stages.append((stage, detail)),
        )
        assert [s for s, _ in stages] == [
            Stage.IDLE,
            Stage.GATHERING,
            Stage.SYNTHESIZING,
            Stage.ASSEMBLING,
            Stage.DONE,
        ]
        assert dict(stages)[Stage.GATHERING] == "1 file changed, 1 insertion(+), 1 deletion(-)"
        assert dict(stages)[Stage.SYNTHESIZING] == "2/3 review(s)"


# ---------------------------------------------------------------------------
# run_review: early exits
# ---------------------------------------------------------------------------


class TestRunReviewEarlyExit:
    @pytest.mark.asyncio
    async def test_no_changes_returns_none_without_calling_models(self, make_registry):
        registry = make_registry(_scripts())
        summary = await run_review(registry, StubSource(diff="  \n", stat="", log=""), make_config())
        assert summary is None
        assert registry.sessions == []

    @pytest.mark.asyncio
    async def test_all_reviewers_failed_aborts_before_synthesis(self, make_registry):
        registry = make_registry(_scripts(alpha=RuntimeError("429"), gamma=RuntimeError("500")))
        stages = []

        with pytest.raises(AllReviewersFailedError) as exc_info:
            await run_review(
                registry,
                StubSource(),
                make_config(),
                on_stage=lambda stage, detail: stages.append(stage),
            )

        assert len(exc_info.value.outcomes) == 3
        assert not any(o.succeeded for o in exc_info.value.outcomes)
        assert "Model not found: acme/x1" in str(exc_info.value)
        assert registry.sessions_for("synth") == []
        assert stages[-1] is Stage.ABORT

    @pytest.mark.asyncio
    async def test_empty_roster_rejected(self, make_registry):
        with pytest.raises(ValueError, match="No reviewers configured"):
            await run_review(make_registry({}), StubSource(), make_config(reviewers=[]))


class TestTruncateDiff:
    def test_short_diff_untouched(self):
        changes = ChangeSet(diff=DIFF, stat=STAT, log=LOG)
        assert _truncate_diff(changes, 10_000) is changes

    def test_long_diff_is_cut_and_marked(self):
        changes = ChangeSet(diff="x" * 50, stat=STAT, log=LOG)
        truncated = _truncate_diff(changes, 10)
        assert truncated.diff.startswith("x" * 10)
        assert truncated.diff.endswith("[diff truncated]")
        assert truncated.stat == STAT

    def test_zero_disables_truncation(self):
        changes = ChangeSet(diff="x" * 50, stat=STAT, log=LOG)
        assert _truncate_diff(changes, 0) is changes
