"""Tests for the synthesis step and its deterministic fallbacks."""

import json

import pytest

from quorum_core.models import ReviewerOutcome, ReviewerSpec
from quorum_core.synthesis import concatenate_reviews, synthesize

SYNTH = ReviewerSpec(name="Synthesis", provider="anthropic", model_id="synth", thinking="high")

REVIEWS = [
    ReviewerOutcome(name="Alpha", text="Null check missing in parse()."),
    ReviewerOutcome(name="Gamma", text="parse() crashes on None; also rename x."),
]

PAYLOAD = {
    "summary": "One real bug.",
    "score": 6,
    "verdict": "request-changes",
    "items": [
        {
            "id": 1,
            "severity": "critical",
            "file": "src/parse.py",
            "line": "10",
            "title": "None not handled",
            "description": "parse() dereferences None.",
            "suggestion": "Return early on None.",
            "recommendation": "must-fix",
            "reporters": ["Alpha", "Gamma"],
        }
    ],
}


class TestConcatenateReviews:
    def test_each_review_under_its_own_heading(self):
        text = concatenate_reviews(REVIEWS)
        assert text == (
            "# Alpha\n\nNull check missing in parse().\n\n---\n\n# Gamma\n\nparse() crashes on None; also rename x."
        )

    def test_single_review_has_no_separator(self):
        assert "---" not in concatenate_reviews(REVIEWS[:1])


class TestSynthesize:
    @pytest.mark.asyncio
    async def test_parsed_result(self, make_registry):
        registry = make_registry({"synth": f"```json\n{json.dumps(PAYLOAD)}\n```"})
        outcome = await synthesize(registry, REVIEWS, SYNTH)

        assert outcome.parsed
        assert outcome.result.verdict == "request-changes"
        assert outcome.result.items[0].reporters == ["Alpha", "Gamma"]
        assert outcome.raw.startswith("```json")

    @pytest.mark.asyncio
    async def test_unavailable_model_falls_back_without_a_call(self, make_registry):
        registry = make_registry({})
        outcome = await synthesize(registry, REVIEWS, SYNTH)

        assert not outcome.parsed
        assert outcome.raw == concatenate_reviews(REVIEWS)
        assert registry.sessions == []

    @pytest.mark.asyncio
    async def test_failed_call_falls_back_to_concatenation(self, make_registry):
        registry = make_registry({"synth": RuntimeError("overloaded")})
        outcome = await synthesize(registry, REVIEWS, SYNTH)

        assert not outcome.parsed
        assert outcome.raw == concatenate_reviews(REVIEWS)
        assert registry.sessions[0].closed

    @pytest.mark.asyncio
    async def test_unparseable_output_keeps_raw_text(self, make_registry):
        registry = make_registry({"synth": "Both reviewers agree the change is fine."})
        outcome = await synthesize(registry, REVIEWS, SYNTH)

        assert outcome.result is None
        assert outcome.raw == "Both reviewers agree the change is fine."

    @pytest.mark.asyncio
    async def test_prompt_carries_every_review_and_the_rules(self, make_registry):
        registry = make_registry({"synth": json.dumps(PAYLOAD)})
        await synthesize(registry, REVIEWS, SYNTH, language="Japanese")

        session = registry.sessions[0]
        prompt = session.prompts[0]
        assert "## Alpha's review" in prompt
        assert "## Gamma's review" in prompt
        assert "Null check missing in parse()." in prompt
        assert "2 reviewer(s)" in prompt
        assert '"recommendation"' in prompt
        assert "7. Write summary, title, description and suggestion in Japanese" in prompt
        assert "Japanese" in session.system_prompt
        assert session.thinking == "high"
        assert session.tools == []

    @pytest.mark.asyncio
    async def test_exactly_one_synthesis_call(self, make_registry):
        registry = make_registry({"synth": json.dumps(PAYLOAD)})
        await synthesize(registry, REVIEWS, SYNTH)
        assert len(registry.sessions_for("synth")) == 1
