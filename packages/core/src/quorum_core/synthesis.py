"""Reduce several free-form reviews into one structured SynthesisResult."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Sequence

from quorum_core.invoker import invoke
from quorum_core.models import SynthesisOutcome
from quorum_core.parsing import parse_synthesis
from quorum_core.prompts import build_synthesis_prompt, synthesis_system_prompt

if TYPE_CHECKING:
    from quorum_core.models import ReviewerOutcome, ReviewerSpec
    from quorum_core.providers.registry import ModelRegistry

logger = logging.getLogger(__name__)


def concatenate_reviews(reviews: Sequence[ReviewerOutcome]) -> str:
    """Lossless fallback used when there is no synthesis result to render."""
    return "\n\n---\n\n".join(f"# {r.name}\n\n{r.text}" for r in reviews)


async def synthesize(
    registry: ModelRegistry,
    reviews: Sequence[ReviewerOutcome],
    spec: ReviewerSpec,
    *,
    language: str = "English",
) -> SynthesisOutcome:
    """Issue one synthesis call over the successful reviews.

    ``reviews`` must already be filtered to successful outcomes. The returned
    outcome always carries renderable raw text:
      - synthesis model unavailable → concatenated reviews, no model call
      - synthesis call raised        → concatenated reviews
      - output did not parse         → the model's raw output
    """
    if registry.find(spec.provider, spec.model_id) is None:
        logger.warning("Synthesis model %s is not available; reports will contain the individual reviews.", spec.ref)
        return SynthesisOutcome(result=None, raw=concatenate_reviews(reviews))

    prompt = build_synthesis_prompt(reviews, language=language)
    try:
        raw = await invoke(registry, spec, prompt, system_prompt=synthesis_system_prompt(language))
    except Exception as e:
        logger.error("Synthesis with %s failed: %s", spec.ref, e)
        return SynthesisOutcome(result=None, raw=concatenate_reviews(reviews))

    result = parse_synthesis(raw)
    if result is None:
        logger.warning("Could not parse synthesis output as JSON; the raw text will be saved instead.")
    return SynthesisOutcome(result=result, raw=raw)
