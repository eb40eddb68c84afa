"""Concurrent fan-out of one prompt to every configured reviewer."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Callable, Sequence

from quorum_core.invoker import invoke
from quorum_core.models import FAILURE_MARKER, ReviewerOutcome, ReviewerSpec

if TYPE_CHECKING:
    from quorum_core.providers.registry import ModelRegistry
    from quorum_core.tools import Tool

logger = logging.getLogger(__name__)

# on_progress(reviewer_name, status, detail) with status in {"started", "done", "failed"}
ProgressCallback = Callable[[str, str, str], None]


def _notify(on_progress: ProgressCallback | None, name: str, status: str, detail: str = "") -> None:
    if on_progress is None:
        return
    try:
        on_progress(name, status, detail)
    except Exception as e:
        # Progress is informational only; it must never affect an outcome.
        logger.debug("Progress callback failed for %s: %s", name, e)


async def run_all(
    registry: ModelRegistry,
    specs: Sequence[ReviewerSpec],
    prompt: str,
    *,
    system_prompt: str,
    tools: list[Tool] | None = None,
    on_progress: ProgressCallback | None = None,
) -> list[ReviewerOutcome]:
    """Run every reviewer concurrently and return one outcome per spec, in spec order.

    Each reviewer is isolated: an exception becomes a failure outcome for that
    reviewer only, and the others keep running. The call returns once every
    reviewer has settled.
    """

    async def _run_one(spec: ReviewerSpec) -> ReviewerOutcome:
        _notify(on_progress, spec.name, "started")
        try:
            text = await invoke(registry, spec, prompt, system_prompt=system_prompt, tools=tools)
        except Exception as e:
            logger.error("%s (%s) review failed: %s", spec.name, spec.ref, e)
            logger.debug("Traceback for %s", spec.name, exc_info=True)
            outcome = ReviewerOutcome(name=spec.name, text=f"{FAILURE_MARKER} Review failed: {e}")
        else:
            outcome = ReviewerOutcome(name=spec.name, text=text)

        if outcome.succeeded:
            _notify(on_progress, spec.name, "done")
        else:
            _notify(on_progress, spec.name, "failed", outcome.text)
        return outcome

    logger.info("Starting %d reviewer(s) in parallel", len(specs))
    # _run_one never raises, so gather settles every reviewer and keeps input order.
    outcomes = await asyncio.gather(*(_run_one(spec) for spec in specs))
    logger.info("%d/%d reviewer(s) succeeded", sum(o.succeeded for o in outcomes), len(outcomes))
    return list(outcomes)
