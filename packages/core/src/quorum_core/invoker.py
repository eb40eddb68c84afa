"""Single agent invocation: prompt in, accumulated text out."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from quorum_core.models import FAILURE_MARKER
from quorum_core.providers.base import TextDelta

if TYPE_CHECKING:
    from quorum_core.models import ReviewerSpec
    from quorum_core.providers.base import SessionEvent
    from quorum_core.providers.registry import ModelRegistry
    from quorum_core.tools import Tool

logger = logging.getLogger(__name__)


async def invoke(
    registry: ModelRegistry,
    spec: ReviewerSpec,
    prompt: str,
    *,
    system_prompt: str,
    tools: list[Tool] | None = None,
) -> str:
    """Run one prompt against the reviewer's model and return the streamed text.

    An unresolvable model is reported as a FAILURE_MARKER string rather than
    raised. Errors from the call itself propagate. The session lives only for
    this call and is disposed on every exit path.
    """
    model = registry.find(spec.provider, spec.model_id)
    if model is None:
        return f"{FAILURE_MARKER} Model not found: {spec.provider}/{spec.model_id}"

    session = registry.create_session(model, system_prompt, tools=tools, thinking=spec.thinking)
    chunks: list[str] = []

    def _on_event(event: SessionEvent) -> None:
        if isinstance(event, TextDelta):
            chunks.append(event.delta)

    session.subscribe(_on_event)
    try:
        await session.prompt(prompt)
    finally:
        await session.dispose()

    logger.debug("%s returned %d chars", spec.ref, sum(len(c) for c in chunks))
    return "".join(chunks)
