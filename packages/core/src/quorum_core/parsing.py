"""Best-effort extraction of a SynthesisResult from model output.

The synthesis model is asked for a fenced JSON block but is not bound to
produce one, so three strategies are tried in order and the first that
decodes wins:

    1. the first ``` / ```json fenced block
    2. the whole trimmed text
    3. the greedy first-"{"-to-last-"}" substring

The third tier mis-brackets when the text holds several independent objects
or literal braces in prose. That limitation is accepted.
"""

from __future__ import annotations

import json
import logging
import re

from quorum_core.models import SynthesisResult

logger = logging.getLogger(__name__)

_FENCED_BLOCK_RE = re.compile(r"```(?:json)?\s*\n?([\s\S]*?)\n?```")
_BRACED_RE = re.compile(r"\{[\s\S]*\}")


def _decode(candidate: str) -> SynthesisResult | None:
    try:
        return SynthesisResult.from_dict(json.loads(candidate))
    except (json.JSONDecodeError, TypeError, ValueError):
        return None


def parse_synthesis(text: str) -> SynthesisResult | None:
    """Return the parsed result, or None when no tier yields a valid object.

    Never raises. None means "render the raw text instead".
    """
    if not text or not text.strip():
        return None

    match = _FENCED_BLOCK_RE.search(text)
    if match:
        result = _decode(match.group(1).strip())
        if result is not None:
            return result
        logger.debug("Fenced block did not decode; trying the full text.")

    result = _decode(text.strip())
    if result is not None:
        return result

    match = _BRACED_RE.search(text)
    if match:
        result = _decode(match.group(0))
        if result is not None:
            return result

    logger.debug("No parseable synthesis object found: %s", text[:200])
    return None
