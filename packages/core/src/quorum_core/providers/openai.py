from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

try:
    from openai import AsyncOpenAI as _AsyncOpenAI
except ImportError:
    _AsyncOpenAI = None  # type: ignore[assignment,misc]

from quorum_core.providers.base import BaseSession, TextDelta, ToolCall, ToolResult

if TYPE_CHECKING:
    from quorum_core.providers.registry import ModelHandle
    from quorum_core.tools import Tool

logger = logging.getLogger(__name__)

# Chat Completions only knows up to "high"; "off" sends no reasoning_effort at all.
_REASONING_EFFORT = {
    "minimal": "minimal",
    "low": "low",
    "medium": "medium",
    "high": "high",
    "xhigh": "high",
}


class OpenAISession(BaseSession):
    """Streaming Chat Completions session.

    Also serves the ``google`` provider: Gemini exposes an OpenAI-compatible
    endpoint, so the handle's base_url is all that changes.
    """

    def __init__(
        self,
        model: ModelHandle,
        system_prompt: str,
        tools: list[Tool] | None = None,
        thinking: str | None = None,
        max_retries: int = 2,
    ):
        super().__init__(model, system_prompt, tools, thinking)
        if _AsyncOpenAI is None:
            raise ImportError(
                "The 'openai' package is required for this provider. " "Install it with: pip install openai"
            )
        self.client = _AsyncOpenAI(api_key=model.api_key, base_url=model.base_url, max_retries=max_retries)
        self._messages: list[dict] = [{"role": "system", "content": system_prompt}]

    def _request_params(self) -> dict:
        params: dict = {
            "model": self.model.id,
            "messages": self._messages,
            "stream": True,
        }
        effort = _REASONING_EFFORT.get(self.thinking or "off")
        if effort:
            params["reasoning_effort"] = effort
        if self.tools:
            params["tools"] = [
                {
                    "type": "function",
                    "function": {"name": t.name, "description": t.description, "parameters": t.parameters},
                }
                for t in self.tools
            ]
        return params

    def _append_user_message(self, text: str) -> None:
        self._messages.append({"role": "user", "content": text})

    async def _run_turn(self) -> list[ToolCall]:
        stream = await self.client.chat.completions.create(**self._request_params())

        text_parts: list[str] = []
        # Tool calls arrive as fragments keyed by index; names and JSON
        # arguments are concatenated across chunks.
        pending: dict[int, dict] = {}
        async for chunk in stream:
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta
            if delta is None:
                continue
            if delta.content:
                text_parts.append(delta.content)
                self._emit(TextDelta(delta.content))
            for fragment in delta.tool_calls or []:
                acc = pending.setdefault(fragment.index, {"id": "", "name": "", "arguments": ""})
                if fragment.id:
                    acc["id"] = fragment.id
                if fragment.function is not None:
                    acc["name"] += fragment.function.name or ""
                    acc["arguments"] += fragment.function.arguments or ""

        calls = [pending[i] for i in sorted(pending)]
        assistant: dict = {"role": "assistant", "content": "".join(text_parts) or None}
        if calls:
            assistant["tool_calls"] = [
                {"id": c["id"], "type": "function", "function": {"name": c["name"], "arguments": c["arguments"]}}
                for c in calls
            ]
        self._messages.append(assistant)
        return [ToolCall(id=c["id"], name=c["name"], arguments=self._decode_arguments(c)) for c in calls]

    @staticmethod
    def _decode_arguments(call: dict) -> dict:
        try:
            args = json.loads(call["arguments"] or "{}")
        except json.JSONDecodeError:
            logger.warning("Tool call %s sent malformed arguments: %s", call["name"], call["arguments"][:200])
            return {}
        return args if isinstance(args, dict) else {}

    def _append_tool_results(self, results: list[ToolResult]) -> None:
        for r in results:
            self._messages.append({"role": "tool", "tool_call_id": r.call.id, "content": r.content})

    async def _close(self) -> None:
        await self.client.close()
