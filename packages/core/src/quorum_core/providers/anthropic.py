from __future__ import annotations

from typing import TYPE_CHECKING

from quorum_core.providers.base import BaseSession, TextDelta, ToolCall, ToolResult

if TYPE_CHECKING:
    from quorum_core.providers.registry import ModelHandle
    from quorum_core.tools import Tool

# Extended-thinking token budgets per thinking level. max_tokens must exceed
# the budget; the answer gets up to _ANSWER_TOKENS on top, within the model's
# output limit.
_THINKING_BUDGETS = {
    "minimal": 1024,
    "low": 2048,
    "medium": 8192,
    "high": 16384,
    "xhigh": 32000,
}
_ANSWER_TOKENS = 16000
_MIN_ANSWER_TOKENS = 4096

# Output token caps by model id prefix, longest prefix first. Unknown models
# get the smallest cap so a request is never rejected for max_tokens.
_OUTPUT_LIMITS = (
    ("claude-opus-4-1", 32000),
    ("claude-opus-4", 32000),
    ("claude-sonnet-4", 64000),
    ("claude-3-7-sonnet", 64000),
)
_DEFAULT_OUTPUT_LIMIT = 32000


def output_limit(model_id: str) -> int:
    for prefix, limit in _OUTPUT_LIMITS:
        if model_id.startswith(prefix):
            return limit
    return _DEFAULT_OUTPUT_LIMIT


class AnthropicSession(BaseSession):
    # Only used with thinking off; the API rejects temperature alongside thinking.
    TEMPERATURE = 0.3

    def __init__(
        self,
        model: ModelHandle,
        system_prompt: str,
        tools: list[Tool] | None = None,
        thinking: str | None = None,
        max_retries: int = 2,
    ):
        super().__init__(model, system_prompt, tools, thinking)
        try:
            from anthropic import AsyncAnthropic
        except ImportError:
            raise ImportError(
                "The 'anthropic' package is required for this provider. " "Install it with: pip install anthropic"
            )
        self.client = AsyncAnthropic(api_key=model.api_key, max_retries=max_retries)
        self._messages: list[dict] = []

    def _request_params(self) -> dict:
        params: dict = {
            "model": self.model.id,
            "system": self.system_prompt,
            "messages": self._messages,
        }
        limit = output_limit(self.model.id)
        budget = _THINKING_BUDGETS.get(self.thinking or "off")
        if budget:
            budget = min(budget, limit - _MIN_ANSWER_TOKENS)
            params["thinking"] = {"type": "enabled", "budget_tokens": budget}
            params["max_tokens"] = min(budget + _ANSWER_TOKENS, limit)
        else:
            params["temperature"] = self.TEMPERATURE
            params["max_tokens"] = min(_ANSWER_TOKENS, limit)
        if self.tools:
            params["tools"] = [
                {"name": t.name, "description": t.description, "input_schema": t.parameters} for t in self.tools
            ]
        return params

    def _append_user_message(self, text: str) -> None:
        self._messages.append({"role": "user", "content": text})

    async def _run_turn(self) -> list[ToolCall]:
        async with self.client.messages.stream(**self._request_params()) as stream:
            async for text in stream.text_stream:
                self._emit(TextDelta(text))
            message = await stream.get_final_message()

        # Thinking blocks must be sent back unchanged when tools are in play,
        # so the assistant content is kept verbatim.
        self._messages.append({"role": "assistant", "content": message.content})
        return [
            ToolCall(id=block.id, name=block.name, arguments=dict(block.input or {}))
            for block in message.content
            if block.type == "tool_use"
        ]

    def _append_tool_results(self, results: list[ToolResult]) -> None:
        self._messages.append(
            {
                "role": "user",
                "content": [
                    {
                        "type": "tool_result",
                        "tool_use_id": r.call.id,
                        "content": r.content,
                        "is_error": r.is_error,
                    }
                    for r in results
                ],
            }
        )

    async def _close(self) -> None:
        await self.client.close()
