"""Tests for the single-call agent invoker."""

import pytest

from quorum_core.invoker import invoke
from quorum_core.models import FAILURE_MARKER, ReviewerSpec
from quorum_core.tools import Tool


def _spec(model_id="m1", provider="openai", thinking="high"):
    return ReviewerSpec(name="Reviewer", provider=provider, model_id=model_id, thinking=thinking)


class TestInvoke:
    @pytest.mark.asyncio
    async def test_accumulates_deltas_in_arrival_order(self, make_registry):
        registry = make_registry({"m1": ["The ", "diff ", "looks ", "fine."]})
        text = await invoke(registry, _spec(), "review", system_prompt="sys")
        assert text == "The diff looks fine."

    @pytest.mark.asyncio
    async def test_unresolvable_model_returns_sentinel(self, make_registry):
        registry = make_registry({})
        text = await invoke(registry, _spec(model_id="x1", provider="acme"), "review", system_prompt="sys")
        assert text.startswith(FAILURE_MARKER)
        assert "acme/x1" in text
        assert registry.sessions == []

    @pytest.mark.asyncio
    async def test_session_disposed_after_success(self, make_registry):
        registry = make_registry({"m1": "ok"})
        await invoke(registry, _spec(), "review", system_prompt="sys")
        assert registry.sessions[0].closed

    @pytest.mark.asyncio
    async def test_error_propagates_and_session_still_disposed(self, make_registry):
        registry = make_registry({"m1": ConnectionError("reset by peer")})
        with pytest.raises(ConnectionError):
            await invoke(registry, _spec(), "review", system_prompt="sys")
        assert registry.sessions[0].closed

    @pytest.mark.asyncio
    async def test_session_receives_prompt_thinking_and_tools(self, make_registry):
        async def handler(arguments):
            return ""

        tool = Tool(name="read", description="", parameters={}, handler=handler)
        registry = make_registry({"m1": "ok"})
        await invoke(registry, _spec(thinking="xhigh"), "the prompt", system_prompt="be strict", tools=[tool])

        session = registry.sessions[0]
        assert session.prompts == ["the prompt"]
        assert session.system_prompt == "be strict"
        assert session.thinking == "xhigh"
        assert [t.name for t in session.tools] == ["read"]

    @pytest.mark.asyncio
    async def test_each_call_gets_a_fresh_session(self, make_registry):
        registry = make_registry({"m1": "ok"})
        await invoke(registry, _spec(), "one", system_prompt="sys")
        await invoke(registry, _spec(), "two", system_prompt="sys")
        assert len(registry.sessions) == 2
        assert registry.sessions[0] is not registry.sessions[1]
