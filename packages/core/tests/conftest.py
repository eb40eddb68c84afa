"""Shared fakes for the session runtime.

FakeRegistry stands in for ModelRegistry: every model id it was given a
script for resolves, anything else returns None. Each script is replayed by a
FakeSession, so pool / synthesis / pipeline tests exercise the real invoker
without any network.
"""

from __future__ import annotations

import asyncio

import pytest

from quorum_core.providers.base import BaseSession, TextDelta
from quorum_core.providers.registry import ModelHandle


class FakeSession(BaseSession):
    def __init__(self, model, system_prompt, tools=None, thinking=None, script=None, log=None):
        super().__init__(model, system_prompt, tools, thinking)
        self.script = script
        self.log = log if log is not None else []
        self.prompts: list[str] = []
        self.closed = False

    def _append_user_message(self, text: str) -> None:
        self.prompts.append(text)

    async def _run_turn(self):
        script = self.script
        delay = 0.0
        if isinstance(script, tuple):
            delay, script = script
        if delay:
            await asyncio.sleep(delay)
        if isinstance(script, Exception):
            raise script
        if isinstance(script, str):
            self._emit(TextDelta(script))
            self.log.append((self.model.id, script))
            return []
        # Chunk lists yield to the loop between deltas, like a real stream.
        for chunk in script:
            self._emit(TextDelta(chunk))
            self.log.append((self.model.id, chunk))
            await asyncio.sleep(0)
        return []

    def _append_tool_results(self, results) -> None:
        pass

    async def _close(self) -> None:
        self.closed = True


class FakeRegistry:
    """Scripts map model id → reply.

    A reply is a string, a list of delta chunks, an Exception to raise, or a
    (delay_seconds, reply) tuple.
    """

    def __init__(self, scripts: dict):
        self.scripts = dict(scripts)
        self.sessions: list[FakeSession] = []
        # (model id, chunk) in global emission order across all sessions.
        self.stream_log: list[tuple[str, str]] = []

    def find(self, provider: str, model_id: str):
        if model_id not in self.scripts:
            return None
        return ModelHandle(provider=provider, id=model_id, api_key="test-key")

    def create_session(self, model, system_prompt, tools=None, thinking=None):
        session = FakeSession(
            model, system_prompt, tools, thinking, script=self.scripts[model.id], log=self.stream_log
        )
        self.sessions.append(session)
        return session

    def sessions_for(self, model_id: str) -> list[FakeSession]:
        return [s for s in self.sessions if s.model.id == model_id]


@pytest.fixture
def make_registry():
    return FakeRegistry
