"""Base agent session implementing the Template Method pattern.

All providers share the same conversation algorithm:
    prompt() → _run_turn()            ← only this differs per provider
             → tool calls? → _execute() each → _append_tool_results() → _run_turn() ...
             → TurnEnd

Subclasses implement three things only:
  - _run_turn: stream one assistant turn, emit TextDelta events, return tool calls
  - _append_tool_results: record tool results in the provider's message format
  - _close: release the SDK client

Subscription, event dispatch, the tool loop and dispose() bookkeeping live
here so every provider behaves the same to callers.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Union

if TYPE_CHECKING:
    from quorum_core.providers.registry import ModelHandle
    from quorum_core.tools import Tool

logger = logging.getLogger(__name__)

_MAX_TURNS = 16


# ---------------------------------------------------------------------- #
# Events                                                                   #
# ---------------------------------------------------------------------- #


@dataclass(frozen=True)
class TextDelta:
    delta: str


@dataclass(frozen=True)
class ToolCallStarted:
    name: str
    arguments: dict


@dataclass(frozen=True)
class ToolCallFinished:
    name: str
    is_error: bool


@dataclass(frozen=True)
class TurnEnd:
    turns: int


SessionEvent = Union[TextDelta, ToolCallStarted, ToolCallFinished, TurnEnd]
EventHandler = Callable[[SessionEvent], None]


@dataclass(frozen=True)
class ToolCall:
    id: str
    name: str
    arguments: dict


@dataclass(frozen=True)
class ToolResult:
    call: ToolCall
    content: str
    is_error: bool = False


class BaseSession(ABC):
    MAX_TURNS: int = _MAX_TURNS

    def __init__(
        self,
        model: ModelHandle,
        system_prompt: str,
        tools: list[Tool] | None = None,
        thinking: str | None = None,
    ):
        self.model = model
        self.system_prompt = system_prompt
        self.tools = list(tools or [])
        self.thinking = thinking
        self._tools_by_name = {t.name: t for t in self.tools}
        self._handlers: list[EventHandler] = []
        self._disposed = False

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        """Register an event handler and return a function that removes it."""
        self._handlers.append(handler)

        def _unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return _unsubscribe

    async def prompt(self, text: str) -> None:
        """Send a user message and run the conversation until the model stops calling tools.

        Returns only after every TextDelta for the exchange has been delivered
        to subscribers, in arrival order.
        """
        if self._disposed:
            raise RuntimeError(f"{self.__class__.__name__} has been disposed")

        self._append_user_message(text)
        turns = 0
        while True:
            turns += 1
            calls = await self._run_turn()
            if not calls:
                break
            if turns >= self.MAX_TURNS:
                logger.warning(
                    "%s stopped after %d turns with %d tool call(s) pending",
                    self.model.ref,
                    turns,
                    len(calls),
                )
                break
            results = [await self._execute(call) for call in calls]
            self._append_tool_results(results)
        self._emit(TurnEnd(turns=turns))

    async def dispose(self) -> None:
        """Release the underlying client. Safe to call more than once."""
        if self._disposed:
            return
        self._disposed = True
        self._handlers.clear()
        await self._close()

    # ------------------------------------------------------------------ #
    # Abstract — implement in each provider                               #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _append_user_message(self, text: str) -> None:
        """Record a user message in the provider's transcript."""

    @abstractmethod
    async def _run_turn(self) -> list[ToolCall]:
        """Stream one assistant turn and return any tool calls it requested.

        Must emit a TextDelta for every text fragment as it arrives and append
        the assistant message to the transcript. Should raise on failure.
        """

    @abstractmethod
    def _append_tool_results(self, results: list[ToolResult]) -> None:
        """Record tool results so the next turn can see them."""

    @abstractmethod
    async def _close(self) -> None:
        """Close the SDK client."""

    # ------------------------------------------------------------------ #
    # Shared implementations                                               #
    # ------------------------------------------------------------------ #

    def _emit(self, event: SessionEvent) -> None:
        for handler in list(self._handlers):
            handler(event)

    async def _execute(self, call: ToolCall) -> ToolResult:
        """Run one tool call; failures become error results the model can read."""
        self._emit(ToolCallStarted(name=call.name, arguments=call.arguments))
        tool = self._tools_by_name.get(call.name)
        if tool is None:
            result = ToolResult(call=call, content=f"Error: unknown tool {call.name!r}", is_error=True)
        else:
            try:
                result = ToolResult(call=call, content=await tool.run(call.arguments))
            except Exception as e:
                logger.debug("Tool %s failed: %s", call.name, e)
                result = ToolResult(call=call, content=f"Error: {e}", is_error=True)
        self._emit(ToolCallFinished(name=call.name, is_error=result.is_error))
        return result
