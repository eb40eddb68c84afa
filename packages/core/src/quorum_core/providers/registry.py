"""Model/credential registry.

Built once at process start from the loaded config and passed to the pool and
the synthesizer. Nothing mutates it afterwards, so concurrent reviewers can
share it freely.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from quorum_core.providers.anthropic import AnthropicSession
from quorum_core.providers.base import BaseSession
from quorum_core.providers.openai import OpenAISession
from quorum_core.tools import Tool

logger = logging.getLogger(__name__)

DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"

# provider -> (config key holding its API key, session class)
_PROVIDERS: dict[str, tuple[str, type[BaseSession]]] = {
    "anthropic": ("anthropic_api_key", AnthropicSession),
    "openai": ("openai_api_key", OpenAISession),
    "google": ("gemini_api_key", OpenAISession),
}


@dataclass(frozen=True)
class ModelHandle:
    provider: str
    id: str
    api_key: str
    base_url: str | None = None

    @property
    def ref(self) -> str:
        return f"{self.provider}/{self.id}"

    def __repr__(self) -> str:
        return f"ModelHandle({self.ref})"


class ModelRegistry:
    def __init__(
        self,
        credentials: dict[str, str | None],
        base_urls: dict[str, str] | None = None,
        max_retries: int = 2,
    ):
        self._credentials = dict(credentials)
        self._base_urls = dict(base_urls or {})
        self.max_retries = max_retries

    @classmethod
    def from_config(cls, config: dict) -> ModelRegistry:
        credentials = {provider: config.get(key) for provider, (key, _) in _PROVIDERS.items()}
        base_urls = {"google": config.get("gemini_base_url") or DEFAULT_GEMINI_BASE_URL}
        return cls(credentials, base_urls=base_urls, max_retries=config.get("max_retries", 2))

    def find(self, provider: str, model_id: str) -> ModelHandle | None:
        """Return a handle for provider/model_id, or None if it cannot be used.

        None covers both an unknown provider and a known provider with no
        credential configured; callers treat the two the same way.
        """
        if provider not in _PROVIDERS:
            logger.debug("Unknown provider: %s", provider)
            return None
        api_key = self._credentials.get(provider)
        if not api_key:
            logger.debug("No credential configured for provider %s", provider)
            return None
        return ModelHandle(provider=provider, id=model_id, api_key=api_key, base_url=self._base_urls.get(provider))

    def create_session(
        self,
        model: ModelHandle,
        system_prompt: str,
        tools: list[Tool] | None = None,
        thinking: str | None = None,
    ) -> BaseSession:
        _, session_cls = _PROVIDERS[model.provider]
        return session_cls(model, system_prompt, tools=tools, thinking=thinking, max_retries=self.max_retries)
