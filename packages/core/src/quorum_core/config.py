import copy
import os
from pathlib import Path
from typing import Optional

import yaml

from quorum_core.models import ReviewerSpec

DEFAULT_CONFIG: dict = {
    # Each reviewer: name (display), provider (anthropic | openai | google), id (model id), thinking level.
    "reviewers": [
        # Chat Completions models only; Responses-only models such as gpt-5-codex are not supported.
        {"name": "GPT-5", "provider": "openai", "id": "gpt-5", "thinking": "xhigh"},
        {"name": "Gemini 2.5 Pro", "provider": "google", "id": "gemini-2.5-pro", "thinking": "high"},
        {"name": "Claude Opus 4.1", "provider": "anthropic", "id": "claude-opus-4-1", "thinking": "xhigh"},
    ],
    "synthesis": {"provider": "anthropic", "id": "claude-opus-4-1", "thinking": "high"},
    "tools": ["read"],  # add "bash" to let reviewers run shell commands in the repository
    "output_dir": "reviews",
    "language": "English",
    "max_retries": 2,
    "max_diff_chars": 200000,
    "gemini_base_url": None,  # None = Google's public OpenAI-compatible endpoint
}


def load_config(config_path: str = ".quorum.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .quorum.yml in the current directory
      3. CLI argument overrides
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    # Resolve credentials from environment variables
    config["github_token"] = os.environ.get("GITHUB_TOKEN")
    config["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")
    config["openai_api_key"] = os.environ.get("OPENAI_API_KEY")
    config["gemini_api_key"] = os.environ.get("GEMINI_API_KEY")

    return config


def _to_spec(entry: dict, label: str, default_name: Optional[str] = None) -> ReviewerSpec:
    if not isinstance(entry, dict):
        raise ValueError(f"{label} must be a mapping, got {type(entry).__name__}.")
    provider = entry.get("provider")
    model_id = entry.get("id")
    if not provider or not model_id:
        raise ValueError(f"{label} needs both 'provider' and 'id'.")
    return ReviewerSpec(
        name=entry.get("name") or default_name or f"{provider}/{model_id}",
        provider=provider,
        model_id=model_id,
        thinking=entry.get("thinking"),
    )


def load_reviewers(config: dict) -> tuple:
    """Return the reviewer roster as an ordered tuple of ReviewerSpec."""
    entries = config.get("reviewers") or []
    if not entries:
        raise ValueError("No reviewers configured. Add at least one entry under 'reviewers' in .quorum.yml.")
    return tuple(_to_spec(entry, f"Reviewer #{i}") for i, entry in enumerate(entries, 1))


def load_synthesis_model(config: dict) -> ReviewerSpec:
    entry = config.get("synthesis")
    if not entry:
        raise ValueError("No synthesis model configured under 'synthesis' in .quorum.yml.")
    return _to_spec(entry, "Synthesis model", default_name="Synthesis")
