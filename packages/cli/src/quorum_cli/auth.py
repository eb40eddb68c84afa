"""Credentials for ``quorum review --repo owner/name``.

Local reviews read the diff with the git CLI and need no GitHub access. The
compare API does, and the token is taken from GITHUB_TOKEN or, failing that,
from an authenticated GitHub CLI session.
"""

from __future__ import annotations

import logging
import os
import subprocess

logger = logging.getLogger(__name__)

_GH_TIMEOUT_SECONDS = 5


def _token_from_gh_cli() -> str | None:
    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=_GH_TIMEOUT_SECONDS,
        )
    except FileNotFoundError:
        logger.debug("gh CLI not installed; no session token available.")
        return None
    except subprocess.TimeoutExpired:
        logger.debug("gh auth token timed out after %ss.", _GH_TIMEOUT_SECONDS)
        return None

    token = result.stdout.strip() if result.returncode == 0 else ""
    return token or None


def resolve_github_token() -> str | None:
    """GITHUB_TOKEN if set, else the gh CLI session token, else None."""
    token = os.environ.get("GITHUB_TOKEN") or _token_from_gh_cli()
    if token:
        logger.debug("Using GitHub token for the compare API.")
    return token
