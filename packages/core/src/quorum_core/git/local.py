from __future__ import annotations

import logging
import subprocess

from quorum_core.models import ChangeSet

logger = logging.getLogger(__name__)


def _git(*args: str, cwd: str | None = None) -> str:
    result = subprocess.run(
        ["git", *args],
        capture_output=True,
        # Diffs may touch files in any encoding; never fail on decoding.
        encoding="utf-8",
        errors="replace",
        check=True,
        cwd=cwd,
    )
    return result.stdout


def ref_exists(ref: str, cwd: str | None = None) -> bool:
    try:
        _git("rev-parse", "--verify", "--quiet", ref, cwd=cwd)
    except subprocess.CalledProcessError:
        return False
    return True


def resolve_ref(branch: str, cwd: str | None = None) -> str:
    """Return a ref git can diff against.

    Tries the name as given, then ``origin/<name>`` for branches that only
    exist on the remote; otherwise hands the literal name back and lets git
    report the error.
    """
    if ref_exists(branch, cwd=cwd):
        return branch
    remote = f"origin/{branch}"
    if ref_exists(remote, cwd=cwd):
        logger.debug("Resolved %s to %s", branch, remote)
        return remote
    return branch


def current_branch(cwd: str | None = None) -> str:
    """Name of the checked-out branch; empty on a detached HEAD."""
    return _git("branch", "--show-current", cwd=cwd).strip()


class LocalGitSource:
    """Collects the change set from the local repository with the git CLI."""

    def __init__(self, cwd: str | None = None):
        self.cwd = cwd

    def resolve(self, ref: str) -> str:
        return resolve_ref(ref, cwd=self.cwd)

    def branch_label(self, target_ref: str) -> str:
        if target_ref == "HEAD":
            return current_branch(cwd=self.cwd) or "HEAD"
        return target_ref

    def collect(self, base_ref: str, target_ref: str) -> ChangeSet:
        span = f"{base_ref}..{target_ref}"
        return ChangeSet(
            diff=_git("diff", span, cwd=self.cwd),
            stat=_git("diff", span, "--stat", cwd=self.cwd),
            log=_git("log", span, "--oneline", cwd=self.cwd),
        )
