"""Change sets from the GitHub compare API, for reviewing without a local clone."""

from __future__ import annotations

from github import Github

from quorum_core.models import ChangeSet


def get_repo(repo_name: str, token: str):
    return Github(token).get_repo(repo_name)


def _format_stat(files) -> str:
    lines = [f" {f.filename} | {f.changes} {'+' * min(f.additions, 20)}{'-' * min(f.deletions, 20)}" for f in files]
    additions = sum(f.additions for f in files)
    deletions = sum(f.deletions for f in files)
    lines.append(f" {len(files)} files changed, {additions} insertions(+), {deletions} deletions(-)")
    return "\n".join(lines)


def _format_diff(files) -> str:
    chunks = []
    for f in files:
        # Binary files and very large diffs come back without a patch.
        if not f.patch:
            continue
        old = f.previous_filename or f.filename
        chunks.append(f"diff --git a/{old} b/{f.filename}\n--- a/{old}\n+++ b/{f.filename}\n{f.patch}\n")
    return "".join(chunks)


class GitHubCompareSource:
    """Collects the change set between two refs of a GitHub repository."""

    def __init__(self, repo):
        self.repo = repo

    def resolve(self, ref: str) -> str:
        # The compare API accepts branches, tags and SHAs as given.
        return ref

    def branch_label(self, target_ref: str) -> str:
        if target_ref == "HEAD":
            return self.repo.default_branch
        return target_ref

    def collect(self, base_ref: str, target_ref: str) -> ChangeSet:
        head = self.repo.default_branch if target_ref == "HEAD" else target_ref
        comparison = self.repo.compare(base_ref, head)
        files = list(comparison.files)
        commits = list(comparison.commits)
        return ChangeSet(
            diff=_format_diff(files),
            stat=_format_stat(files) if files else "",
            log="\n".join(f"{c.sha[:7]} {c.commit.message.splitlines()[0]}" for c in commits if c.commit.message),
        )
