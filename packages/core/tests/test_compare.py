"""Tests for change sets built from the GitHub compare API."""

import types
from unittest.mock import MagicMock

from quorum_core.gh.compare import GitHubCompareSource


def make_file(filename="src/app.py", patch="@@ -1 +1 @@\n-a\n+b", additions=1, deletions=1, previous_filename=None):
    return types.SimpleNamespace(
        filename=filename,
        patch=patch,
        additions=additions,
        deletions=deletions,
        changes=additions + deletions,
        previous_filename=previous_filename,
    )


def make_commit(sha, message):
    return types.SimpleNamespace(sha=sha, commit=types.SimpleNamespace(message=message))


def make_repo(files=(), commits=(), default_branch="main"):
    repo = MagicMock()
    repo.default_branch = default_branch
    repo.compare.return_value = types.SimpleNamespace(files=list(files), commits=list(commits))
    return repo


class TestGitHubCompareSource:
    def test_collect_builds_diff_stat_and_log(self):
        repo = make_repo(
            files=[make_file(), make_file("docs/readme.md", patch="@@ -0,0 +1 @@\n+hi", additions=1, deletions=0)],
            commits=[make_commit("0123456789abcdef", "Fix login\n\nLonger body")],
        )
        changes = GitHubCompareSource(repo).collect("main", "feature/login")

        repo.compare.assert_called_once_with("main", "feature/login")
        assert "diff --git a/src/app.py b/src/app.py" in changes.diff
        assert "+++ b/docs/readme.md\n@@ -0,0 +1 @@\n+hi" in changes.diff
        assert changes.stat_summary == "2 files changed, 2 insertions(+), 1 deletions(-)"
        assert changes.log == "0123456 Fix login"

    def test_renamed_file_uses_previous_name(self):
        repo = make_repo(files=[make_file("new.py", previous_filename="old.py")])
        changes = GitHubCompareSource(repo).collect("main", "dev")
        assert "diff --git a/old.py b/new.py" in changes.diff

    def test_files_without_patch_are_skipped(self):
        repo = make_repo(files=[make_file("logo.png", patch=None, additions=0, deletions=0)])
        changes = GitHubCompareSource(repo).collect("main", "dev")
        assert changes.is_empty

    def test_no_changes_is_empty(self):
        changes = GitHubCompareSource(make_repo()).collect("main", "main")
        assert changes.is_empty
        assert changes.stat == ""

    def test_head_means_default_branch(self):
        repo = make_repo(default_branch="trunk")
        source = GitHubCompareSource(repo)
        source.collect("release", "HEAD")
        repo.compare.assert_called_once_with("release", "trunk")
        assert source.branch_label("HEAD") == "trunk"
        assert source.branch_label("feature/x") == "feature/x"

    def test_resolve_is_identity(self):
        assert GitHubCompareSource(make_repo()).resolve("v1.2.3") == "v1.2.3"
