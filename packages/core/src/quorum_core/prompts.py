"""Prompt construction for reviewers and the synthesis step.

Kept in one place so every reviewer receives a byte-identical prompt and the
synthesis schema stays in sync with SynthesisResult.from_dict.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from quorum_core.models import ChangeSet, ReviewerOutcome


def reviewer_system_prompt(language: str) -> str:
    return (
        "You are an expert senior software engineer and code reviewer. "
        f"Review code thoroughly and respond in {language}. "
        "When the diff alone is not enough, use the available tools to inspect the surrounding code."
    )


def synthesis_system_prompt(language: str) -> str:
    return (
        "You are a senior tech lead. You consolidate code reviews written by several reviewers "
        f"into one structured JSON report. Write all prose fields in {language}."
    )


def build_review_prompt(changes: ChangeSet, focus: str = "", language: str = "English") -> str:
    focus_section = f"\n## Areas to focus on\n{focus}\n" if focus else ""
    return f"""Review the following git diff thoroughly. Write every review comment in {language}.

## Review perspectives
1. **Bugs and latent issues**: runtime errors, edge cases, null/None handling, type safety
2. **Design and architecture**: SOLID principles, dependency direction, separation of concerns, extensibility
3. **Code quality**: naming, readability, duplication, complexity
4. **Performance**: unnecessary work, N+1 queries, memory leaks
5. **Tests**: coverage, missing edge-case tests
{focus_section}
## Commit history
{changes.log}
## Changed files
{changes.stat}
## Diff
```diff
{changes.diff}
```

Report each issue in this format:
- **file:line** — [Critical/Major/Minor/Suggestion] description

Finish with an overall summary and your opinion: approve or request changes."""


_SYNTHESIS_SCHEMA = """```json
{
  "summary": "Overall assessment of the change (3-5 sentences covering the essentials)",
  "score": 7,
  "verdict": "approve or request-changes",
  "items": [
    {
      "id": 1,
      "severity": "one of critical | major | minor | suggestion",
      "file": "file path",
      "line": "line number or range (omit if unknown)",
      "title": "one-line issue title",
      "description": "What the problem is, why it matters and what it affects.",
      "suggestion": "Concrete fix. Include corrected code where possible.",
      "recommendation": "one of must-fix | recommended | optional",
      "reporters": ["names of the reviewers who raised this issue"]
    }
  ]
}
```"""


def build_synthesis_prompt(reviews: Sequence[ReviewerOutcome], language: str = "English") -> str:
    sections = "\n\n---\n\n".join(f"## {r.name}'s review\n\n{r.text}" for r in reviews)
    return f"""Analyse the code reviews written by {len(reviews)} reviewer(s) below and output a consolidated result as JSON.

{sections}

## Output format

Output only JSON in exactly the format below. Do not include any text outside the JSON.

{_SYNTHESIS_SCHEMA}

### Rules
1. Merge an issue raised by two or more reviewers into a single item and list all of them in reporters
2. severity: critical (bugs/security) > major (design/performance) > minor (code quality) > suggestion (improvements)
3. recommendation: must-fix > recommended > optional
4. Sort items by severity, critical first; keep discovery order within the same severity
5. Remove duplicates and keep only the essential issues
6. Make every suggestion as concrete as possible: which code to change and how
7. Write summary, title, description and suggestion in {language}"""
