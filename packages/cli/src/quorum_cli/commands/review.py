"""review command: run every reviewer on a diff and save the synthesized report."""

from __future__ import annotations

import asyncio
import json
import logging

import click
from rich.console import Console
from rich.markup import escape

from quorum_core.reviewer import AllReviewersFailedError, Stage, run_review
from quorum_store.base import report_basename
from quorum_store.filesystem import FileStore

console = Console(stderr=True)
logger = logging.getLogger(__name__)

_PROGRESS_STYLE = {
    "started": "⏳ {name} review started...",
    "done": "[green]✅ {name} review complete[/green]",
    "failed": "[red]❌ {name} review failed[/red] [dim]{detail}[/dim]",
}


def _print_progress(name: str, status: str, detail: str = "") -> None:
    template = _PROGRESS_STYLE.get(status)
    if template:
        console.print(template.format(name=escape(name), detail=escape(detail)))


def _print_stage(stage: Stage, detail: str) -> None:
    if stage is Stage.GATHERING and detail:
        console.print(f"📊 {detail}\n")
    elif stage is Stage.SYNTHESIZING:
        console.print(f"\n📝 Synthesizing {detail}...")


def _validate_config(config: dict) -> None:
    """Fail fast on config mistakes before any git or model call is made."""
    from quorum_core.config import load_reviewers, load_synthesis_model
    from quorum_core.tools import build_tools

    try:
        load_reviewers(config)
        load_synthesis_model(config)
        build_tools(config.get("tools", []), ".")
    except ValueError as e:
        raise click.UsageError(str(e))


def _build_source(repo: str | None, config: dict):
    if repo is None:
        from quorum_core.git.local import LocalGitSource

        return LocalGitSource()

    from quorum_core.gh.compare import GitHubCompareSource, get_repo
    from quorum_cli.auth import resolve_github_token

    token = config.get("github_token") or resolve_github_token()
    if not token:
        raise click.UsageError(
            "--repo needs a GitHub token. Set GITHUB_TOKEN or run `gh auth login` first.\n"
            "Create a token at https://github.com/settings/tokens"
        )
    return GitHubCompareSource(get_repo(repo, token=token))


@click.command("review")
@click.argument("target", default="HEAD", required=False)
@click.argument("base", default="main", required=False)
@click.argument("focus", nargs=-1)
@click.option(
    "--repo",
    default=None,
    help="Review owner/name through the GitHub compare API instead of the local clone.",
)
@click.option("--output-dir", default=None, help="Directory for saved reports. Overrides config file.")
@click.option("--language", default=None, help="Language the reviews are written in. Overrides config file.")
@click.pass_context
def review_cmd(
    ctx,
    target: str,
    base: str,
    focus: tuple[str, ...],
    repo: str | None,
    output_dir: str | None,
    language: str | None,
):
    """Review TARGET against BASE with every configured model.

    Extra words after BASE are passed to the reviewers as areas to focus on.
    Progress is written to stderr; the last line on stdout is a JSON object
    with the saved report and items paths.

    \b
    Environment variables (one per provider you use):
      ANTHROPIC_API_KEY    anthropic reviewers and synthesis
      OPENAI_API_KEY       openai reviewers
      GEMINI_API_KEY       google reviewers
      GITHUB_TOKEN         only with --repo (or use gh CLI)
    """
    from quorum_core.config import load_config
    from quorum_core.providers.registry import ModelRegistry

    config_path = (ctx.obj or {}).get("config_path", ".quorum.yml")
    config = load_config(config_path, cli_overrides={"output_dir": output_dir, "language": language})
    _validate_config(config)
    focus_text = " ".join(focus)

    registry = ModelRegistry.from_config(config)

    console.print("[bold]🔍 Starting multi-model code review...[/bold]")
    console.print(f"📌 Base: {base} → Target: {target}")
    if focus_text:
        console.print(f"🎯 Focus: {focus_text}")

    try:
        source = _build_source(repo, config)
        summary = asyncio.run(
            run_review(
                registry,
                source,
                config,
                target_ref=target,
                base_ref=base,
                focus=focus_text,
                on_progress=_print_progress,
                on_stage=_print_stage,
            )
        )
        if summary is None:
            console.print("[yellow]No changes to review.[/yellow]")
            return

        store = FileStore(config["output_dir"])
        saved = store.save(report_basename(summary.target_label), summary.report.document, summary.report.items)
    except (click.UsageError, click.exceptions.Exit):
        raise
    except AllReviewersFailedError as e:
        console.print("\n[red]❌ All reviews failed.[/red]")
        for outcome in e.outcomes:
            console.print(f"  [dim]{escape(outcome.name)}: {escape(outcome.text)}[/dim]")
        ctx.exit(1)
    except Exception as e:
        logger.debug("Review aborted", exc_info=True)
        console.print(f"\n[red]❌ Error: {escape(str(e))}[/red]")
        ctx.exit(1)

    if not summary.synthesis.parsed:
        console.print("[yellow]⚠️  Synthesis could not be parsed; the report contains the raw text.[/yellow]")
    console.print(f"📄 Report saved: {saved.report_path}")
    if saved.items_path:
        console.print(f"📋 Items saved: {saved.items_path}")

    click.echo(json.dumps(saved.to_summary_line()))
    console.print("\n[green]✅ Code review complete[/green]")
