"""CLI entry point for quorum.

Commands:
  review   — run every configured reviewer on a diff and synthesize one report
  history  — list previously saved reports
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from quorum_cli.commands.history import history_cmd
from quorum_cli.commands.review import review_cmd

# Narration goes to stderr so the final JSON line is the only thing on stdout.
console = Console(stderr=True)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, rich_tracebacks=True)],
        force=True,
    )
    # SDK request logging is noise even in verbose mode.
    for name in ("httpx", "httpcore", "anthropic", "openai", "github"):
        logging.getLogger(name).setLevel(logging.WARNING)


@click.group()
@click.version_option(
    version=importlib.metadata.version("quorum-review"),
    prog_name="quorum",
)
@click.option(
    "--config",
    "config_path",
    default=".quorum.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="QUORUM_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Log pipeline details to stderr.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Multi-model code review: several AI reviewers, one synthesized verdict."""
    _setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


main.add_command(review_cmd)
main.add_command(history_cmd)
