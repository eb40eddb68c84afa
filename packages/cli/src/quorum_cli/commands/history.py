"""history command: list reports saved by previous review runs."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

console = Console()

_VERDICT_STYLE = {
    "approve": "green",
    "request-changes": "red",
}


@click.command("history")
@click.option("--output-dir", default=None, help="Directory the reports were saved to. Overrides config file.")
@click.option("--limit", default=20, show_default=True, help="Maximum number of reports to show.")
@click.pass_context
def history_cmd(ctx, output_dir: str | None, limit: int):
    """Show saved review reports, most recent first."""
    from quorum_core.config import load_config
    from quorum_store.filesystem import FileStore

    config_path = (ctx.obj or {}).get("config_path", ".quorum.yml")
    config = load_config(config_path, cli_overrides={"output_dir": output_dir})
    store = FileStore(config["output_dir"])

    reports = store.list_reports()
    if not reports:
        console.print(f"[yellow]No reports found in {config['output_dir']}/.[/yellow]")
        return

    reports = list(reversed(reports))[:limit]

    table = Table(title=f"Review History — {config['output_dir']}", show_header=True, header_style="bold cyan")
    table.add_column("Report", style="bold")
    table.add_column("Verdict", width=16)
    table.add_column("Score", justify="right", width=6)
    table.add_column("Items", justify="right", width=6)

    for r in reports:
        if r.verdict is None:
            verdict = "[dim]unparsed[/dim]"
        else:
            style = _VERDICT_STYLE.get(r.verdict, "white")
            verdict = f"[{style}]{r.verdict}[/{style}]"
        table.add_row(
            r.name,
            verdict,
            "—" if r.score is None else str(r.score),
            "—" if r.total_items is None else str(r.total_items),
        )

    console.print(table)
