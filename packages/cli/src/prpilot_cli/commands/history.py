"""history: display past review records from the store."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

console = Console()

_STATUS_STYLE = {
    "completed": "green",
    "analyzing": "yellow",
    "pending": "dim",
    "failed": "red",
}


@click.command("history")
@click.option("--user-id", required=True, envvar="PRPILOT_USER_ID", help="Owner of the reviews.")
@click.option("--repo-id", default=None, help="Only show reviews for this registered repository.")
@click.option("--limit", default=20, show_default=True, help="Maximum number of records to show.")
@click.pass_context
def history_cmd(ctx, user_id: str, repo_id: str | None, limit: int):
    """Show past AI review records, most recent first."""
    store = ctx.obj["store"]

    records, total = store.list_reviews(user_id, repo_id=repo_id, limit=limit)
    if not records:
        console.print("[yellow]No review records found.[/yellow]")
        return

    table = Table(title=f"Review History ({len(records)} of {total})", show_header=True, header_style="bold cyan")
    table.add_column("ID", width=8)
    table.add_column("PR", style="bold", width=6)
    table.add_column("Title", max_width=40)
    table.add_column("Status", width=10)
    table.add_column("Score", justify="right", width=6)
    table.add_column("Issues", justify="right", width=7)
    table.add_column("Trigger", width=8)
    table.add_column("Created At", width=20)

    for r in records:
        style = _STATUS_STYLE.get(r.status, "white")
        table.add_row(
            r.id[:8],
            f"#{r.pr_number}" if r.pr_number is not None else "",
            r.pr_title[:40] if r.pr_title else "",
            f"[{style}]{r.status}[/{style}]",
            str(r.quality_score) if r.quality_score is not None else "",
            str(len(r.issues)),
            r.triggered_by,
            r.created_at[:19].replace("T", " "),
        )

    console.print(table)
