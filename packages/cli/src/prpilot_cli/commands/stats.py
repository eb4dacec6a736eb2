"""stats: aggregate issue patterns across review history."""

from __future__ import annotations

from collections import Counter

import click
from rich.console import Console
from rich.table import Table

from prpilot_core.models import ISSUE_TYPES, SEVERITIES

console = Console()

# Upper bound on how many reviews one stats run reads.
MAX_REVIEWS = 1000


@click.command("stats")
@click.option("--user-id", required=True, envvar="PRPILOT_USER_ID", help="Owner of the reviews.")
@click.option("--repo-id", default=None, help="Only include reviews for this registered repository.")
@click.option("--top", default=10, show_default=True, help="Number of top entries to show per category.")
@click.pass_context
def stats_cmd(ctx, user_id: str, repo_id: str | None, top: int):
    """Show aggregated review statistics.

    Issue counts by severity and type point at systemic problems; the most
    flagged files suggest where a custom rule would pay off.
    """
    store = ctx.obj["store"]

    records, _ = store.list_reviews(user_id, repo_id=repo_id, limit=MAX_REVIEWS)
    completed = [r for r in records if r.status == "completed"]
    if not completed:
        console.print("[yellow]No completed reviews found.[/yellow]")
        return

    failed = sum(1 for r in records if r.status == "failed")
    scores = [r.quality_score for r in completed if r.quality_score is not None]
    severity_counter: Counter[str] = Counter()
    type_counter: Counter[str] = Counter()
    file_counter: Counter[str] = Counter()

    for record in completed:
        for issue in record.issues:
            severity_counter[issue.get("severity", "medium")] += 1
            type_counter[issue.get("type", "maintainability")] += 1
            if issue.get("file"):
                file_counter[issue["file"]] += 1

    total_issues = sum(severity_counter.values())

    # --- Summary ---
    console.print("\n[bold]Review stats[/bold]")
    console.print(f"  Completed reviews: {len(completed)}")
    console.print(f"  Failed reviews:    {failed}")
    console.print(f"  Total issues:      {total_issues}")
    console.print(f"  Avg per review:    {total_issues / len(completed):.1f}")
    if scores:
        console.print(f"  Avg quality score: {sum(scores) / len(scores):.1f}")

    # --- Severity breakdown ---
    if severity_counter:
        sev_table = Table(title="Severity Breakdown", show_header=True)
        sev_table.add_column("Severity", style="bold")
        sev_table.add_column("Count", justify="right")
        sev_table.add_column("% of total", justify="right")
        _sev_style = {"critical": "red", "high": "yellow", "medium": "blue", "low": "dim"}
        for sev in SEVERITIES:
            count = severity_counter.get(sev, 0)
            pct = f"{count / total_issues * 100:.1f}%"
            style = _sev_style.get(sev, "white")
            sev_table.add_row(f"[{style}]{sev}[/{style}]", str(count), pct)
        console.print(sev_table)

        type_table = Table(title="Issue Types", show_header=True)
        type_table.add_column("Type", style="bold")
        type_table.add_column("Count", justify="right")
        for issue_type in ISSUE_TYPES:
            type_table.add_row(issue_type, str(type_counter.get(issue_type, 0)))
        console.print(type_table)

    # --- Most flagged files ---
    if file_counter:
        file_table = Table(title=f"Top {top} Most Flagged Files", show_header=True)
        file_table.add_column("File")
        file_table.add_column("Issues", justify="right")
        for file_path, count in file_counter.most_common(top):
            file_table.add_row(file_path, str(count))
        console.print(file_table)
