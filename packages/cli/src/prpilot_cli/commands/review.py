"""review: run an AI review on a local diff file."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from prpilot_core.models import PullRequestInfo, ReviewResult
from prpilot_core.reviewer import ReviewRequest, build_reviewer, run_review

console = Console()

_SEVERITY_STYLE = {"critical": "red", "high": "yellow", "medium": "blue", "low": "dim"}
_EVENT_STYLE = {"APPROVE": "green", "COMMENT": "yellow", "REQUEST_CHANGES": "red"}


def print_result(result: ReviewResult, event: str) -> None:
    """Print a review result to the terminal."""
    style = _EVENT_STYLE.get(event, "white")
    console.print(f"\n[bold]Quality score:[/bold] {result.quality_score}/100   [{style}]{event}[/{style}]")
    console.print(f"\n{result.summary}\n")
    if not result.parsed:
        console.print("[yellow]Model reply was not valid JSON; showing its raw text as the summary.[/yellow]\n")

    if result.issues:
        table = Table(title=f"Issues ({len(result.issues)})", show_header=True, header_style="bold cyan")
        table.add_column("Severity", width=10)
        table.add_column("Type", width=16)
        table.add_column("Location", max_width=40)
        table.add_column("Issue")
        for issue in result.issues:
            sev_style = _SEVERITY_STYLE.get(issue.severity, "white")
            location = issue.file or ""
            if issue.file and issue.line:
                location += f":{issue.line}"
            table.add_row(f"[{sev_style}]{issue.severity}[/{sev_style}]", issue.type, location, issue.title)
        console.print(table)
    else:
        console.print("[green]No issues found.[/green]")

    for violation in result.rule_violations:
        location = f" ({violation['file']})" if violation.get("file") else ""
        console.print(f"  [red]![/red] Rule [bold]{violation['rule']}[/bold]{location}: {violation['description']}")
    for suggestion in result.suggestions:
        console.print(f"  [cyan]•[/cyan] {suggestion.get('title', 'Suggestion')}: {suggestion.get('description', '')}")
    for highlight in result.highlights:
        console.print(f"  [green]+[/green] {highlight}")


@click.command("review")
@click.option(
    "--diff",
    "diff_file",
    type=click.File("r", encoding="utf-8"),
    required=True,
    help="Unified diff to review ('-' reads stdin).",
)
@click.option("--user-id", required=True, envvar="PRPILOT_USER_ID", help="Owner of the stored review.")
@click.option("--repo-id", default=None, help="Registered repository id; its rules are applied.")
@click.option("--pr", "pr_number", type=int, default=None, help="Pull request number, if any.")
@click.option("--title", default=None, help="Pull request title, added to the prompt.")
@click.option(
    "--model",
    type=click.Choice(["groq", "openai", "anthropic"]),
    default=None,
    help="AI model provider. Overrides config file.",
)
@click.pass_context
def review_cmd(
    ctx,
    diff_file,
    user_id: str,
    repo_id: str | None,
    pr_number: int | None,
    title: str | None,
    model: str | None,
):
    """Review a diff with the configured model and save the result.

    \b
    Example:
      git diff main... | prpilot review --diff - --user-id me
    """
    config = dict(ctx.obj["config"])
    if model:
        config["model"] = model
    store = ctx.obj["store"]

    reviewer = build_reviewer(config)
    if reviewer is None:
        raise click.UsageError(f"{config['model'].upper()}_API_KEY environment variable is not set.")

    diff = diff_file.read()
    if not diff.strip():
        raise click.UsageError("The diff is empty.")

    request = ReviewRequest(
        user_id=user_id,
        diff=diff,
        repo_id=repo_id,
        pr=PullRequestInfo(number=pr_number, title=title),
        triggered_by="cli",
    )
    try:
        with console.status(f"Reviewing with {reviewer.name}..."):
            outcome = run_review(
                request,
                store,
                reviewer,
                poster=None,
                max_diff_chars=config.get("max_diff_chars", 15000),
                reuse_in_progress=True,
            )
    except Exception as e:
        # The pipeline has already marked the stored review as failed.
        raise click.ClickException(f"Review failed: {e}")

    print_result(outcome.result, outcome.event)
    if outcome.saved:
        console.print(f"\n[dim]Saved review {outcome.review_id}[/dim]")
    else:
        console.print(f"\n[yellow]{outcome.warning}[/yellow]")
