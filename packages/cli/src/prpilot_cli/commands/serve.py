"""serve: run the HTTP API under uvicorn."""

from __future__ import annotations

import click
import uvicorn
from rich.console import Console

from prpilot_core.reviewer import build_reviewer
from prpilot_server.app import create_app

console = Console()


@click.command("serve")
@click.option("--host", default="127.0.0.1", show_default=True, help="Interface to bind.")
@click.option("--port", default=8000, show_default=True, type=int, help="Port to listen on.")
@click.pass_context
def serve_cmd(ctx, host: str, port: int):
    """Serve the webhook receiver and review API.

    \b
    Required environment variables (one, matching the configured model):
      GROQ_API_KEY         Default provider (model: groq)
      OPENAI_API_KEY       model: openai
      ANTHROPIC_API_KEY    model: anthropic
    """
    config = ctx.obj["config"]
    store = ctx.obj["store"]

    reviewer = build_reviewer(config)
    if reviewer is None:
        console.print(
            f"[yellow]No API key set for model '{config['model']}'. "
            "Review requests will return 503 until one is configured.[/yellow]"
        )

    app = create_app(config, store, reviewer)
    console.print(f"[green]PRPilot listening on http://{host}:{port}[/green]  (webhook: /api/prpilot/webhook)")
    uvicorn.run(app, host=host, port=port, log_level=config["log_level"].lower())
