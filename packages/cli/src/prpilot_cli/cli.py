"""CLI entry point for prpilot.

Commands:
  serve: run the webhook receiver and HTTP API
  review: review a local diff file through the same pipeline as the webhook
  history: display past review records from the store
  stats: aggregate issue patterns across review history
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console

from prpilot_cli.commands.history import history_cmd
from prpilot_cli.commands.review import review_cmd
from prpilot_cli.commands.serve import serve_cmd
from prpilot_cli.commands.stats import stats_cmd

console = Console()

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _build_store(config: dict):
    """Instantiate the SQLite store at ``store_path`` (default .prpilot.db).

    This factory lives in cli.py so neither prpilot_core nor prpilot_store
    know about the CLI config format.
    """
    from prpilot_store.sqlite import SQLiteStore

    return SQLiteStore(db_path=config.get("store_path", ".prpilot.db"))


@click.group()
@click.version_option(
    version=importlib.metadata.version("prpilot"),
    prog_name="prpilot",
)
@click.option(
    "--config",
    "config_path",
    default=".prpilot.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="PRPILOT_CONFIG",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Logging verbosity. Overrides config file.",
)
@click.pass_context
def main(ctx: click.Context, config_path: str, log_level: str | None):
    """Automated AI code review for GitHub pull requests."""
    from prpilot_core.config import load_config

    ctx.ensure_object(dict)

    try:
        config = load_config(config_path, cli_overrides={"log_level": log_level.upper() if log_level else None})
    except ValueError as e:
        raise click.UsageError(str(e))

    logging.basicConfig(level=config["log_level"], format=LOG_FORMAT)

    store = _build_store(config)
    ctx.obj["store"] = store
    ctx.obj["config"] = config
    ctx.call_on_close(store.close)


main.add_command(serve_cmd)
main.add_command(review_cmd)
main.add_command(history_cmd)
main.add_command(stats_cmd)
