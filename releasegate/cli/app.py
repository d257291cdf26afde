"""Main Typer application — imports and registers all CLI commands.

Entry point: ``releasegate`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import logging

import typer
from rich.logging import RichHandler

from releasegate.cli.commands.bump import bump_cmd
from releasegate.cli.commands.deploy import deploy_cmd
from releasegate.cli.commands.detect import detect_cmd
from releasegate.cli.commands.history import history_cmd
from releasegate.cli.commands.run import run_cmd
from releasegate.config import settings

app = typer.Typer(
    name="releasegate",
    help="releasegate: change-gated build, publish, and deploy pipeline.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="run", help="Run the full pipeline: checks, gate, bump, build, publish, deploy.")(run_cmd)
app.command(name="detect", help="Decide whether the current revision warrants a deploy.")(detect_cmd)
app.command(name="bump", help="Bump and commit the version file.")(bump_cmd)
app.command(name="deploy", help="Fetch the persisted version from the registry and deploy it.")(deploy_cmd)
app.command(name="history", help="Show Run Ledger history and verify its hash chain.")(history_cmd)


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        None,
        "--log-level",
        help="Logging level (default: RELEASEGATE_LOG_LEVEL).",
    ),
) -> None:
    """Configure logging before any command runs."""
    logging.basicConfig(
        level=(log_level or settings.log_level).upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=settings.debug, show_path=False)],
        force=True,
    )


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
