"""``releasegate deploy`` — deploy-only job.

Reads the persisted version (or takes ``--version``), fetches that exact
version from the registry, and deploys it. Never builds, never bumps.
"""

from __future__ import annotations

import typer
from rich.console import Console

from releasegate.cli.wiring import make_orchestrator
from releasegate.config import ReleaseGateSettings
from releasegate.core.errors import PipelineError
from releasegate.models.stages import DEPLOY_ONLY_STAGE_DEFINITIONS
from releasegate.models.versioning import InvalidVersionError, VersionIdentifier
from releasegate.monitor.renderer import RunRenderer

console = Console()


def deploy_cmd(
    version: str = typer.Option(
        None,
        "--version",
        "-v",
        help="Exact version to deploy (default: the version file).",
    ),
) -> None:
    """Fetch one exact published version and deploy it."""
    settings = ReleaseGateSettings()

    exact = None
    if version:
        try:
            exact = VersionIdentifier.parse(version)
        except InvalidVersionError as exc:
            console.print(f"[bold red]Invalid version:[/bold red] {exc}")
            raise typer.Exit(code=1)

    try:
        orchestrator = make_orchestrator(settings)
    except PipelineError as exc:
        console.print(f"[bold red]Configuration error:[/bold red] {exc}")
        raise typer.Exit(code=1)

    try:
        result = orchestrator.deploy_only(exact)
    finally:
        orchestrator.registry.close()
    RunRenderer(console=console).print_result(result, DEPLOY_ONLY_STAGE_DEFINITIONS)
    raise typer.Exit(code=result.exit_code)
