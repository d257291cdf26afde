"""``releasegate bump`` — advance, persist and commit the version file."""

from __future__ import annotations

import typer
from rich.console import Console

from releasegate.cli.wiring import make_revisions
from releasegate.config import ReleaseGateSettings
from releasegate.core.errors import PipelineError
from releasegate.core.version_manager import VersionFile, VersionManager
from releasegate.models.config import PipelineConfig
from releasegate.models.versioning import BumpPolicy

console = Console()


def bump_cmd(
    policy: BumpPolicy = typer.Option(
        None,
        "--policy",
        "-p",
        case_sensitive=False,
        help="Component to advance (default: RELEASEGATE_BUMP_POLICY).",
    ),
) -> None:
    """Bump the version once and commit it.

    Calling this twice bumps twice: there is no deduplication.
    """
    settings = ReleaseGateSettings()
    manager = VersionManager(
        VersionFile(PipelineConfig.from_settings(settings).version_file),
        make_revisions(settings),
        policy or settings.bump_policy,
    )

    try:
        current = manager.current()
        new = manager.bump(current)
    except PipelineError as exc:
        console.print(f"[bold red]Version bump failed:[/bold red] {exc}")
        raise typer.Exit(code=1)

    console.print(f"[bold green]{current} -> {new}[/bold green]")
    # Print the version plainly for scripting
    console.print(str(new), highlight=False)
