"""``releasegate run`` — execute the full pipeline once.

Checks, change detection, version bump, build, publish, retrieval and
remote deploy, in that order. Exits 1 if any stage failed; a run the
gate skipped exits 0.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from releasegate.cli.wiring import fetch_reference, make_orchestrator, make_revisions
from releasegate.config import ReleaseGateSettings
from releasegate.core.errors import PipelineError
from releasegate.monitor.renderer import RunRenderer

console = Console()


def run_cmd(
    current_ref: str = typer.Option(
        "HEAD",
        "--current",
        "-c",
        help="Revision to release.",
    ),
    reference_ref: str = typer.Option(
        None,
        "--reference",
        "-r",
        help="Revision to compare against (default: RELEASEGATE_REFERENCE_REF).",
    ),
    source_tree: Path = typer.Option(
        None,
        "--source-tree",
        "-s",
        help="Source tree to check and build (default: RELEASEGATE_SOURCE_TREE).",
    ),
    fetch: bool = typer.Option(
        None,
        "--fetch/--no-fetch",
        help="Fetch the reference branch before pinning it.",
    ),
) -> None:
    """Run the pipeline end to end and print the outcome of every stage."""
    settings = ReleaseGateSettings()
    reference = reference_ref or settings.reference_ref
    revisions = make_revisions(settings)

    try:
        if settings.fetch_reference if fetch is None else fetch:
            fetch_reference(revisions, reference)
        orchestrator = make_orchestrator(settings, revisions=revisions)
    except PipelineError as exc:
        console.print(f"[bold red]Configuration error:[/bold red] {exc}")
        raise typer.Exit(code=1)

    try:
        result = orchestrator.run(current_ref, reference, source_tree)
    finally:
        orchestrator.registry.close()
    RunRenderer(console=console).print_result(result)
    raise typer.Exit(code=result.exit_code)
