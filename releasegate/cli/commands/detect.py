"""``releasegate detect`` — the deploy gate on its own.

Pins both revisions, compares them, and prints the decision. With
``--output-file`` the decision is also appended as
``should_deploy=true|false``, the format CI step outputs read.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from releasegate.cli.wiring import fetch_reference, make_revisions
from releasegate.config import ReleaseGateSettings
from releasegate.core.change_detector import ChangeDetector
from releasegate.core.errors import PipelineError

console = Console()


def detect_cmd(
    current_ref: str = typer.Option("HEAD", "--current", "-c", help="Revision to release."),
    reference_ref: str = typer.Option(
        None,
        "--reference",
        "-r",
        help="Revision to compare against (default: RELEASEGATE_REFERENCE_REF).",
    ),
    output_file: Path = typer.Option(
        None,
        "--output-file",
        "-o",
        help="Append should_deploy=true|false to this file (e.g. $GITHUB_OUTPUT).",
    ),
    fetch: bool = typer.Option(
        None,
        "--fetch/--no-fetch",
        help="Fetch the reference branch before pinning it.",
    ),
) -> None:
    """Decide whether the current revision differs from the reference."""
    settings = ReleaseGateSettings()
    reference = reference_ref or settings.reference_ref
    revisions = make_revisions(settings)
    detector = ChangeDetector(revisions)

    try:
        if settings.fetch_reference if fetch is None else fetch:
            fetch_reference(revisions, reference)
        current, pinned_reference = detector.pin(current_ref, reference)
        decision = detector.detect(current, pinned_reference)
    except PipelineError as exc:
        console.print(f"[bold red]Change detection failed:[/bold red] {exc}")
        raise typer.Exit(code=1)

    if output_file is not None:
        with output_file.open("a", encoding="utf-8") as fh:
            fh.write(f"should_deploy={'true' if decision.should_deploy else 'false'}\n")

    if decision.should_deploy:
        console.print(f"[bold green]Deploy warranted:[/bold green] {decision.reason}")
    else:
        console.print(f"[cyan]No deploy:[/cyan] {decision.reason}")
