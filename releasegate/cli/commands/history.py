"""``releasegate history [RUN_ID]`` — read the Run Ledger.

Without a run ID, lists recorded runs newest first. With one, shows that
run's transitions and optionally verifies its hash chain. ``--version``
shows every run that touched one release version: the run that bumped to
it, the runs that built, published or deployed it.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from releasegate.config import ReleaseGateSettings
from releasegate.core.run_ledger import LedgerIntegrityError, RunLedger
from releasegate.models.versioning import InvalidVersionError, VersionIdentifier
from releasegate.monitor.renderer import RunRenderer

console = Console()


def history_cmd(
    run_id: str = typer.Argument(
        None,
        help="The run to show. Lists runs when omitted.",
    ),
    version: str = typer.Option(
        None,
        "--version",
        "-v",
        help="Show every recorded transition for this release version.",
    ),
    verify_chain: bool = typer.Option(
        False,
        "--verify-chain",
        "-V",
        help="Verify the hash chain integrity of the run.",
    ),
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum runs to list."),
    ledger_db: Path = typer.Option(
        None,
        "--ledger",
        "-l",
        help="Path to the ledger SQLite database (default: RELEASEGATE_LEDGER_PATH).",
    ),
) -> None:
    """Show recorded runs, one run's ledger entries, or one version's history."""
    db_path = ledger_db or ReleaseGateSettings().ledger_path
    if not db_path.exists():
        console.print(f"[bold red]Ledger not found:[/bold red] {db_path}")
        console.print("[dim]Record a run first with: releasegate run[/dim]")
        raise typer.Exit(code=1)

    ledger = RunLedger(db_path)
    renderer = RunRenderer(console=console)

    if version is not None:
        if run_id is not None:
            console.print("[bold red]Give either a run ID or --version, not both.[/bold red]")
            raise typer.Exit(code=1)
        try:
            version = str(VersionIdentifier.parse(version))
        except InvalidVersionError as exc:
            console.print(f"[bold red]Invalid version:[/bold red] {exc}")
            raise typer.Exit(code=1)
        entries = ledger.get_version_entries(version)
        if not entries:
            console.print(f"[dim]No runs recorded for version {version}.[/dim]")
            raise typer.Exit(code=1)
        console.print(renderer.render_version_history(version, entries))
        return

    if run_id is None:
        rows = []
        for rid in ledger.get_all_run_ids()[:limit]:
            entries = ledger.get_run_entries(rid)
            last = f"{entries[-1].stage_id} {entries[-1].state_transition}" if entries else ""
            rows.append((rid, len(entries), last))
        if not rows:
            console.print("[dim]No runs recorded.[/dim]")
            return
        console.print(renderer.render_run_index(rows))
        return

    entries = ledger.get_run_entries(run_id)
    if not entries:
        console.print(f"[bold red]Run not found:[/bold red] {run_id}")
        raise typer.Exit(code=1)

    console.print(renderer.render_entries(run_id, entries))

    if verify_chain:
        try:
            valid = ledger.verify_chain(run_id)
        except LedgerIntegrityError as exc:
            console.print(f"[bold red]Chain verification failed:[/bold red] {exc}")
            valid = False
        renderer.print_chain_verification(run_id, valid)
        if not valid:
            raise typer.Exit(code=1)
