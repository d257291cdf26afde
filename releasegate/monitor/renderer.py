"""Rich terminal renderer for releasegate runs.

Color scheme
------------
- green     : PASSED
- red       : FAILED
- yellow    : RUNNING
- dim       : NOT_STARTED
- cyan      : SKIPPED
- bold red  : BLOCKED
"""

from __future__ import annotations

from rich.console import Console, Group
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from releasegate.models.deploy import DeployResult, StepOutcome
from releasegate.models.ledger import LedgerEntry
from releasegate.models.runs import RunResult, RunStatus
from releasegate.models.stages import DEFAULT_STAGE_DEFINITIONS, StageDefinition, StageState


# ---------------------------------------------------------------------------
# State -> Rich style mapping
# ---------------------------------------------------------------------------

_STATE_STYLES: dict[StageState, str] = {
    StageState.PASSED: "bold green",
    StageState.FAILED: "bold red",
    StageState.RUNNING: "bold yellow",
    StageState.NOT_STARTED: "dim",
    StageState.SKIPPED: "cyan",
    StageState.BLOCKED: "bold red",
}

_STATE_ICONS: dict[StageState, str] = {
    StageState.PASSED: "[green]PASSED[/green]",
    StageState.FAILED: "[bold red]FAILED[/bold red]",
    StageState.RUNNING: "[yellow]RUNNING[/yellow]",
    StageState.NOT_STARTED: "[dim]NOT STARTED[/dim]",
    StageState.SKIPPED: "[cyan]SKIPPED[/cyan]",
    StageState.BLOCKED: "[bold red]BLOCKED[/bold red]",
}

_STATUS_BORDERS: dict[RunStatus, str] = {
    RunStatus.SUCCEEDED: "green",
    RunStatus.SKIPPED: "cyan",
    RunStatus.FAILED: "red",
}

_OUTCOME_STYLES: dict[StepOutcome, str] = {
    StepOutcome.COMPLETED: "green",
    StepOutcome.FAILED: "bold red",
    StepOutcome.SKIPPED: "dim",
    StepOutcome.DEGRADED: "yellow",
}


def _display_names(definitions: list[StageDefinition]) -> dict[str, str]:
    return {sd.stage_id: sd.display_name for sd in definitions}


class RunRenderer:
    """Renders runs and ledger history as Rich terminal output.

    Parameters
    ----------
    console:
        Rich Console instance. A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    # ------------------------------------------------------------------
    # Run results
    # ------------------------------------------------------------------

    def render_result(
        self,
        result: RunResult,
        definitions: list[StageDefinition] | None = None,
    ) -> Panel:
        """Render a finished run as a Panel: stage table, deploy steps, summary."""
        names = _display_names(definitions or DEFAULT_STAGE_DEFINITIONS)
        parts: list[object] = [self._stage_table(result.stage_states, names)]

        if result.deploy_result is not None:
            parts += [Text(""), self._step_table(result.deploy_result)]

        summary: list[str] = [f"[bold]Run:[/bold] {result.run_id}"]
        if result.decision is not None:
            summary.append(f"[bold]Decision:[/bold] {result.decision.reason}")
        if result.version is not None:
            previous = f"{result.previous_version} -> " if result.previous_version else ""
            summary.append(f"[bold]Version:[/bold] {previous}{result.version}")
        if result.receipt is not None:
            summary.append(f"[bold]Artifact:[/bold] {result.receipt.location}")
        if result.failure is not None:
            summary.append(
                f"[bold red]Failed:[/bold red] {result.failure.error_type}: "
                f"{escape(result.failure.message)}"
            )
        parts += [Text(""), Text.from_markup("\n".join(summary))]

        return Panel(
            Group(*parts),
            title=f"[bold]releasegate: {result.status.value}[/bold]",
            border_style=_STATUS_BORDERS[result.status],
            padding=(1, 2),
        )

    def print_result(
        self, result: RunResult, definitions: list[StageDefinition] | None = None
    ) -> None:
        self.console.print(self.render_result(result, definitions))

    # ------------------------------------------------------------------
    # Ledger history
    # ------------------------------------------------------------------

    def render_entries(self, run_id: str, entries: list[LedgerEntry]) -> Table:
        """Render one run's ledger entries, oldest first."""
        names = _display_names(DEFAULT_STAGE_DEFINITIONS)
        table = Table(title=f"Run {run_id}", header_style="bold cyan", expand=True)
        table.add_column("Time (UTC)", style="dim", width=10)
        table.add_column("Stage", min_width=18)
        table.add_column("Transition", min_width=22)
        table.add_column("Version", width=10)
        table.add_column("Details")

        for entry in entries:
            _, _, to_state = entry.state_transition.partition("->")
            try:
                style = _STATE_STYLES[StageState(to_state)]
            except ValueError:
                style = ""
            table.add_row(
                entry.timestamp_utc.strftime("%H:%M:%S"),
                names.get(entry.stage_id, entry.stage_id),
                f"[{style}]{entry.state_transition}[/{style}]" if style else entry.state_transition,
                entry.version or "[dim]-[/dim]",
                self._summarize_detail(entry.detail),
            )
        return table

    def render_version_history(self, version: str, entries: list[LedgerEntry]) -> Table:
        """Render the entries recorded under one release version, in ledger order."""
        names = _display_names(DEFAULT_STAGE_DEFINITIONS)
        table = Table(title=f"Version {version}", header_style="bold cyan", expand=True)
        table.add_column("Run ID", style="cyan", no_wrap=True)
        table.add_column("Time (UTC)", style="dim", width=8)
        table.add_column("Stage")
        table.add_column("Transition")
        table.add_column("Details")

        previous_run = None
        for entry in entries:
            if previous_run is not None and entry.run_id != previous_run:
                table.add_section()
            table.add_row(
                entry.run_id if entry.run_id != previous_run else "",
                entry.timestamp_utc.strftime("%H:%M:%S"),
                names.get(entry.stage_id, entry.stage_id),
                entry.state_transition,
                self._summarize_detail(entry.detail),
            )
            previous_run = entry.run_id
        return table

    def render_run_index(self, rows: list[tuple[str, int, str]]) -> Table:
        """Render (run_id, entry_count, last_transition) rows, newest first."""
        table = Table(title="Runs", header_style="bold cyan")
        table.add_column("Run ID", style="cyan")
        table.add_column("Entries", justify="right")
        table.add_column("Last transition")
        for run_id, count, last in rows:
            table.add_row(run_id, str(count), last)
        return table

    def print_chain_verification(self, run_id: str, valid: bool) -> None:
        """Print a chain verification result."""
        if valid:
            self.console.print(f"[green]Hash chain for run {run_id} is valid.[/green]")
        else:
            self.console.print(f"[bold red]Hash chain for run {run_id} is BROKEN![/bold red]")

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    @staticmethod
    def _stage_table(states: dict[str, StageState], names: dict[str, str]) -> Table:
        table = Table(show_header=True, header_style="bold cyan", expand=True)
        table.add_column("#", style="dim", width=3, justify="right")
        table.add_column("Stage", min_width=20)
        table.add_column("State", min_width=14, justify="center")

        for i, (stage_id, state) in enumerate(states.items()):
            style = _STATE_STYLES.get(state, "")
            table.add_row(
                str(i),
                f"[{style}]{names.get(stage_id, stage_id)}[/{style}]",
                _STATE_ICONS.get(state, state.value),
            )
        return table

    @staticmethod
    def _step_table(deploy: DeployResult) -> Table:
        table = Table(
            title=f"Deploy to {deploy.target_host}: {deploy.phase.value}",
            header_style="bold cyan",
            expand=True,
        )
        table.add_column("Step", min_width=18)
        table.add_column("Outcome", width=10)
        table.add_column("Detail")
        for step in deploy.steps:
            style = _OUTCOME_STYLES[step.outcome]
            table.add_row(
                step.step.value,
                f"[{style}]{step.outcome.value}[/{style}]",
                escape(step.detail),
            )
        return table

    @staticmethod
    def _summarize_detail(detail: dict) -> str:
        for key in ("message", "reason", "blocked_by", "skipped_with", "version", "phase"):
            if key in detail:
                return escape(f"{key}: {detail[key]}")
        return "[dim]-[/dim]"
