"""Deterministic stage state machine for fixed-order pipeline runs.

Enforces:
- Valid state transitions only (VALID_TRANSITIONS table)
- A stage enters RUNNING only after its prerequisite PASSED
- Cascade blocking of every later stage on failure
- Cascade skipping of every gated stage when the deploy gate is closed
- Every transition recorded in the Run Ledger
"""

from __future__ import annotations

from typing import Any

from releasegate.core.run_ledger import RunLedger
from releasegate.models.ledger import LedgerEntry
from releasegate.models.stages import (
    DEFAULT_STAGE_DEFINITIONS,
    VALID_TRANSITIONS,
    StageDefinition,
    StageState,
)


class InvalidTransitionError(RuntimeError):
    """Raised when a requested state transition is not valid."""


class PrerequisiteNotMetError(RuntimeError):
    """Raised when a stage would start before its prerequisite passed."""


class StageMachine:
    """Tracks and records stage states for pipeline runs.

    Parameters
    ----------
    ledger:
        The Run Ledger to record transitions into.
    definitions:
        Ordered stage definitions. Defaults to the standard pipeline.
    """

    def __init__(
        self,
        ledger: RunLedger,
        definitions: list[StageDefinition] | None = None,
    ) -> None:
        self._ledger = ledger
        self._definitions = sorted(
            definitions or DEFAULT_STAGE_DEFINITIONS, key=lambda sd: sd.ordinal
        )
        self._by_id = {sd.stage_id: sd for sd in self._definitions}
        # In-memory state cache: run_id -> {stage_id -> StageState}
        self._states: dict[str, dict[str, StageState]] = {}

    @property
    def stage_ids(self) -> list[str]:
        return [sd.stage_id for sd in self._definitions]

    # ------------------------------------------------------------------
    # State management
    # ------------------------------------------------------------------

    def initialize_run(self, run_id: str) -> dict[str, StageState]:
        """Initialize all stages to NOT_STARTED for a new run."""
        states = {sid: StageState.NOT_STARTED for sid in self.stage_ids}
        self._states[run_id] = states
        return dict(states)

    def get_current_state(self, run_id: str, stage_id: str) -> StageState:
        """Return the current state of a stage in a run."""
        if run_id not in self._states:
            self._rebuild_state(run_id)
        return self._states[run_id].get(stage_id, StageState.NOT_STARTED)

    def get_all_states(self, run_id: str) -> dict[str, StageState]:
        """Return a snapshot of all stage states for a run, in stage order."""
        if run_id not in self._states:
            self._rebuild_state(run_id)
        return dict(self._states[run_id])

    def _rebuild_state(self, run_id: str) -> None:
        """Rebuild in-memory state from the ledger."""
        states = {sid: StageState.NOT_STARTED for sid in self.stage_ids}
        for entry in self._ledger.get_run_entries(run_id):
            if "->" in entry.state_transition:
                _, to_state = entry.state_transition.split("->", 1)
                try:
                    states[entry.stage_id] = StageState(to_state)
                except ValueError:
                    pass
        self._states[run_id] = states

    # ------------------------------------------------------------------
    # Transition logic
    # ------------------------------------------------------------------

    def transition(
        self,
        run_id: str,
        stage_id: str,
        target_state: StageState,
        *,
        input_hash: str = "",
        output_hash: str = "",
        version: str = "",
        detail: dict[str, Any] | None = None,
    ) -> LedgerEntry:
        """Transition a stage to a new state, recording it in the ledger.

        Entering FAILED blocks every later stage; entering SKIPPED on a
        gated stage skips every later gated stage.
        """
        if run_id not in self._states:
            self._rebuild_state(run_id)
        states = self._states[run_id]
        current = states.get(stage_id, StageState.NOT_STARTED)

        allowed = VALID_TRANSITIONS.get(current, set())
        if target_state not in allowed:
            raise InvalidTransitionError(
                f"Cannot transition {stage_id} from {current.value} to {target_state.value}. "
                f"Allowed: {sorted(s.value for s in allowed)}"
            )

        if target_state == StageState.RUNNING:
            prereq = self._by_id[stage_id].prerequisite
            if prereq is not None and states.get(prereq) != StageState.PASSED:
                raise PrerequisiteNotMetError(
                    f"Cannot start {stage_id}: {prereq} is "
                    f"{states.get(prereq, StageState.NOT_STARTED).value}"
                )

        sealed = self._record(
            run_id, stage_id, current, target_state,
            input_hash=input_hash,
            output_hash=output_hash,
            version=version,
            detail=detail,
        )
        states[stage_id] = target_state

        if target_state == StageState.FAILED:
            for later in self._later_stages(stage_id):
                if states[later] == StageState.NOT_STARTED:
                    self._record(run_id, later, StageState.NOT_STARTED, StageState.BLOCKED,
                                 version=version, detail={"blocked_by": stage_id})
                    states[later] = StageState.BLOCKED

        elif target_state == StageState.SKIPPED:
            for later in self._later_stages(stage_id):
                if states[later] == StageState.NOT_STARTED and self._by_id[later].gated:
                    self._record(run_id, later, StageState.NOT_STARTED, StageState.SKIPPED,
                                 version=version, detail={"skipped_with": stage_id})
                    states[later] = StageState.SKIPPED

        return sealed

    def _record(
        self,
        run_id: str,
        stage_id: str,
        from_state: StageState,
        to_state: StageState,
        **fields: Any,
    ) -> LedgerEntry:
        detail = fields.pop("detail", None) or {}
        entry = LedgerEntry(
            run_id=run_id,
            stage_id=stage_id,
            state_transition=f"{from_state.value}->{to_state.value}",
            detail=detail,
            **fields,
        )
        return self._ledger.append(entry)

    def _later_stages(self, stage_id: str) -> list[str]:
        ordinal = self._by_id[stage_id].ordinal
        return [sd.stage_id for sd in self._definitions if sd.ordinal > ordinal]

    # ------------------------------------------------------------------
    # Convenience methods
    # ------------------------------------------------------------------

    def can_start(self, run_id: str, stage_id: str) -> tuple[bool, list[str]]:
        """Check if a stage can transition to RUNNING.

        Returns (can_start, blocking_reasons).
        """
        current = self.get_current_state(run_id, stage_id)
        if current != StageState.NOT_STARTED:
            return False, [f"Stage is currently {current.value}, not not_started"]

        prereq = self._by_id[stage_id].prerequisite
        if prereq is not None:
            prereq_state = self.get_current_state(run_id, prereq)
            if prereq_state != StageState.PASSED:
                return False, [f"{prereq} is {prereq_state.value}"]
        return True, []
