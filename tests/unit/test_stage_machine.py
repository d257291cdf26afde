"""Tests for the StageMachine — state transitions, prerequisite enforcement, cascades."""

from __future__ import annotations

import pytest

from releasegate.core.stage_machine import (
    InvalidTransitionError,
    PrerequisiteNotMetError,
    StageMachine,
)
from releasegate.models.stages import (
    BUILD,
    CHECKS,
    DEPLOY,
    DEPLOY_ONLY_STAGE_DEFINITIONS,
    DETECT,
    PUBLISH,
    RETRIEVE,
    VERSION,
    StageState,
)


def _pass(sm: StageMachine, run_id: str, *stage_ids: str) -> None:
    for sid in stage_ids:
        sm.transition(run_id, sid, StageState.RUNNING)
        sm.transition(run_id, sid, StageState.PASSED)


class TestStageMachine:
    def test_initialize_run(self, stage_machine: StageMachine, run_id: str):
        states = stage_machine.initialize_run(run_id)
        assert all(s == StageState.NOT_STARTED for s in states.values())
        assert list(states) == [CHECKS, DETECT, VERSION, BUILD, PUBLISH, RETRIEVE, DEPLOY]

    def test_transition_to_running(self, stage_machine: StageMachine, run_id: str):
        stage_machine.initialize_run(run_id)
        entry = stage_machine.transition(run_id, CHECKS, StageState.RUNNING)
        assert entry.state_transition == "not_started->running"
        assert stage_machine.get_current_state(run_id, CHECKS) == StageState.RUNNING

    def test_invalid_transition_rejected(self, stage_machine: StageMachine, run_id: str):
        stage_machine.initialize_run(run_id)
        with pytest.raises(InvalidTransitionError):
            # Cannot go directly from NOT_STARTED to PASSED
            stage_machine.transition(run_id, CHECKS, StageState.PASSED)

    def test_prerequisite_enforcement(self, stage_machine: StageMachine, run_id: str):
        stage_machine.initialize_run(run_id)
        with pytest.raises(PrerequisiteNotMetError):
            stage_machine.transition(run_id, DETECT, StageState.RUNNING)

    def test_prerequisite_met_after_pass(self, stage_machine: StageMachine, run_id: str):
        stage_machine.initialize_run(run_id)
        _pass(stage_machine, run_id, CHECKS)
        entry = stage_machine.transition(run_id, DETECT, StageState.RUNNING)
        assert entry.state_transition == "not_started->running"

    def test_failure_blocks_every_later_stage(self, stage_machine: StageMachine, run_id: str):
        stage_machine.initialize_run(run_id)
        _pass(stage_machine, run_id, CHECKS, DETECT, VERSION)
        stage_machine.transition(run_id, BUILD, StageState.RUNNING)
        stage_machine.transition(run_id, BUILD, StageState.FAILED)

        states = stage_machine.get_all_states(run_id)
        assert states[VERSION] == StageState.PASSED
        assert states[BUILD] == StageState.FAILED
        assert [states[s] for s in (PUBLISH, RETRIEVE, DEPLOY)] == [StageState.BLOCKED] * 3

    def test_skip_cascades_to_gated_stages(self, stage_machine: StageMachine, run_id: str):
        stage_machine.initialize_run(run_id)
        _pass(stage_machine, run_id, CHECKS, DETECT)
        stage_machine.transition(run_id, VERSION, StageState.SKIPPED)

        states = stage_machine.get_all_states(run_id)
        assert states[DETECT] == StageState.PASSED
        for sid in (VERSION, BUILD, PUBLISH, RETRIEVE, DEPLOY):
            assert states[sid] == StageState.SKIPPED

    def test_no_retry_after_failure(self, stage_machine: StageMachine, run_id: str):
        stage_machine.initialize_run(run_id)
        stage_machine.transition(run_id, CHECKS, StageState.RUNNING)
        stage_machine.transition(run_id, CHECKS, StageState.FAILED)
        with pytest.raises(InvalidTransitionError):
            stage_machine.transition(run_id, CHECKS, StageState.RUNNING)

    def test_terminal_states_have_no_transitions(self, stage_machine: StageMachine, run_id: str):
        stage_machine.initialize_run(run_id)
        _pass(stage_machine, run_id, CHECKS)
        with pytest.raises(InvalidTransitionError):
            stage_machine.transition(run_id, CHECKS, StageState.RUNNING)

    def test_can_start(self, stage_machine: StageMachine, run_id: str):
        stage_machine.initialize_run(run_id)
        can, reasons = stage_machine.can_start(run_id, CHECKS)
        assert can is True
        assert reasons == []

        can, reasons = stage_machine.can_start(run_id, DETECT)
        assert can is False
        assert reasons == ["s0_checks is not_started"]

    def test_state_rebuilt_from_ledger(self, ledger, run_id: str):
        first = StageMachine(ledger)
        first.initialize_run(run_id)
        _pass(first, run_id, CHECKS)
        first.transition(run_id, DETECT, StageState.RUNNING)
        first.transition(run_id, DETECT, StageState.FAILED)

        # A fresh machine has no cache and must replay the ledger
        second = StageMachine(ledger)
        states = second.get_all_states(run_id)
        assert states[CHECKS] == StageState.PASSED
        assert states[DETECT] == StageState.FAILED
        assert states[DEPLOY] == StageState.BLOCKED

    def test_every_transition_recorded(self, stage_machine: StageMachine, ledger, run_id: str):
        stage_machine.initialize_run(run_id)
        _pass(stage_machine, run_id, CHECKS)
        stage_machine.transition(run_id, DETECT, StageState.RUNNING)
        stage_machine.transition(run_id, DETECT, StageState.FAILED)
        # 2 for checks, 2 for detect, 5 cascaded blocks
        assert len(ledger.get_run_entries(run_id)) == 9
        assert ledger.verify_chain(run_id) is True


class TestDeployOnlyStages:
    def test_retrieve_has_no_prerequisite(self, ledger, run_id: str):
        sm = StageMachine(ledger, DEPLOY_ONLY_STAGE_DEFINITIONS)
        assert sm.initialize_run(run_id) == {
            RETRIEVE: StageState.NOT_STARTED,
            DEPLOY: StageState.NOT_STARTED,
        }
        sm.transition(run_id, RETRIEVE, StageState.RUNNING)
        with pytest.raises(PrerequisiteNotMetError):
            sm.transition(run_id, DEPLOY, StageState.RUNNING)
