"""Tests for the RunRenderer — Rich output for runs and ledger history."""

from __future__ import annotations

from io import StringIO

from rich.console import Console

from releasegate.models.deploy import DeployPhase, DeployResult, StepOutcome, StepResult
from releasegate.models.ledger import LedgerEntry
from releasegate.models.runs import RunFailure, RunResult, RunStatus
from releasegate.models.stages import StageState
from releasegate.models.versioning import VersionIdentifier
from releasegate.monitor.renderer import RunRenderer


def _render(renderable) -> str:
    console = Console(file=StringIO(), width=160, color_system=None)
    console.print(renderable)
    return console.file.getvalue()


class TestRunRenderer:
    def test_failed_run(self):
        result = RunResult(
            run_id="rg-test",
            status=RunStatus.FAILED,
            stage_states={"s0_checks": StageState.PASSED, "s1_detect": StageState.FAILED},
            failure=RunFailure(
                stage_id="s1_detect", error_type="ConfigurationError",
                message="Cannot resolve revision 'origin/[gone]'",
            ),
        )
        out = _render(RunRenderer().render_result(result))
        assert "releasegate: failed" in out
        assert "Automated Checks" in out
        assert "FAILED" in out
        # Markup in messages is printed literally
        assert "origin/[gone]" in out

    def test_deploy_steps_shown(self):
        v = VersionIdentifier.parse("1.2.4")
        result = RunResult(
            run_id="rg-test",
            status=RunStatus.SUCCEEDED,
            version=v,
            previous_version=VersionIdentifier.parse("1.2.3"),
            deploy_result=DeployResult(
                target_host="10.0.4.17",
                version=v,
                phase=DeployPhase.DONE,
                steps=[StepResult(
                    step=DeployPhase.RESTARTING_FRONTEND,
                    outcome=StepOutcome.SKIPPED,
                    detail="none of apache2, nginx present",
                )],
            ),
        )
        out = _render(RunRenderer().render_result(result))
        assert "1.2.3 -> 1.2.4" in out
        assert "Deploy to 10.0.4.17: Done" in out
        assert "RestartingFrontend" in out
        assert "skipped" in out

    def test_entries(self):
        entries = [
            LedgerEntry(run_id="r", stage_id="s2_version", state_transition="not_started->skipped",
                        detail={"reason": "identical"}),
            LedgerEntry(run_id="r", stage_id="unknown", state_transition="odd"),
        ]
        out = _render(RunRenderer().render_entries("r", entries))
        assert "Version Bump" in out
        assert "reason: identical" in out
        assert "unknown" in out

    def test_version_history_names_each_run_once(self):
        entries = [
            LedgerEntry(run_id="rg-a", stage_id="s2_version", state_transition="running->passed",
                        version="1.2.4", detail={"version": "1.2.4"}),
            LedgerEntry(run_id="rg-a", stage_id="s3_build", state_transition="running->failed",
                        version="1.2.4", detail={"message": "build exited 2"}),
            LedgerEntry(run_id="rg-b", stage_id="s6_deploy", state_transition="running->passed",
                        version="1.2.4"),
        ]
        out = _render(RunRenderer().render_version_history("1.2.4", entries))
        assert "Version 1.2.4" in out
        assert out.count("rg-a") == 1
        assert "rg-b" in out
        assert "Package Build" in out
        assert "Remote Deploy" in out
        assert "message: build exited 2" in out

    def test_chain_verification_message(self):
        console = Console(file=StringIO(), color_system=None)
        RunRenderer(console).print_chain_verification("r", False)
        assert "BROKEN" in console.file.getvalue()
