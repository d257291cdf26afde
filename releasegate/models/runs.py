"""Run outcome models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict

from releasegate.models.artifacts import PublishReceipt
from releasegate.models.decisions import DeployDecision
from releasegate.models.deploy import DeployResult
from releasegate.models.stages import StageState
from releasegate.models.versioning import VersionIdentifier


class RunStatus(str, Enum):
    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"  # gate said no deploy; detection still succeeded
    FAILED = "failed"


class RunFailure(BaseModel):
    """The first fatal failure of a run: which stage, what kind, why."""

    model_config = ConfigDict(frozen=True)

    stage_id: str
    error_type: str
    message: str
    step: str | None = None  # deploy step name for DeployStepError
    cause: str | None = None  # retrieval cause for RetrievalError


class RunResult(BaseModel):
    """Terminal status of one pipeline run."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    status: RunStatus
    stage_states: dict[str, StageState] = {}
    decision: DeployDecision | None = None
    previous_version: VersionIdentifier | None = None
    version: VersionIdentifier | None = None
    receipt: PublishReceipt | None = None
    deploy_result: DeployResult | None = None
    failure: RunFailure | None = None

    @property
    def exit_code(self) -> int:
        return 1 if self.status is RunStatus.FAILED else 0

    def executed_stages(self) -> list[str]:
        """Stages that actually ran (passed or failed), in order."""
        return [
            sid
            for sid, state in self.stage_states.items()
            if state in (StageState.PASSED, StageState.FAILED)
        ]
