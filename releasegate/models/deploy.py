"""Remote deploy models — the per-attempt step state machine."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from releasegate.models.versioning import VersionIdentifier


class DeployPhase(str, Enum):
    """Phases of a single deploy attempt, in execution order."""

    TRANSFERRING = "Transferring"
    UNPACKING = "Unpacking"
    INSTALLING_DEPS = "InstallingDeps"
    RESTARTING_APP = "RestartingApp"
    RESTARTING_FRONTEND = "RestartingFrontend"
    DONE = "Done"
    FAILED = "Failed"


# Steps whose failure does not fail the deploy.
NON_FATAL_PHASES: frozenset[DeployPhase] = frozenset({DeployPhase.RESTARTING_FRONTEND})

STEP_ORDER: list[DeployPhase] = [
    DeployPhase.TRANSFERRING,
    DeployPhase.UNPACKING,
    DeployPhase.INSTALLING_DEPS,
    DeployPhase.RESTARTING_APP,
    DeployPhase.RESTARTING_FRONTEND,
]


class StepOutcome(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"  # non-fatal step had nothing to act on
    DEGRADED = "degraded"  # non-fatal step acted and failed


class StepResult(BaseModel):
    """Typed result of one deploy step."""

    model_config = ConfigDict(frozen=True)

    step: DeployPhase
    outcome: StepOutcome
    detail: str = ""

    @property
    def fatal(self) -> bool:
        return self.step not in NON_FATAL_PHASES

    @property
    def ok(self) -> bool:
        return self.outcome is not StepOutcome.FAILED


class DeployResult(BaseModel):
    """Outcome of one deploy attempt against one target."""

    model_config = ConfigDict(frozen=True)

    target_host: str
    version: VersionIdentifier
    phase: DeployPhase
    steps: list[StepResult] = []
    finished_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def succeeded(self) -> bool:
        return self.phase is DeployPhase.DONE

    def step(self, phase: DeployPhase) -> StepResult | None:
        for result in self.steps:
            if result.step is phase:
                return result
        return None
