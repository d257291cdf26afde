"""Stage state machine models — fixed-order pipeline stages."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class StageState(str, Enum):
    """Strict state model for each pipeline stage."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    BLOCKED = "blocked"


# Valid state transitions: enforced structurally by StageMachine.
# A run is single-shot: there is no retry edge out of FAILED.
VALID_TRANSITIONS: dict[StageState, set[StageState]] = {
    StageState.NOT_STARTED: {StageState.RUNNING, StageState.SKIPPED, StageState.BLOCKED},
    StageState.RUNNING: {StageState.PASSED, StageState.FAILED},
    StageState.PASSED: set(),  # terminal
    StageState.FAILED: set(),  # terminal
    StageState.SKIPPED: set(),  # terminal
    StageState.BLOCKED: set(),  # terminal
}


class StageDefinition(BaseModel):
    """Defines a pipeline stage and the stage it waits on."""

    model_config = ConfigDict(frozen=True)

    stage_id: str
    display_name: str
    ordinal: int
    prerequisite: str | None = None  # must be PASSED before this stage runs
    gated: bool = False  # skipped when the deploy decision is negative


CHECKS = "s0_checks"
DETECT = "s1_detect"
VERSION = "s2_version"
BUILD = "s3_build"
PUBLISH = "s4_publish"
RETRIEVE = "s5_retrieve"
DEPLOY = "s6_deploy"

# The standard releasegate stage order.
DEFAULT_STAGE_DEFINITIONS: list[StageDefinition] = [
    StageDefinition(stage_id=CHECKS, display_name="Automated Checks", ordinal=0),
    StageDefinition(
        stage_id=DETECT, display_name="Change Detection", ordinal=1, prerequisite=CHECKS
    ),
    StageDefinition(
        stage_id=VERSION,
        display_name="Version Bump",
        ordinal=2,
        prerequisite=DETECT,
        gated=True,
    ),
    StageDefinition(
        stage_id=BUILD, display_name="Package Build", ordinal=3, prerequisite=VERSION, gated=True
    ),
    StageDefinition(
        stage_id=PUBLISH,
        display_name="Artifact Publish",
        ordinal=4,
        prerequisite=BUILD,
        gated=True,
    ),
    StageDefinition(
        stage_id=RETRIEVE,
        display_name="Artifact Retrieval",
        ordinal=5,
        prerequisite=PUBLISH,
        gated=True,
    ),
    StageDefinition(
        stage_id=DEPLOY, display_name="Remote Deploy", ordinal=6, prerequisite=RETRIEVE, gated=True
    ),
]

# Deploy-only invocations: fetch the persisted version and deploy it.
DEPLOY_ONLY_STAGE_DEFINITIONS: list[StageDefinition] = [
    StageDefinition(stage_id=RETRIEVE, display_name="Artifact Retrieval", ordinal=0),
    StageDefinition(
        stage_id=DEPLOY, display_name="Remote Deploy", ordinal=1, prerequisite=RETRIEVE
    ),
]
