"""releasegate data models — all Pydantic v2, all frozen (immutable)."""

from releasegate.models.artifacts import Artifact, PublishReceipt, RegistryAsset
from releasegate.models.config import CheckSpec, DeploymentTarget, PipelineConfig, RunConfig
from releasegate.models.decisions import DeployDecision, RevisionDiff
from releasegate.models.deploy import (
    NON_FATAL_PHASES,
    STEP_ORDER,
    DeployPhase,
    DeployResult,
    StepOutcome,
    StepResult,
)
from releasegate.models.ledger import LedgerEntry
from releasegate.models.runs import RunFailure, RunResult, RunStatus
from releasegate.models.stages import (
    DEFAULT_STAGE_DEFINITIONS,
    DEPLOY_ONLY_STAGE_DEFINITIONS,
    VALID_TRANSITIONS,
    StageDefinition,
    StageState,
)
from releasegate.models.versioning import BumpPolicy, InvalidVersionError, VersionIdentifier

__all__ = [
    # versioning
    "BumpPolicy",
    "InvalidVersionError",
    "VersionIdentifier",
    # decisions
    "DeployDecision",
    "RevisionDiff",
    # artifacts
    "Artifact",
    "PublishReceipt",
    "RegistryAsset",
    # deploy
    "DeployPhase",
    "DeployResult",
    "NON_FATAL_PHASES",
    "STEP_ORDER",
    "StepOutcome",
    "StepResult",
    # stages
    "StageState",
    "StageDefinition",
    "VALID_TRANSITIONS",
    "DEFAULT_STAGE_DEFINITIONS",
    "DEPLOY_ONLY_STAGE_DEFINITIONS",
    # ledger
    "LedgerEntry",
    # runs
    "RunFailure",
    "RunResult",
    "RunStatus",
    # config
    "CheckSpec",
    "DeploymentTarget",
    "PipelineConfig",
    "RunConfig",
]
