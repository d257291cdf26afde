"""Pipeline error taxonomy.

Every stage failure is a ``PipelineError`` carrying the identity of the
stage that raised it. The orchestrator halts on the first one; no stage
recovers another stage's failure.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from releasegate.models.deploy import DeployResult


class PipelineError(RuntimeError):
    """Base class for all fatal stage failures."""

    stage: str = "pipeline"

    def __init__(self, message: str, *, stage: str | None = None) -> None:
        super().__init__(message)
        if stage is not None:
            self.stage = stage


class ConfigurationError(PipelineError):
    """Unresolvable revision or missing required file. Nothing is attempted."""


class CheckError(PipelineError):
    """An automated check command failed or found nothing to check."""

    stage = "s0_checks"


class VersionBumpError(PipelineError):
    """The bump policy did not advance the version, or it could not be persisted."""

    stage = "s2_version"


class BuildError(PipelineError):
    """The build toolchain failed. A committed version bump is retained."""

    stage = "s3_build"


class PublishCollisionError(PipelineError):
    """A different payload is already published under this version."""

    stage = "s4_publish"


class RegistryError(PipelineError):
    """The registry could not be reached or rejected a request."""

    stage = "s4_publish"


class RetrievalCause(str, Enum):
    VERSION_FILE_UNREADABLE = "version file unreadable"
    NOT_FOUND = "artifact not found"
    EMPTY_ARTIFACT = "empty artifact"
    DIGEST_MISMATCH = "digest mismatch"


class RetrievalError(PipelineError):
    """The exact version's artifact could not be retrieved intact."""

    stage = "s5_retrieve"

    def __init__(self, cause: RetrievalCause, message: str) -> None:
        super().__init__(f"{cause.value}: {message}")
        self.cause = cause


class DeployStepError(PipelineError):
    """A fatal remote deploy step failed. No rollback is attempted."""

    stage = "s6_deploy"

    def __init__(
        self, step: str, cause: str, *, result: DeployResult | None = None
    ) -> None:
        super().__init__(f"{step} failed: {cause}")
        self.step = step
        self.cause = cause
        self.result = result
