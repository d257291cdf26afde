"""Deploy gate models — the go/no-go value threaded through a run."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class RevisionDiff(BaseModel):
    """Comparison of two pinned revisions.

    Computed once per pipeline run. Revision state is external and
    mutable, so a diff is never reused across runs.
    """

    model_config = ConfigDict(frozen=True)

    current: str  # resolved revision id
    reference: str  # resolved revision id
    has_changes: bool


class DeployDecision(BaseModel):
    """The deploy gate. Once ``should_deploy`` is False no later stage runs."""

    model_config = ConfigDict(frozen=True)

    should_deploy: bool
    diff: RevisionDiff

    @property
    def reason(self) -> str:
        if self.should_deploy:
            return (
                f"{self.diff.current[:12]} differs from {self.diff.reference[:12]}"
            )
        return f"{self.diff.current[:12]} is identical to {self.diff.reference[:12]}"
