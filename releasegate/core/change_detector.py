"""Change detection — decides whether the current revision warrants a deploy."""

from __future__ import annotations

import logging

from releasegate.core.errors import ConfigurationError
from releasegate.core.interfaces import RevisionSource
from releasegate.models.decisions import DeployDecision, RevisionDiff

logger = logging.getLogger(__name__)


class ChangeDetector:
    """Compares two pinned revisions through a ``RevisionSource``.

    Both revisions must already be resolved ids. ``pin()`` resolves refs
    once per run so that a moving reference branch cannot change the
    answer halfway through.
    """

    def __init__(self, revisions: RevisionSource) -> None:
        self._revisions = revisions

    def pin(self, current_ref: str, reference_ref: str) -> tuple[str, str]:
        """Resolve both refs to immutable revision ids."""
        return (
            self._revisions.resolve(current_ref),
            self._revisions.resolve(reference_ref),
        )

    def detect(self, current_revision: str, reference_revision: str) -> DeployDecision:
        """Return a decision that is positive iff any tracked file differs."""
        if not current_revision or not reference_revision:
            raise ConfigurationError(
                "Change detection needs two resolved revisions, got "
                f"{current_revision!r} and {reference_revision!r}",
                stage="s1_detect",
            )

        if current_revision == reference_revision:
            has_changes = False
        else:
            has_changes = self._revisions.diff(current_revision, reference_revision)

        decision = DeployDecision(
            should_deploy=has_changes,
            diff=RevisionDiff(
                current=current_revision,
                reference=reference_revision,
                has_changes=has_changes,
            ),
        )
        logger.info(
            "Deploy %s: %s",
            "warranted" if decision.should_deploy else "not warranted",
            decision.reason,
        )
        return decision
