"""Version manager — advances the persisted release version exactly once.

The new version is written and committed before any build starts. A later
build, publish or deploy failure leaves the bump in place: version numbers
may be burned by failed releases but are never reused. A bump whose
commit fails was never recorded, so the file is put back as it was.
"""

from __future__ import annotations

import logging
from pathlib import Path

from releasegate.core.errors import ConfigurationError, VersionBumpError
from releasegate.core.interfaces import RevisionSource
from releasegate.models.versioning import BumpPolicy, InvalidVersionError, VersionIdentifier

logger = logging.getLogger(__name__)


class VersionFile:
    """A single-line text file holding the current version."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def read(self) -> VersionIdentifier:
        text = self.snapshot()
        lines = [line for line in text.splitlines() if line.strip()]
        if len(lines) != 1:
            raise ConfigurationError(
                f"Version file {self.path} must hold exactly one line, found {len(lines)}"
            )
        try:
            return VersionIdentifier.parse(lines[0])
        except InvalidVersionError as exc:
            raise ConfigurationError(f"Version file {self.path}: {exc}") from exc

    def snapshot(self) -> str:
        """Raw file content, as written before a bump."""
        try:
            return self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigurationError(f"Version file {self.path} unreadable: {exc}") from exc

    def write(self, version: VersionIdentifier) -> None:
        self.restore(f"{version}\n")

    def restore(self, text: str) -> None:
        """Replace the file content atomically."""
        tmp = self.path.with_name(f".{self.path.name}.tmp")
        try:
            tmp.write_text(text, encoding="utf-8")
            tmp.replace(self.path)
        except OSError as exc:
            raise VersionBumpError(f"Cannot write {self.path}: {exc}") from exc


class VersionManager:
    """Bumps, persists and commits the release version.

    Parameters
    ----------
    version_file:
        The persisted version record.
    revisions:
        Where the bump is committed.
    policy:
        Which component to advance (patch by default).
    """

    def __init__(
        self,
        version_file: VersionFile,
        revisions: RevisionSource,
        policy: BumpPolicy = BumpPolicy.PATCH,
    ) -> None:
        self._file = version_file
        self._revisions = revisions
        self._policy = policy

    @property
    def policy(self) -> BumpPolicy:
        return self._policy

    def current(self) -> VersionIdentifier:
        return self._file.read()

    def bump(self, current: VersionIdentifier) -> VersionIdentifier:
        """Advance *current*, persist it, and commit the version file.

        Returns the new version. No deduplication: calling this twice bumps
        twice, so callers invoke it at most once per warranted change.
        """
        new = self._policy.apply(current)
        if not new > current:
            raise VersionBumpError(
                f"Bump policy {self._policy.value!r} produced {new}, which does not follow {current}"
            )

        original = self._file.snapshot()
        self._file.write(new)
        try:
            revision = self._revisions.commit([self._file.path], f"Bump version to {new}")
        except Exception:
            # Not committed, so not burned: the file must match history again
            self._file.restore(original)
            raise
        logger.info("Version %s -> %s committed at %s", current, new, revision[:12])
        return new
