"""Git revision source — the ``git`` CLI behind ``RevisionSource``."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from releasegate.bridge.shell import CommandError, CommandResult, run_command
from releasegate.core.errors import ConfigurationError, VersionBumpError

logger = logging.getLogger(__name__)


class GitRevisionSource:
    """Resolve, diff, and commit against a local git checkout.

    Parameters
    ----------
    repo_path:
        Working tree of the repository.
    push_remote:
        When set, ``commit()`` pushes the current branch to this remote so
        the bump lands in the authoritative history before any build.
    author_name / author_email:
        Identity used for version-bump commits.
    timeout:
        Per-command timeout in seconds; ``None`` waits indefinitely.
    """

    def __init__(
        self,
        repo_path: Path = Path("."),
        *,
        push_remote: str | None = None,
        author_name: str = "releasegate[bot]",
        author_email: str = "releasegate@users.noreply.localhost",
        timeout: float | None = None,
    ) -> None:
        self._repo = Path(repo_path)
        self._push_remote = push_remote
        self._identity = [
            "-c", f"user.name={author_name}",
            "-c", f"user.email={author_email}",
        ]
        self._timeout = timeout

    def _git(self, *args: str) -> CommandResult:
        return run_command(["git", *args], cwd=self._repo, timeout=self._timeout)

    # ------------------------------------------------------------------
    # RevisionSource
    # ------------------------------------------------------------------

    def fetch(self, remote: str, branch: str) -> None:
        """Refresh a remote-tracking ref before it is resolved."""
        result = self._git("fetch", remote, branch)
        if not result.ok:
            raise ConfigurationError(
                f"git fetch {remote} {branch} failed: {result.output}"
            )

    def resolve(self, ref: str) -> str:
        try:
            result = self._git("rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}")
        except CommandError as exc:
            raise ConfigurationError(f"Cannot resolve {ref!r}: {exc}") from exc
        if not result.ok or not result.stdout.strip():
            raise ConfigurationError(f"Cannot resolve revision {ref!r}")
        return result.stdout.strip()

    def diff(self, a: str, b: str) -> bool:
        # --quiet: exit 0 = identical, 1 = differences, anything else = error
        result = self._git("diff", "--quiet", a, b, "--", ".")
        if result.exit_code == 0:
            return False
        if result.exit_code == 1:
            return True
        raise ConfigurationError(f"git diff {a[:12]} {b[:12]} failed: {result.output}")

    def commit(self, files: Sequence[Path], message: str) -> str:
        """Commit *files* (and push, if configured).

        On failure nothing is left behind: the paths are unstaged and a
        commit whose push was rejected is dropped again, so the caller can
        restore the files to match history.
        """
        paths = [str(f) for f in files]
        result = self._git("add", "--", *paths)
        if not result.ok:
            raise VersionBumpError(f"git add failed: {result.output}")
        result = self._git(*self._identity, "commit", "-m", message, "--", *paths)
        if not result.ok:
            self._git("reset", "-q", "--", *paths)
            raise VersionBumpError(f"git commit failed: {result.output}")

        revision = self.resolve("HEAD")
        logger.info("Committed %s as %s", ", ".join(paths), revision[:12])

        if self._push_remote:
            result = self._git("push", self._push_remote, "HEAD")
            if not result.ok:
                self._git("reset", "-q", "HEAD~1")
                raise VersionBumpError(f"git push {self._push_remote} failed: {result.output}")
            logger.info("Pushed %s to %s", revision[:12], self._push_remote)
        return revision
