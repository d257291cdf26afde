"""Protocols for the external collaborators the pipeline drives.

The stages depend only on these. ``releasegate.bridge`` and
``releasegate.core.registry`` provide the production implementations;
tests substitute in-memory fakes.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Protocol, runtime_checkable

from releasegate.bridge.shell import CommandResult
from releasegate.models.artifacts import RegistryAsset


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class RevisionSource(Protocol):
    """Repository history: resolve refs, compare revisions, record commits."""

    def resolve(self, ref: str) -> str:
        """Return the immutable revision id for *ref*.

        Raises ``ConfigurationError`` if the ref does not exist.
        """
        ...

    def diff(self, a: str, b: str) -> bool:
        """Return ``True`` if any tracked file differs between *a* and *b*."""
        ...

    def commit(self, files: Sequence[Path], message: str) -> str:
        """Commit *files* and return the new revision id."""
        ...


@runtime_checkable
class Registry(Protocol):
    """Versioned key-value store for artifacts, keyed by (package, version)."""

    def put(self, package: str, version: str, asset: RegistryAsset) -> str:
        """Store *asset* and return its location."""
        ...

    def get(self, package: str, version: str) -> RegistryAsset | None:
        """Return the asset stored under the key, or ``None`` if absent."""
        ...

    def close(self) -> None:
        """Release any connection the registry holds."""
        ...


@runtime_checkable
class RemoteTransport(Protocol):
    """Authenticated transfer and remote execution on a deploy target."""

    def copy(self, local_path: Path, remote_path: str) -> None:
        """Copy a local file to the target. Raises ``TransportError`` on failure."""
        ...

    def execute(self, command: str) -> CommandResult:
        """Run *command* on the target and return its exit code and output."""
        ...
