"""Artifact retriever — fetches one exact version from the registry.

There is no "latest" lookup. The deploy side asks for the literal version
the bump produced, so a concurrent newer publish cannot slip into this
deploy. Every failure is fatal and names its cause; nothing is retried.
"""

from __future__ import annotations

import logging
from pathlib import Path

from releasegate.core.errors import ConfigurationError, RetrievalCause, RetrievalError
from releasegate.core.hasher import sha256_hex
from releasegate.core.interfaces import Registry
from releasegate.core.version_manager import VersionFile
from releasegate.models.artifacts import Artifact
from releasegate.models.versioning import VersionIdentifier

logger = logging.getLogger(__name__)


class ArtifactRetriever:
    def __init__(self, package_name: str) -> None:
        self._package_name = package_name

    @staticmethod
    def read_version(version_file: Path) -> VersionIdentifier:
        """Read the persisted version for a deploy-only invocation."""
        try:
            return VersionFile(version_file).read()
        except ConfigurationError as exc:
            raise RetrievalError(RetrievalCause.VERSION_FILE_UNREADABLE, str(exc)) from exc

    def fetch(self, registry: Registry, exact_version: VersionIdentifier) -> Artifact:
        version = str(exact_version)
        asset = registry.get(self._package_name, version)
        if asset is None:
            raise RetrievalError(
                RetrievalCause.NOT_FOUND,
                f"registry has no asset for {self._package_name} {version}",
            )
        if not asset.payload:
            raise RetrievalError(
                RetrievalCause.EMPTY_ARTIFACT,
                f"{asset.filename} for {self._package_name} {version} is zero bytes",
            )
        digest = sha256_hex(asset.payload)
        if asset.sha256 and asset.sha256 != digest:
            raise RetrievalError(
                RetrievalCause.DIGEST_MISMATCH,
                f"{asset.filename} hashes to {digest[:12]}, registry recorded {asset.sha256[:12]}",
            )

        logger.info("Fetched %s (%d bytes) for %s", asset.filename, len(asset.payload), version)
        return Artifact(
            package_name=self._package_name,
            version=exact_version,
            filename=asset.filename,
            payload=asset.payload,
            source_revision=asset.source_revision,
        )
