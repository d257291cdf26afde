"""Artifact publisher — hands a built artifact to the registry.

The artifact is first exposed in the pipeline-local output directory so
local consumers have it whether or not the upload succeeds, then uploaded
under its exact version. Publishing is safe to retry: the same bytes under
the same version succeed again without being stored twice, different bytes
fail with ``PublishCollisionError``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from releasegate.core.errors import PublishCollisionError
from releasegate.core.interfaces import Registry
from releasegate.models.artifacts import Artifact, PublishReceipt, RegistryAsset

logger = logging.getLogger(__name__)


class ArtifactPublisher:
    """Publishes artifacts to one registry.

    Parameters
    ----------
    registry:
        Destination registry.
    local_output_dir:
        Directory the artifact is exposed in for pipeline-local consumers.
    """

    def __init__(self, registry: Registry, local_output_dir: Path) -> None:
        self._registry = registry
        self._local_dir = Path(local_output_dir)

    def expose_locally(self, artifact: Artifact) -> Path:
        """Write the artifact to ``{local_output_dir}/{version}/{filename}``."""
        path = self._local_dir / str(artifact.version) / artifact.filename
        if path.exists() and path.read_bytes() == artifact.payload:
            return path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(artifact.payload)
        return path

    def publish(self, artifact: Artifact) -> PublishReceipt:
        local_path = self.expose_locally(artifact)
        version = str(artifact.version)

        existing = self._registry.get(artifact.package_name, version)
        if existing is not None:
            if existing.payload != artifact.payload:
                raise PublishCollisionError(
                    f"{artifact.package_name} {version} is already published "
                    f"with a different payload; artifacts are immutable"
                )
            logger.info("%s %s already published, nothing to upload", artifact.package_name, version)
            location = f"{artifact.package_name}/{version}/{existing.filename}"
            already = True
        else:
            location = self._registry.put(
                artifact.package_name,
                version,
                RegistryAsset(
                    filename=artifact.filename,
                    payload=artifact.payload,
                    sha256=artifact.sha256,
                    source_revision=artifact.source_revision,
                ),
            )
            logger.info("Published %s %s to %s", artifact.package_name, version, location)
            already = False

        return PublishReceipt(
            package_name=artifact.package_name,
            version=artifact.version,
            sha256=artifact.sha256,
            size_bytes=artifact.size_bytes,
            location=location,
            local_path=local_path,
            already_published=already,
        )
