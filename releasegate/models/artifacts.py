"""Versioned artifact models (immutable once published)."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from releasegate.core.hasher import sha256_hex
from releasegate.models.versioning import VersionIdentifier


class Artifact(BaseModel):
    """A build output bundle for exactly one version.

    The payload is never mutated after publication. A new release is a
    new Artifact under a new version.
    """

    model_config = ConfigDict(frozen=True)

    package_name: str
    version: VersionIdentifier
    filename: str
    payload: bytes
    source_revision: str = ""

    @property
    def sha256(self) -> str:
        return sha256_hex(self.payload)

    @property
    def size_bytes(self) -> int:
        return len(self.payload)


class RegistryAsset(BaseModel):
    """What a registry holds under one (package, version) key."""

    model_config = ConfigDict(frozen=True)

    filename: str
    payload: bytes
    sha256: str = ""  # recorded at upload time; empty if the registry doesn't track it
    source_revision: str = ""


class PublishReceipt(BaseModel):
    """Proof that an artifact is available under its version."""

    model_config = ConfigDict(frozen=True)

    package_name: str
    version: VersionIdentifier
    sha256: str
    size_bytes: int
    location: str  # registry location of the asset
    local_path: Path  # pipeline-local copy for downstream consumers
    already_published: bool = False
    published_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
