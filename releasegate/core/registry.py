"""Artifact registries keyed by (package name, version).

Storage layout for ``FilesystemRegistry``::

    {root}/{package}/{version}/{filename}
    {root}/{package}/{version}/asset.json

There is no delete method. A key, once written, only ever holds the same
bytes: a second ``put`` with identical content is a no-op, a different
payload is rejected with ``PublishCollisionError``.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path

import httpx

from releasegate.core.errors import PublishCollisionError, RegistryError
from releasegate.core.hasher import sha256_hex
from releasegate.models.artifacts import RegistryAsset

logger = logging.getLogger(__name__)

_SAFE_SEGMENT = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._+-]*$")
_METADATA = "asset.json"


def _segment(value: str, what: str) -> str:
    if not _SAFE_SEGMENT.match(value):
        raise RegistryError(f"Invalid {what} for registry key: {value!r}")
    return value


class FilesystemRegistry:
    """Registry backed by a local or mounted directory.

    Parameters
    ----------
    root:
        Root directory for registry storage.
    """

    def __init__(self, root: Path) -> None:
        self._root = Path(root)
        self._root.mkdir(parents=True, exist_ok=True)

    def _key_dir(self, package: str, version: str) -> Path:
        return self._root / _segment(package, "package") / _segment(version, "version")

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def put(self, package: str, version: str, asset: RegistryAsset) -> str:
        key_dir = self._key_dir(package, version)
        digest = sha256_hex(asset.payload)

        existing = self.get(package, version)
        if existing is not None:
            if sha256_hex(existing.payload) != digest:
                raise PublishCollisionError(
                    f"{package} {version} is already published with a different payload"
                )
            return str(key_dir / existing.filename)

        _segment(asset.filename, "filename")
        key_dir.mkdir(parents=True, exist_ok=True)
        (key_dir / asset.filename).write_bytes(asset.payload)
        # Metadata last: a key without asset.json is treated as absent
        (key_dir / _METADATA).write_text(
            json.dumps(
                {
                    "filename": asset.filename,
                    "sha256": digest,
                    "size_bytes": len(asset.payload),
                    "source_revision": asset.source_revision,
                },
                indent=2,
                sort_keys=True,
            ),
            encoding="utf-8",
        )
        logger.debug("Stored %s %s at %s", package, version, key_dir)
        return str(key_dir / asset.filename)

    def get(self, package: str, version: str) -> RegistryAsset | None:
        key_dir = self._key_dir(package, version)
        meta_path = key_dir / _METADATA
        if not meta_path.exists():
            return None
        meta = json.loads(meta_path.read_text(encoding="utf-8"))
        payload_path = key_dir / meta["filename"]
        payload = payload_path.read_bytes() if payload_path.exists() else b""
        return RegistryAsset(
            filename=meta["filename"],
            payload=payload,
            sha256=meta.get("sha256", ""),
            source_revision=meta.get("source_revision", ""),
        )

    def close(self) -> None:
        pass  # plain files, nothing held open

    def versions(self, package: str) -> list[str]:
        """Return every version published for *package*."""
        package_dir = self._root / _segment(package, "package")
        if not package_dir.exists():
            return []
        return sorted(p.name for p in package_dir.iterdir() if (p / _METADATA).exists())


class HttpRegistry:
    """Registry client for an HTTP object store.

    ``PUT {base_url}/{package}/{version}`` uploads the payload with its
    filename, digest and source revision in headers. ``GET`` on the same
    URL returns them back. 404 means not published; 409 on upload means
    the version already holds different bytes.

    Parameters
    ----------
    base_url:
        Registry root URL.
    token:
        Bearer token sent on every request, if set.
    client:
        Pre-built ``httpx.Client`` (tests pass one with a mock transport).
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: str = "",
        timeout: float = 30.0,
        client: httpx.Client | None = None,
    ) -> None:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        if client is not None:
            client.headers.update(headers)
        self._client = client or httpx.Client(
            base_url=base_url.rstrip("/"), headers=headers, timeout=timeout
        )

    def close(self) -> None:
        self._client.close()

    def put(self, package: str, version: str, asset: RegistryAsset) -> str:
        url = f"/{_segment(package, 'package')}/{_segment(version, 'version')}"
        try:
            resp = self._client.put(
                url,
                content=asset.payload,
                headers={
                    "Content-Type": "application/octet-stream",
                    "X-Asset-Filename": _segment(asset.filename, "filename"),
                    "X-Asset-Sha256": sha256_hex(asset.payload),
                    "X-Source-Revision": asset.source_revision,
                },
            )
        except httpx.RequestError as exc:
            raise RegistryError(f"Upload of {package} {version} failed: {exc}") from exc

        if resp.status_code == 409:
            raise PublishCollisionError(
                f"{package} {version} is already published with a different payload"
            )
        if resp.status_code >= 400:
            raise RegistryError(
                f"Upload of {package} {version} rejected: HTTP {resp.status_code}"
            )
        return str(resp.request.url)

    def get(self, package: str, version: str) -> RegistryAsset | None:
        url = f"/{_segment(package, 'package')}/{_segment(version, 'version')}"
        try:
            resp = self._client.get(url)
        except httpx.RequestError as exc:
            raise RegistryError(f"Lookup of {package} {version} failed: {exc}") from exc

        if resp.status_code == 404:
            return None
        if resp.status_code >= 400:
            raise RegistryError(
                f"Lookup of {package} {version} failed: HTTP {resp.status_code}"
            )
        return RegistryAsset(
            filename=resp.headers.get("X-Asset-Filename", f"{package}-{version}"),
            payload=resp.content,
            sha256=resp.headers.get("X-Asset-Sha256", ""),
            source_revision=resp.headers.get("X-Source-Revision", ""),
        )
