"""Package builder — drives the build toolchain for one version."""

from __future__ import annotations

import logging
import shutil
from collections.abc import Sequence
from pathlib import Path

from releasegate.bridge.shell import CommandError, run_command
from releasegate.core.errors import BuildError
from releasegate.models.artifacts import Artifact
from releasegate.models.versioning import VersionIdentifier

logger = logging.getLogger(__name__)

def _expand(part: str, version: VersionIdentifier, out_dir: Path) -> str:
    # Only the two placeholders; other braces (shell, awk, JSON) pass through
    return part.replace("{version}", str(version)).replace("{out_dir}", str(out_dir))


class PackageBuilder:
    """Runs the configured build command and collects its single output.

    The command may reference ``{version}`` and ``{out_dir}``; the version
    is also exported as ``RELEASEGATE_VERSION``. Each build writes into a
    fresh directory, so no earlier artifact can leak into the result.

    Parameters
    ----------
    package_name:
        Registry package name recorded on the artifact.
    command:
        Build command template.
    build_dir:
        Parent of the per-version output directories.
    """

    def __init__(
        self,
        package_name: str,
        command: Sequence[str],
        build_dir: Path,
        *,
        timeout: float | None = None,
    ) -> None:
        self._package_name = package_name
        self._command = list(command)
        self._build_dir = Path(build_dir)
        self._timeout = timeout

    def build(
        self,
        source_tree: Path,
        version: VersionIdentifier,
        source_revision: str = "",
    ) -> Artifact:
        out_dir = (self._build_dir / str(version)).resolve()
        try:
            if out_dir.exists():
                shutil.rmtree(out_dir)
            out_dir.mkdir(parents=True)
        except OSError as exc:
            raise BuildError(f"Cannot prepare build directory {out_dir}: {exc}") from exc

        command = [_expand(part, version, out_dir) for part in self._command]
        logger.info("Building %s %s", self._package_name, version)
        try:
            result = run_command(
                command,
                cwd=source_tree,
                env={"RELEASEGATE_VERSION": str(version)},
                timeout=self._timeout,
            )
        except CommandError as exc:
            raise BuildError(str(exc)) from exc
        if not result.ok:
            raise BuildError(f"Build exited {result.exit_code}: {result.output}")

        outputs = sorted(p for p in out_dir.iterdir() if p.is_file())
        if len(outputs) != 1:
            raise BuildError(
                f"Build must produce exactly one artifact in {out_dir}, "
                f"found {len(outputs)}: {[p.name for p in outputs]}"
            )

        try:
            payload = outputs[0].read_bytes()
        except OSError as exc:
            raise BuildError(f"Cannot read build output {outputs[0]}: {exc}") from exc

        artifact = Artifact(
            package_name=self._package_name,
            version=version,
            filename=outputs[0].name,
            payload=payload,
            source_revision=source_revision,
        )
        logger.info(
            "Built %s (%d bytes, sha256=%s)",
            artifact.filename, artifact.size_bytes, artifact.sha256[:12],
        )
        return artifact
