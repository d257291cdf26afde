"""Automated checks run ahead of the deploy gate.

Each check is an opaque command (unit tests, pytest, coverage). A check
that declares ``requires`` first confirms there is something to run: at
least one file matching the glob must contain ``marker``. An empty test
suite is a failure, not a pass.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from releasegate.bridge.shell import CommandError, run_command
from releasegate.core.errors import CheckError
from releasegate.models.config import CheckSpec

logger = logging.getLogger(__name__)


class CheckResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    exit_code: int
    output: str = ""


class CheckRunner:
    """Runs configured checks in order; the first failure raises ``CheckError``."""

    def __init__(self, checks: Sequence[CheckSpec], *, timeout: float | None = None) -> None:
        self._checks = list(checks)
        self._timeout = timeout

    @property
    def checks(self) -> list[CheckSpec]:
        return list(self._checks)

    def run(self, source_tree: Path) -> list[CheckResult]:
        results: list[CheckResult] = []
        for check in self._checks:
            if check.requires and not self._has_marked_files(source_tree, check):
                raise CheckError(
                    f"Check {check.name!r}: no files matching {check.requires!r}"
                    + (f" mention {check.marker!r}" if check.marker else "")
                )

            logger.info("Running check %s", check.name)
            try:
                result = run_command(check.command, cwd=source_tree, timeout=self._timeout)
            except CommandError as exc:
                raise CheckError(f"Check {check.name!r}: {exc}") from exc
            if not result.ok:
                raise CheckError(
                    f"Check {check.name!r} exited {result.exit_code}: {result.output}"
                )
            results.append(
                CheckResult(name=check.name, exit_code=result.exit_code, output=result.output)
            )
        return results

    @staticmethod
    def _has_marked_files(source_tree: Path, check: CheckSpec) -> bool:
        for path in sorted(source_tree.glob(check.requires or "")):
            if not path.is_file():
                continue
            if not check.marker:
                return True
            try:
                if check.marker in path.read_text(encoding="utf-8", errors="replace"):
                    return True
            except OSError:
                continue
        return False
