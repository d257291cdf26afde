"""Subprocess runner shared by the git and ssh bridges."""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)


class CommandError(RuntimeError):
    """Raised when a command cannot be started or times out."""


class CommandResult(BaseModel):
    """Exit code and captured output of one command."""

    model_config = ConfigDict(frozen=True)

    command: list[str]
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def output(self) -> str:
        """Best single-line summary of what the command said."""
        return (self.stderr.strip() or self.stdout.strip())[:500]


def run_command(
    command: Sequence[str],
    *,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
    timeout: float | None = None,
) -> CommandResult:
    """Run *command* and capture its output.

    A non-zero exit is returned, not raised; callers decide what a failure
    means for their stage. Failing to start the process or exceeding
    *timeout* raises ``CommandError``.
    """
    argv = [str(part) for part in command]
    merged_env = os.environ.copy()
    if env:
        merged_env.update(env)

    logger.debug("run: %s (cwd=%s)", " ".join(argv), cwd or ".")
    try:
        proc = subprocess.run(
            argv,
            cwd=str(cwd) if cwd else None,
            env=merged_env,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        raise CommandError(f"{argv[0]} timed out after {timeout}s") from exc
    except OSError as exc:
        raise CommandError(f"Could not run {argv[0]}: {exc}") from exc

    result = CommandResult(
        command=argv,
        exit_code=proc.returncode,
        stdout=proc.stdout or "",
        stderr=proc.stderr or "",
    )
    if not result.ok:
        logger.debug("%s exited %d: %s", argv[0], result.exit_code, result.output)
    return result
