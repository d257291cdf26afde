"""SSH transport — ``scp``/``ssh`` behind ``RemoteTransport``.

Host keys are always verified: connections use ``StrictHostKeyChecking=yes``
against the configured known-hosts file, and ``BatchMode=yes`` so a missing
key or unknown host fails instead of prompting.
"""

from __future__ import annotations

import logging
from pathlib import Path

from releasegate.bridge.shell import CommandError, CommandResult, run_command
from releasegate.models.config import DeploymentTarget

logger = logging.getLogger(__name__)


class TransportError(RuntimeError):
    """Raised when a transfer or remote command cannot be carried out."""


class SshTransport:
    """Authenticated, host-key-verified channel to one deploy target.

    Parameters
    ----------
    target:
        The deployment target (address, port, key, known-hosts file).
    timeout:
        Per-command timeout in seconds; ``None`` waits indefinitely.
    """

    def __init__(self, target: DeploymentTarget, *, timeout: float | None = None) -> None:
        self._target = target
        self._timeout = timeout

    @property
    def target(self) -> DeploymentTarget:
        return self._target

    def _options(self) -> list[str]:
        opts = [
            "-o", "BatchMode=yes",
            "-o", "StrictHostKeyChecking=yes",
        ]
        if self._target.known_hosts_path is not None:
            opts += ["-o", f"UserKnownHostsFile={self._target.known_hosts_path}"]
        if self._target.ssh_key_path is not None:
            opts += ["-i", str(self._target.ssh_key_path)]
        return opts

    # ------------------------------------------------------------------
    # RemoteTransport
    # ------------------------------------------------------------------

    def copy(self, local_path: Path, remote_path: str) -> None:
        command = [
            "scp", *self._options(),
            "-P", str(self._target.port),
            str(local_path),
            f"{self._target.address}:{remote_path}",
        ]
        try:
            result = run_command(command, timeout=self._timeout)
        except CommandError as exc:
            raise TransportError(str(exc)) from exc
        if not result.ok:
            raise TransportError(
                f"scp to {self._target.address}:{remote_path} exited "
                f"{result.exit_code}: {result.output}"
            )
        logger.info("Copied %s to %s:%s", local_path.name, self._target.host, remote_path)

    def execute(self, command: str) -> CommandResult:
        argv = [
            "ssh", *self._options(),
            "-p", str(self._target.port),
            self._target.address,
            command,
        ]
        try:
            result = run_command(argv, timeout=self._timeout)
        except CommandError as exc:
            raise TransportError(str(exc)) from exc
        # ssh reserves 255 for its own connection failures
        if result.exit_code == 255:
            raise TransportError(
                f"ssh to {self._target.address} failed: {result.output}"
            )
        return result
