"""Remote deployer — one deploy attempt as an explicit step state machine.

    Transferring -> Unpacking -> InstallingDeps -> RestartingApp
        -> RestartingFrontend -> Done

Each step is a transition function returning a ``StepResult``. A failed
fatal step moves the attempt to ``Failed`` and raises ``DeployStepError``
naming the step; nothing after it runs. ``RestartingFrontend`` is the one
non-fatal step: a host without a known web server skips it, and a failed
restart is reported as degraded without failing the deploy.

There is no retry and no rollback. Recovery is re-running the pipeline
with a known-good version re-published.
"""

from __future__ import annotations

import logging
import shlex
import tempfile
from collections.abc import Callable
from pathlib import Path, PurePosixPath

from releasegate.bridge.ssh import TransportError
from releasegate.core.errors import DeployStepError
from releasegate.core.interfaces import RemoteTransport
from releasegate.models.artifacts import Artifact
from releasegate.models.config import DeploymentTarget
from releasegate.models.deploy import (
    NON_FATAL_PHASES,
    DeployPhase,
    DeployResult,
    StepOutcome,
    StepResult,
)

logger = logging.getLogger(__name__)

DEPENDENCY_MANIFEST = "requirements.txt"


def unpack_command(archive: str, install_dir: str) -> str:
    """Shell command that replaces *install_dir* with the archive's contents."""
    a, d = shlex.quote(archive), shlex.quote(install_dir)
    if archive.endswith(".zip"):
        extract = f"unzip -o -q {a} -d {d}"
    elif archive.endswith((".tar.gz", ".tgz")):
        extract = f"tar -xzf {a} -C {d}"
    elif archive.endswith(".tar"):
        extract = f"tar -xf {a} -C {d}"
    else:
        raise ValueError(f"Unsupported artifact format: {archive}")
    # Replace, never merge: deploys are not incremental
    return f"rm -rf {d} && mkdir -p {d} && {extract}"


class _Attempt:
    """Mutable bookkeeping for one deploy attempt."""

    def __init__(self, target: DeploymentTarget, artifact: Artifact) -> None:
        self.target = target
        self.artifact = artifact
        self.remote_archive = str(PurePosixPath(target.remote_staging_dir) / artifact.filename)
        self.steps: list[StepResult] = []

    def result(self, phase: DeployPhase) -> DeployResult:
        return DeployResult(
            target_host=self.target.host,
            version=self.artifact.version,
            phase=phase,
            steps=list(self.steps),
        )


class RemoteDeployer:
    """Deploys artifacts to a target over a ``RemoteTransport``."""

    def __init__(self, transport: RemoteTransport) -> None:
        self._transport = transport
        self._steps: list[tuple[DeployPhase, Callable[[_Attempt], StepResult]]] = [
            (DeployPhase.TRANSFERRING, self._transfer),
            (DeployPhase.UNPACKING, self._unpack),
            (DeployPhase.INSTALLING_DEPS, self._install_deps),
            (DeployPhase.RESTARTING_APP, self._restart_app),
            (DeployPhase.RESTARTING_FRONTEND, self._restart_frontend),
        ]

    def deploy(self, target: DeploymentTarget, artifact: Artifact) -> DeployResult:
        attempt = _Attempt(target, artifact)
        logger.info("Deploying %s %s to %s", artifact.package_name, artifact.version, target.host)

        for phase, step in self._steps:
            logger.info("[%s] %s", target.host, phase.value)
            try:
                result = step(attempt)
            except TransportError as exc:
                outcome = StepOutcome.DEGRADED if phase in NON_FATAL_PHASES else StepOutcome.FAILED
                result = StepResult(step=phase, outcome=outcome, detail=str(exc))
            attempt.steps.append(result)

            if result.outcome is StepOutcome.FAILED and result.fatal:
                logger.error("[%s] %s failed: %s", target.host, phase.value, result.detail)
                raise DeployStepError(
                    phase.value, result.detail, result=attempt.result(DeployPhase.FAILED)
                )
            if result.outcome in (StepOutcome.SKIPPED, StepOutcome.DEGRADED):
                logger.warning("[%s] %s %s: %s", target.host, phase.value, result.outcome.value, result.detail)

        logger.info("Deployed %s %s to %s", artifact.package_name, artifact.version, target.host)
        return attempt.result(DeployPhase.DONE)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _run(self, phase: DeployPhase, command: str, detail: str) -> StepResult:
        result = self._transport.execute(command)
        if not result.ok:
            return StepResult(
                step=phase,
                outcome=StepOutcome.FAILED,
                detail=f"exit {result.exit_code}: {result.output}",
            )
        return StepResult(step=phase, outcome=StepOutcome.COMPLETED, detail=detail)

    @staticmethod
    def _systemctl(target: DeploymentTarget, *args: str) -> str:
        prefix = "sudo systemctl" if target.use_sudo else "systemctl"
        return " ".join([prefix, *(shlex.quote(a) for a in args)])

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _transfer(self, attempt: _Attempt) -> StepResult:
        with tempfile.TemporaryDirectory(prefix="releasegate-") as tmp:
            local = Path(tmp) / attempt.artifact.filename
            local.write_bytes(attempt.artifact.payload)
            self._transport.copy(local, attempt.remote_archive)
        return StepResult(
            step=DeployPhase.TRANSFERRING,
            outcome=StepOutcome.COMPLETED,
            detail=f"{attempt.artifact.size_bytes} bytes to {attempt.remote_archive}",
        )

    def _unpack(self, attempt: _Attempt) -> StepResult:
        try:
            command = unpack_command(attempt.remote_archive, attempt.target.install_dir)
        except ValueError as exc:
            return StepResult(step=DeployPhase.UNPACKING, outcome=StepOutcome.FAILED, detail=str(exc))
        return self._run(DeployPhase.UNPACKING, command, f"unpacked into {attempt.target.install_dir}")

    def _install_deps(self, attempt: _Attempt) -> StepResult:
        manifest = str(PurePosixPath(attempt.target.install_dir) / DEPENDENCY_MANIFEST)
        probe = self._transport.execute(f"test -f {shlex.quote(manifest)}")
        if not probe.ok:
            return StepResult(
                step=DeployPhase.INSTALLING_DEPS,
                outcome=StepOutcome.FAILED,
                detail=f"dependency manifest {manifest} not found",
            )
        command = f"{attempt.target.pip_command} install -r {shlex.quote(manifest)}"
        return self._run(DeployPhase.INSTALLING_DEPS, command, f"installed {DEPENDENCY_MANIFEST}")

    def _restart_app(self, attempt: _Attempt) -> StepResult:
        services = attempt.target.managed_services
        for service in services:
            result = self._run(
                DeployPhase.RESTARTING_APP,
                self._systemctl(attempt.target, "restart", service),
                "",
            )
            if not result.ok:
                return StepResult(
                    step=DeployPhase.RESTARTING_APP,
                    outcome=StepOutcome.FAILED,
                    detail=f"{service}: {result.detail}",
                )
        return StepResult(
            step=DeployPhase.RESTARTING_APP,
            outcome=StepOutcome.COMPLETED,
            detail=f"restarted {', '.join(services)}",
        )

    def _restart_frontend(self, attempt: _Attempt) -> StepResult:
        for candidate in attempt.target.frontend_candidates:
            present = self._transport.execute(
                f"systemctl cat {shlex.quote(candidate + '.service')} >/dev/null 2>&1"
            )
            if not present.ok:
                continue
            restart = self._transport.execute(
                self._systemctl(attempt.target, "restart", candidate)
            )
            if restart.ok:
                return StepResult(
                    step=DeployPhase.RESTARTING_FRONTEND,
                    outcome=StepOutcome.COMPLETED,
                    detail=f"restarted {candidate}",
                )
            return StepResult(
                step=DeployPhase.RESTARTING_FRONTEND,
                outcome=StepOutcome.DEGRADED,
                detail=f"{candidate} restart exited {restart.exit_code}: {restart.output}",
            )
        return StepResult(
            step=DeployPhase.RESTARTING_FRONTEND,
            outcome=StepOutcome.SKIPPED,
            detail=f"none of {', '.join(attempt.target.frontend_candidates) or 'no candidates'} present",
        )
