"""Pipeline orchestrator — the central coordinator for releasegate runs.

The Orchestrator wires the RunLedger and StageMachine to the stage
components (checks, change detection, version bump, build, publish,
retrieval, remote deploy) and threads each stage's output into the next
one as a plain value. Stages run strictly in order. The first stage
failure halts the run; every later stage is recorded as blocked.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, TypeVar

from releasegate.bridge.shell import CommandError
from releasegate.bridge.ssh import SshTransport, TransportError
from releasegate.config import ReleaseGateSettings
from releasegate.core.builder import PackageBuilder
from releasegate.core.change_detector import ChangeDetector
from releasegate.core.checks import CheckRunner
from releasegate.core.deployer import RemoteDeployer
from releasegate.core.errors import (
    ConfigurationError,
    DeployStepError,
    PipelineError,
    RetrievalError,
)
from releasegate.core.hasher import compute_input_hash, compute_output_hash
from releasegate.core.interfaces import Registry, RemoteTransport, RevisionSource
from releasegate.core.production_guard import enforce_production_constraints
from releasegate.core.publisher import ArtifactPublisher
from releasegate.core.retriever import ArtifactRetriever
from releasegate.core.run_ledger import RunLedger
from releasegate.core.stage_machine import StageMachine
from releasegate.core.version_manager import VersionFile, VersionManager
from releasegate.models.artifacts import Artifact
from releasegate.models.config import DeploymentTarget, PipelineConfig, RunConfig
from releasegate.models.decisions import DeployDecision
from releasegate.models.deploy import DeployResult
from releasegate.models.ledger import LedgerEntry
from releasegate.models.runs import RunFailure, RunResult, RunStatus
from releasegate.models.stages import (
    BUILD,
    CHECKS,
    DEFAULT_STAGE_DEFINITIONS,
    DEPLOY,
    DEPLOY_ONLY_STAGE_DEFINITIONS,
    DETECT,
    PUBLISH,
    RETRIEVE,
    VERSION,
    StageState,
)
from releasegate.models.versioning import VersionIdentifier

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Orchestrator:
    """Central pipeline orchestrator.

    Parameters
    ----------
    config:
        Pipeline configuration.
    revisions:
        Repository history used for change detection and the bump commit.
    registry:
        Where artifacts are published and fetched from.
    transport:
        Channel to the deploy target. Defaults to ``SshTransport`` for
        ``config.target``.
    builder:
        Package builder. Defaults to one driven by ``config.build_command``.
    checks:
        Check runner. Defaults to one running ``config.checks``.
    ledger:
        Run Ledger. Defaults to one at ``config.ledger_db_path``.
    run_id:
        Identifier for this run. Generated if not provided.
    settings:
        Environment settings, checked by the production guard.
    """

    def __init__(
        self,
        config: PipelineConfig,
        *,
        revisions: RevisionSource,
        registry: Registry,
        transport: RemoteTransport | None = None,
        builder: PackageBuilder | None = None,
        checks: CheckRunner | None = None,
        ledger: RunLedger | None = None,
        run_id: str | None = None,
        settings: ReleaseGateSettings | None = None,
    ) -> None:
        self.config = config
        self._settings = settings or ReleaseGateSettings()

        # Production guard: fails hard if production constraints are violated
        enforce_production_constraints(self._settings)

        timeout = self._settings.command_timeout
        self.registry = registry
        self.ledger = ledger or RunLedger(config.ledger_db_path)
        self.checks = checks or CheckRunner(config.checks, timeout=timeout)
        self.detector = ChangeDetector(revisions)
        self.version_manager = VersionManager(
            VersionFile(config.version_file), revisions, config.bump_policy
        )
        self.builder = builder or PackageBuilder(
            config.package_name, config.build_command, config.build_dir, timeout=timeout
        )
        self.publisher = ArtifactPublisher(registry, config.local_output_dir)
        self.retriever = ArtifactRetriever(config.package_name)
        if transport is None and config.target is not None:
            transport = SshTransport(config.target, timeout=timeout)
        self.deployer = RemoteDeployer(transport) if transport is not None else None

        ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        self.run_id = run_id or f"rg-{ts}-{uuid.uuid4().hex[:3]}"
        self.run_config: RunConfig | None = None
        self.stage_machine = StageMachine(self.ledger, DEFAULT_STAGE_DEFINITIONS)

    # ------------------------------------------------------------------
    # Full pipeline
    # ------------------------------------------------------------------

    def run(
        self,
        current_ref: str = "HEAD",
        reference_ref: str | None = None,
        source_tree: Path | None = None,
    ) -> RunResult:
        """Execute one pipeline run end to end.

        Returns a ``RunResult``; stage failures are reported there rather
        than raised. A run whose revisions are identical ends ``SKIPPED``
        with no side effects beyond the checks.
        """
        self.run_config = RunConfig(
            run_id=self.run_id,
            pipeline_config=self.config,
            current_ref=current_ref,
            reference_ref=reference_ref or self.config.reference_ref,
        )
        tree = Path(source_tree or self.config.source_tree)
        self.stage_machine.initialize_run(self.run_id)
        logger.info(
            "Run %s: %s against %s",
            self.run_id, self.run_config.current_ref, self.run_config.reference_ref,
        )

        outcome: dict[str, Any] = {}
        try:
            self._execute(
                CHECKS,
                lambda: self.checks.run(tree),
                inputs={"checks": [c.name for c in self.checks.checks]},
                outputs=lambda results: {"passed": [r.name for r in results]},
            )

            decision = self._execute(
                DETECT,
                self._detect,
                inputs={
                    "current_ref": self.run_config.current_ref,
                    "reference_ref": self.run_config.reference_ref,
                },
                outputs=lambda d: d.model_dump(mode="json"),
            )
            outcome["decision"] = decision

            if not decision.should_deploy:
                self.stage_machine.transition(
                    self.run_id, VERSION, StageState.SKIPPED,
                    detail={"reason": decision.reason},
                )
                logger.info("Run %s: no changes, nothing to release", self.run_id)
                return self._result(RunStatus.SKIPPED, **outcome)

            target = self._require_target()
            previous = self.version_manager.current()
            outcome["previous_version"] = previous

            version = self._execute(
                VERSION,
                lambda: self.version_manager.bump(previous),
                inputs={"current": str(previous), "policy": self.version_manager.policy.value},
                outputs=lambda v: {"version": str(v)},
                version_of=str,
            )
            outcome["version"] = version

            artifact = self._execute(
                BUILD,
                lambda: self.builder.build(tree, version, decision.diff.current),
                inputs={"version": str(version), "revision": decision.diff.current},
                outputs=lambda a: {"filename": a.filename, "sha256": a.sha256},
                version=str(version),
            )

            receipt = self._execute(
                PUBLISH,
                lambda: self.publisher.publish(artifact),
                inputs={"version": str(version), "sha256": artifact.sha256},
                outputs=lambda r: r.model_dump(mode="json", exclude={"published_at"}),
                version=str(version),
            )
            outcome["receipt"] = receipt

            # Fetch the exact version just published, never "latest"
            fetched = self._execute(
                RETRIEVE,
                lambda: self.retriever.fetch(self.registry, version),
                inputs={"package": self.config.package_name, "version": str(version)},
                outputs=lambda a: {"filename": a.filename, "sha256": a.sha256},
                version=str(version),
            )
            outcome["deploy_result"] = self._deploy(target, fetched)

        except PipelineError as exc:
            return self._failed(exc, **outcome)

        return self._result(RunStatus.SUCCEEDED, **outcome)

    # ------------------------------------------------------------------
    # Deploy-only
    # ------------------------------------------------------------------

    def deploy_only(self, version: VersionIdentifier | None = None) -> RunResult:
        """Fetch and deploy an already-published version.

        When *version* is omitted the persisted version file is read; an
        unreadable file fails retrieval with its own cause.
        """
        self.stage_machine = StageMachine(self.ledger, DEPLOY_ONLY_STAGE_DEFINITIONS)
        self.stage_machine.initialize_run(self.run_id)
        logger.info("Run %s: deploy-only", self.run_id)

        def retrieve() -> Artifact:
            self._require_target(RETRIEVE)
            exact = version or self.retriever.read_version(self.config.version_file)
            return self.retriever.fetch(self.registry, exact)

        outcome: dict[str, Any] = {}
        try:
            fetched = self._execute(
                RETRIEVE,
                retrieve,
                inputs={
                    "package": self.config.package_name,
                    "version": str(version) if version else "",
                    "version_file": str(self.config.version_file),
                },
                outputs=lambda a: {"filename": a.filename, "sha256": a.sha256},
                version_of=lambda a: str(a.version),
            )
            outcome["version"] = fetched.version
            outcome["deploy_result"] = self._deploy(self._require_target(DEPLOY), fetched)
        except PipelineError as exc:
            return self._failed(exc, **outcome)
        return self._result(RunStatus.SUCCEEDED, **outcome)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _detect(self) -> DeployDecision:
        current, reference = self.detector.pin(
            self.run_config.current_ref, self.run_config.reference_ref
        )
        logger.info("Pinned %s=%s %s=%s",
                    self.run_config.current_ref, current[:12],
                    self.run_config.reference_ref, reference[:12])
        decision = self.detector.detect(current, reference)
        if decision.should_deploy:
            # A release needs both before anything is committed
            self._require_target(DETECT)
            self.version_manager.current()
        return decision

    def _deploy(self, target: DeploymentTarget, artifact: Artifact) -> DeployResult:
        return self._execute(
            DEPLOY,
            lambda: self.deployer.deploy(target, artifact),
            inputs={"host": target.host, "version": str(artifact.version), "sha256": artifact.sha256},
            outputs=lambda r: {
                "phase": r.phase.value,
                "steps": {s.step.value: s.outcome.value for s in r.steps},
            },
            version=str(artifact.version),
        )

    def _require_target(self, stage: str = DETECT) -> DeploymentTarget:
        if self.config.target is None or self.deployer is None:
            raise ConfigurationError(
                "No deploy target configured. Set RELEASEGATE_DEPLOY_HOST.",
                stage=stage,
            )
        return self.config.target

    # ------------------------------------------------------------------
    # Stage execution
    # ------------------------------------------------------------------

    def _execute(
        self,
        stage_id: str,
        handler: Callable[[], T],
        *,
        inputs: dict[str, Any],
        outputs: Callable[[T], dict[str, Any]],
        version: str = "",
        version_of: Callable[[T], str] | None = None,
    ) -> T:
        """Run one stage through its lifecycle.

        1. Transition to RUNNING (prerequisite checked by the StageMachine)
        2. Call the handler
        3. Transition to PASSED with the output hash

        A raising handler leaves the stage RUNNING; ``_failed`` closes it.
        Any non-pipeline exception escaping a handler (bridge errors, I/O
        errors, malformed registry metadata) is re-raised as a failure of
        the stage that was running.
        """
        input_hash = compute_input_hash(stage_id, inputs)
        self.stage_machine.transition(
            self.run_id, stage_id, StageState.RUNNING,
            input_hash=input_hash, version=version,
        )

        try:
            result = handler()
        except PipelineError:
            raise
        except (CommandError, TransportError) as exc:
            raise PipelineError(str(exc), stage=stage_id) from exc
        except Exception as exc:
            raise PipelineError(f"{type(exc).__name__}: {exc}", stage=stage_id) from exc

        produced = outputs(result)
        self.stage_machine.transition(
            self.run_id, stage_id, StageState.PASSED,
            input_hash=input_hash,
            output_hash=compute_output_hash(stage_id, produced),
            version=version_of(result) if version_of else version,
            detail=produced,
        )
        return result

    def _failed(self, exc: PipelineError, **outcome: Any) -> RunResult:
        states = self.stage_machine.get_all_states(self.run_id)
        running = [sid for sid, state in states.items() if state == StageState.RUNNING]
        stage_id = running[0] if running else exc.stage
        version = outcome.get("version")

        failure = RunFailure(
            stage_id=stage_id,
            error_type=type(exc).__name__,
            message=str(exc),
            step=getattr(exc, "step", None),
            cause=exc.cause.value if isinstance(exc, RetrievalError) else None,
        )
        if running:
            self.stage_machine.transition(
                self.run_id, stage_id, StageState.FAILED,
                output_hash=compute_output_hash(stage_id, {"error": str(exc)}),
                version=str(version) if version else "",
                detail=failure.model_dump(mode="json"),
            )
        if isinstance(exc, DeployStepError) and exc.result is not None:
            outcome["deploy_result"] = exc.result

        logger.error("Run %s failed at %s: %s", self.run_id, stage_id, exc)
        return self._result(RunStatus.FAILED, failure=failure, **outcome)

    def _result(self, status: RunStatus, **fields: Any) -> RunResult:
        return RunResult(
            run_id=self.run_id,
            status=status,
            stage_states=self.stage_machine.get_all_states(self.run_id),
            **fields,
        )

    # ------------------------------------------------------------------
    # Query methods
    # ------------------------------------------------------------------

    def get_states(self) -> dict[str, StageState]:
        """Return current state of all stages."""
        return self.stage_machine.get_all_states(self.run_id)

    def get_run_entries(self) -> list[LedgerEntry]:
        """Return all ledger entries for the current run."""
        return self.ledger.get_run_entries(self.run_id)

    def verify_chain(self) -> bool:
        """Verify the hash chain integrity of the current run's ledger."""
        return self.ledger.verify_chain(self.run_id)
