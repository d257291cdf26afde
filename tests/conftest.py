"""Shared test fixtures for releasegate."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import pytest

from releasegate.bridge.shell import CommandResult
from releasegate.bridge.ssh import TransportError
from releasegate.config import ReleaseGateSettings
from releasegate.core.errors import ConfigurationError
from releasegate.core.orchestrator import Orchestrator
from releasegate.core.registry import FilesystemRegistry
from releasegate.core.run_ledger import RunLedger
from releasegate.core.stage_machine import StageMachine
from releasegate.models.artifacts import Artifact
from releasegate.models.config import DeploymentTarget, PipelineConfig
from releasegate.models.versioning import VersionIdentifier

CURRENT_REV = "a" * 40
REFERENCE_REV = "b" * 40


# ---------------------------------------------------------------------------
# In-memory collaborators
# ---------------------------------------------------------------------------


class FakeRevisionSource:
    """Ref table plus a fixed diff answer; records diffs and commits."""

    CURRENT = CURRENT_REV
    REFERENCE = REFERENCE_REV

    def __init__(self, refs: dict[str, str] | None = None, *, changed: bool = True) -> None:
        self.refs = dict(refs if refs is not None else {
            "HEAD": CURRENT_REV,
            "origin/development": REFERENCE_REV,
        })
        self.changed = changed
        self.resolve_calls: list[str] = []
        self.diff_calls: list[tuple[str, str]] = []
        self.commits: list[tuple[list[Path], str]] = []

    def resolve(self, ref: str) -> str:
        self.resolve_calls.append(ref)
        if ref not in self.refs:
            raise ConfigurationError(f"Cannot resolve revision {ref!r}")
        return self.refs[ref]

    def diff(self, a: str, b: str) -> bool:
        self.diff_calls.append((a, b))
        return self.changed

    def commit(self, files: Sequence[Path], message: str) -> str:
        self.commits.append((list(files), message))
        revision = f"{len(self.commits):040x}"
        self.refs["HEAD"] = revision
        return revision


class FakeTransport:
    """Records copies and commands; exit codes scripted by command substring.

    ``exit_codes`` maps a substring to the exit code returned for any
    command containing it. Unmatched commands exit 0.
    """

    def __init__(
        self,
        exit_codes: dict[str, int] | None = None,
        *,
        copy_error: str | None = None,
    ) -> None:
        self.exit_codes = dict(exit_codes or {})
        self.copy_error = copy_error
        self.copies: list[tuple[str, bytes]] = []
        self.commands: list[str] = []

    def copy(self, local_path: Path, remote_path: str) -> None:
        if self.copy_error:
            raise TransportError(self.copy_error)
        self.copies.append((remote_path, Path(local_path).read_bytes()))

    def execute(self, command: str) -> CommandResult:
        self.commands.append(command)
        for pattern, code in self.exit_codes.items():
            if pattern in command:
                return CommandResult(
                    command=[command], exit_code=code, stderr="" if code == 0 else "simulated failure"
                )
        return CommandResult(command=[command], exit_code=0)

    def ran(self, fragment: str) -> bool:
        return any(fragment in c for c in self.commands)


class FakeBuilder:
    """Produces a fixed payload; counts builds."""

    def __init__(self, payload: bytes = b"PK\x03\x04calculator", package_name: str = "calculator") -> None:
        self.payload = payload
        self.package_name = package_name
        self.builds: list[VersionIdentifier] = []

    def build(
        self, source_tree: Path, version: VersionIdentifier, source_revision: str = ""
    ) -> Artifact:
        self.builds.append(version)
        return Artifact(
            package_name=self.package_name,
            version=version,
            filename=f"{self.package_name}-{version}.zip",
            payload=self.payload,
            source_revision=source_revision,
        )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test artifacts."""
    return tmp_path


@pytest.fixture
def ledger(tmp_dir: Path) -> RunLedger:
    """Provide a fresh RunLedger backed by a temp SQLite database."""
    return RunLedger(tmp_dir / "test_ledger.db")


@pytest.fixture
def stage_machine(ledger: RunLedger) -> StageMachine:
    """Provide a StageMachine with the default pipeline stages."""
    return StageMachine(ledger)


@pytest.fixture
def run_id() -> str:
    """Provide a deterministic test run ID."""
    return "rg-test-run-001"


@pytest.fixture
def version_file(tmp_dir: Path) -> Path:
    path = tmp_dir / "version.txt"
    path.write_text("1.2.3\n", encoding="utf-8")
    return path


@pytest.fixture
def registry(tmp_dir: Path) -> FilesystemRegistry:
    return FilesystemRegistry(tmp_dir / "registry")


@pytest.fixture
def target() -> DeploymentTarget:
    return DeploymentTarget(
        host="10.0.4.17",
        app_name="calculator",
        services=["calculator-app"],
    )


@pytest.fixture
def pipeline_config(tmp_dir: Path, version_file: Path, target: DeploymentTarget) -> PipelineConfig:
    return PipelineConfig(
        package_name="calculator",
        source_tree=tmp_dir,
        version_file=version_file,
        build_dir=tmp_dir / "build",
        local_output_dir=tmp_dir / "dist",
        ledger_db_path=tmp_dir / "ledger.db",
        target=target,
    )


@pytest.fixture
def dev_settings() -> ReleaseGateSettings:
    return ReleaseGateSettings(environment="development", debug=False)


@pytest.fixture
def make_orchestrator(
    pipeline_config: PipelineConfig,
    registry: FilesystemRegistry,
    dev_settings: ReleaseGateSettings,
) -> Callable[..., Orchestrator]:
    """Factory fixture: an Orchestrator wired to in-memory fakes.

    Keyword overrides replace individual collaborators or config fields
    (``config=...`` replaces the whole PipelineConfig).
    """

    def _factory(**overrides: Any) -> Orchestrator:
        config = overrides.pop("config", pipeline_config)
        return Orchestrator(
            config,
            revisions=overrides.pop("revisions", None) or FakeRevisionSource(),
            registry=overrides.pop("registry", registry),
            transport=overrides.pop("transport", None) or FakeTransport(),
            builder=overrides.pop("builder", None) or FakeBuilder(),
            settings=overrides.pop("settings", dev_settings),
            **overrides,
        )

    return _factory


# Factory fixtures: hand the fake classes to tests that need custom setups


@pytest.fixture
def make_revisions() -> type[FakeRevisionSource]:
    return FakeRevisionSource


@pytest.fixture
def make_transport() -> type[FakeTransport]:
    return FakeTransport


@pytest.fixture
def make_builder() -> type[FakeBuilder]:
    return FakeBuilder
