"""Pipeline, deploy target, and run configuration models."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from releasegate.models.versioning import BumpPolicy

if TYPE_CHECKING:
    from releasegate.config import ReleaseGateSettings


class CheckSpec(BaseModel):
    """An automated check command run before the deploy gate.

    When ``requires`` is set, at least one file matching the glob must
    contain ``marker`` or the check fails without running.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    command: list[str]
    requires: str | None = None  # glob relative to the source tree
    marker: str = ""


class DeploymentTarget(BaseModel):
    """Remote host identity and its install/service layout.

    Static configuration for the life of a deploy; never derived from
    pipeline state.
    """

    model_config = ConfigDict(frozen=True)

    host: str
    user: str = "ec2-user"
    port: int = 22
    ssh_key_path: Path | None = None
    known_hosts_path: Path | None = None
    install_root: str = "/home/ec2-user"
    remote_staging_dir: str = "/home/ec2-user"
    app_name: str = "app"
    services: list[str] = []  # managed services; defaults to [app_name]
    frontend_candidates: list[str] = ["apache2", "nginx"]
    use_sudo: bool = True
    pip_command: str = "pip"

    @property
    def install_dir(self) -> str:
        return str(PurePosixPath(self.install_root) / self.app_name)

    @property
    def managed_services(self) -> list[str]:
        return list(self.services) or [self.app_name]

    @property
    def address(self) -> str:
        return f"{self.user}@{self.host}"


class PipelineConfig(BaseModel):
    """Project-level configuration for a releasegate pipeline."""

    model_config = ConfigDict(frozen=True)

    package_name: str = "app-package"
    source_tree: Path = Path(".")
    version_file: Path = Path("version.txt")
    bump_policy: BumpPolicy = BumpPolicy.PATCH
    reference_ref: str = "origin/development"
    build_command: list[str] = [
        "python", "setup.py", "sdist", "--formats=zip", "--dist-dir", "{out_dir}",
    ]
    build_dir: Path = Path(".releasegate/build")
    local_output_dir: Path = Path(".releasegate/dist")
    ledger_db_path: Path = Path(".releasegate/ledger.db")
    checks: list[CheckSpec] = []
    target: DeploymentTarget | None = None

    @classmethod
    def from_settings(cls, settings: ReleaseGateSettings) -> PipelineConfig:
        """Assemble a PipelineConfig from environment-driven settings."""
        target = None
        if settings.deploy_host:
            target = DeploymentTarget(
                host=settings.deploy_host,
                user=settings.deploy_user,
                port=settings.deploy_port,
                ssh_key_path=settings.deploy_ssh_key_path,
                known_hosts_path=settings.deploy_known_hosts_path,
                install_root=settings.deploy_install_root,
                remote_staging_dir=settings.deploy_staging_dir,
                app_name=settings.app_name,
                services=settings.deploy_services,
                frontend_candidates=settings.deploy_frontend_candidates,
                use_sudo=settings.deploy_use_sudo,
                pip_command=settings.deploy_pip_command,
            )
        return cls(
            package_name=settings.package_name,
            source_tree=settings.source_tree,
            # Relative to the tree git commits in, not the process cwd
            version_file=Path(settings.source_tree) / settings.version_file,
            bump_policy=settings.bump_policy,
            reference_ref=settings.reference_ref,
            build_command=settings.build_command,
            build_dir=settings.build_dir,
            local_output_dir=settings.local_output_dir,
            ledger_db_path=settings.ledger_path,
            checks=settings.checks,
            target=target,
        )


class RunConfig(BaseModel):
    """Per-run configuration: the pinned inputs of one pipeline run."""

    model_config = ConfigDict(frozen=True)

    run_id: str = Field(default_factory=lambda: f"rg-{uuid.uuid4().hex[:12]}")
    pipeline_config: PipelineConfig = PipelineConfig()
    current_ref: str = "HEAD"
    reference_ref: str = "origin/development"
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
