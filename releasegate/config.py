"""Environment-driven settings.

Reads from a .env file and RELEASEGATE_* environment variables. The
pipeline itself consumes the frozen ``PipelineConfig`` built from these
settings by ``PipelineConfig.from_settings``.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from releasegate.models.config import CheckSpec
from releasegate.models.versioning import BumpPolicy


class ReleaseGateSettings(BaseSettings):
    """Settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export RELEASEGATE_ENVIRONMENT=production
        export RELEASEGATE_DEPLOY_HOST=10.0.4.17
        export RELEASEGATE_DEPLOY_SSH_KEY_PATH=/run/secrets/deploy_key

    List-valued settings take JSON::

        RELEASEGATE_DEPLOY_SERVICES='["calculator-app", "calculator-worker"]'
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="RELEASEGATE_",
        env_file_encoding="utf-8",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"
    debug: bool = False

    # Repository
    source_tree: Path = Path(".")
    version_file: Path = Path("version.txt")  # relative to source_tree
    reference_ref: str = "origin/development"
    fetch_reference: bool = True  # git fetch the reference branch before pinning
    push_remote: str | None = None  # push version bumps here when set
    bump_policy: BumpPolicy = BumpPolicy.PATCH

    # Build
    package_name: str = "app-package"
    build_command: list[str] = [
        "python", "setup.py", "sdist", "--formats=zip", "--dist-dir", "{out_dir}",
    ]
    build_dir: Path = Path(".releasegate/build")
    local_output_dir: Path = Path(".releasegate/dist")
    checks: list[CheckSpec] = []

    # Registry: registry_url wins over registry_path when both are set
    registry_path: Path = Path(".releasegate/registry")
    registry_url: str = ""
    registry_token: str = ""

    # Storage
    ledger_path: Path = Path(".releasegate/ledger.db")

    # Deploy target
    app_name: str = "app"
    deploy_host: str = ""
    deploy_user: str = "ec2-user"
    deploy_port: int = 22
    deploy_ssh_key_path: Path | None = None
    deploy_known_hosts_path: Path | None = None
    deploy_install_root: str = "/home/ec2-user"
    deploy_staging_dir: str = "/home/ec2-user"
    deploy_services: list[str] = []
    deploy_frontend_candidates: list[str] = ["apache2", "nginx"]
    deploy_use_sudo: bool = True
    deploy_pip_command: str = "pip"

    # Per-command timeout in seconds for git, build, checks, and ssh
    command_timeout: float | None = None

    @property
    def is_production(self) -> bool:
        """Whether running in production mode."""
        return self.environment == "production"


# Module-level singleton: import as `from releasegate.config import settings`
settings = ReleaseGateSettings()
