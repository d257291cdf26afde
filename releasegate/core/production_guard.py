"""Production configuration guard — enforces hard constraints in production.

Runs once when an orchestrator is constructed and fails hard (raises
``ProductionConfigError``) if the settings cannot safely drive a
production deploy.
"""

from __future__ import annotations

import logging

from releasegate.config import ReleaseGateSettings
from releasegate.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Deploy settings that MUST be configured in production.
PRODUCTION_REQUIRED_SETTINGS: list[str] = [
    "deploy_host",
    "deploy_ssh_key_path",
    "deploy_known_hosts_path",
]


class ProductionConfigError(ConfigurationError):
    """Raised when production configuration constraints are violated.

    The process should exit; this error must not be caught and ignored.
    """


def enforce_production_constraints(settings: ReleaseGateSettings) -> None:
    """Validate production-critical settings.

    Constraints enforced
    --------------------
    1. Debug mode must be disabled.
    2. The deploy host, SSH key and known-hosts file must be configured, so
       host keys are always verified against a pinned file.
    """
    if not settings.is_production:
        return

    violations: list[str] = []

    if settings.debug:
        violations.append(
            "debug=True is not allowed in production. Set RELEASEGATE_DEBUG=false."
        )

    for name in PRODUCTION_REQUIRED_SETTINGS:
        if not getattr(settings, name, None):
            violations.append(
                f"{name} must be set in production. "
                f"Set RELEASEGATE_{name.upper()}."
            )

    if violations:
        message = "Production configuration violations:\n" + "\n".join(
            f"  - {v}" for v in violations
        )
        logger.critical(message)
        raise ProductionConfigError(message)

    logger.info("Production guard: all constraints satisfied.")
