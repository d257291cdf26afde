"""Builds pipeline components from environment settings for CLI commands."""

from __future__ import annotations

import logging

from releasegate.bridge.git import GitRevisionSource
from releasegate.config import ReleaseGateSettings
from releasegate.core.interfaces import Registry
from releasegate.core.orchestrator import Orchestrator
from releasegate.core.registry import FilesystemRegistry, HttpRegistry
from releasegate.models.config import PipelineConfig

logger = logging.getLogger(__name__)


def make_registry(settings: ReleaseGateSettings) -> Registry:
    """HTTP registry when a URL is configured, else the filesystem one."""
    if settings.registry_url:
        return HttpRegistry(
            settings.registry_url,
            token=settings.registry_token,
            timeout=settings.command_timeout or 30.0,
        )
    return FilesystemRegistry(settings.registry_path)


def make_revisions(settings: ReleaseGateSettings) -> GitRevisionSource:
    return GitRevisionSource(
        settings.source_tree,
        push_remote=settings.push_remote,
        timeout=settings.command_timeout,
    )


def fetch_reference(revisions: GitRevisionSource, reference_ref: str) -> None:
    """Refresh a ``remote/branch`` reference before it is pinned."""
    remote, sep, branch = reference_ref.partition("/")
    if not sep or not branch:
        logger.debug("Reference %s is not a remote-tracking ref; not fetching", reference_ref)
        return
    revisions.fetch(remote, branch)


def make_orchestrator(
    settings: ReleaseGateSettings,
    *,
    revisions: GitRevisionSource | None = None,
) -> Orchestrator:
    """Assemble an orchestrator. The caller closes ``orchestrator.registry``."""
    registry = make_registry(settings)
    try:
        return Orchestrator(
            PipelineConfig.from_settings(settings),
            revisions=revisions or make_revisions(settings),
            registry=registry,
            settings=settings,
        )
    except Exception:
        registry.close()
        raise
