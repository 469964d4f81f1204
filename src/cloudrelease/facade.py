"""
cloudrelease.facade - CloudRelease Top-Level Facade
=====================================================

The single entry point the orchestrator adapter talks to. It wires the
configuration, the AWS client factory and the release bundle format into
the three hook handlers.

Architecture Context:

    ┌──────────────────────────────────────────────────┐
    │              ReleasePlugin (Facade)               │
    │                                                   │
    │  configure_release   prepare_terraform   upload_release
    │  ┌─────────────────────────────────────────────┐ │
    │  │              Handler Layer                   │ │
    │  │  BaseHandler → Ok / SoftFailure / HardFailure│ │
    │  └─────────────────────┬───────────────────────┘ │
    │  ┌─────────────────────▼───────────────────────┐ │
    │  │  CredentialChain   RepositoryReconciler      │ │
    │  │  StateBackendResolver   ArtifactCache        │ │
    │  └─────────────────────┬───────────────────────┘ │
    │  ┌─────────────────────▼───────────────────────┐ │
    │  │         Integration Layer                    │ │
    │  │  AWSClientFactory (boto3 / in-memory)        │ │
    │  └─────────────────────────────────────────────┘ │
    └──────────────────────────────────────────────────┘

Usage:
    >>> from cloudrelease import ReleasePlugin
    >>> plugin = ReleasePlugin()
    >>> result = plugin.configure_release(request)
    >>> if isinstance(result, Ok):
    ...     build_env = result.response.env
"""

from __future__ import annotations

import logging
import sys
from typing import Callable, Optional, TextIO

import structlog

from cloudrelease.core.config import CloudReleaseConfig, load_config
from cloudrelease.core.deadline import Deadline
from cloudrelease.core.models import (
    ConfigureReleaseRequest,
    PrepareTerraformRequest,
    UploadReleaseRequest,
)
from cloudrelease.core.results import HandlerResult
from cloudrelease.handlers.configure_release import ConfigureReleaseHandler
from cloudrelease.handlers.prepare_terraform import PrepareTerraformHandler
from cloudrelease.handlers.upload_release import UploadReleaseHandler
from cloudrelease.infrastructure.release_bundle import (
    ReleaseLoader,
    ReleaseSaver,
    ZipReleaseBundle,
)
from cloudrelease.integrations.aws.base import AWSClientFactory
from cloudrelease.integrations.aws.factory import create_client_factory


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()


def configure_logging(log_level: str = "INFO", stream: Optional[TextIO] = None) -> None:
    """Route structlog output to ``stream`` (stderr) at ``log_level``.

    stdout belongs to the orchestrator protocol, so logs never go there.
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stderr),
        cache_logger_on_first_use=False,
    )


class ReleasePlugin:
    """Top-level facade for the CloudRelease plugin.

    Attributes:
        _config: Plugin configuration.
        _clients: AWS client factory shared by all handlers.
        _configure: ConfigureReleaseHandler.
        _prepare: PrepareTerraformHandler.
        _upload: UploadReleaseHandler.

    Example:
        >>> plugin = ReleasePlugin(config, client_factory=InMemoryClientFactory())
        >>> result = plugin.prepare_terraform(request, release_dir="/tmp/release")
        >>> result.success
        True
    """

    def __init__(
        self,
        config: Optional[CloudReleaseConfig] = None,
        client_factory: Optional[AWSClientFactory] = None,
        release_loader: Optional[ReleaseLoader] = None,
        release_saver: Optional[ReleaseSaver] = None,
        diagnostics: Optional[TextIO] = None,
        deadline_factory: Optional[Callable[[], Deadline]] = None,
    ) -> None:
        """Wire the handlers.

        Args:
            config: Plugin configuration. Defaults to ``load_config()``.
            client_factory: AWS client factory. Defaults to the one named by
                ``config.aws.backend``.
            release_loader: Bundle unpacker. Defaults to ZipReleaseBundle.
            release_saver: Bundle packager. Defaults to ZipReleaseBundle.
            diagnostics: Stream for operator-facing text. Defaults to stderr.
            deadline_factory: Builds each request's Deadline. Defaults to
                ``config.request_timeout_seconds``.
        """
        self._config = config or load_config()
        self._clients = client_factory or create_client_factory(self._config.aws)

        bundle = ZipReleaseBundle(self._config.cache.plugin_path_prefix)
        shared = {"diagnostics": diagnostics, "deadline_factory": deadline_factory}
        self._configure = ConfigureReleaseHandler(self._config, self._clients, **shared)
        self._prepare = PrepareTerraformHandler(
            self._config,
            self._clients,
            release_loader=release_loader or bundle,
            **shared,
        )
        self._upload = UploadReleaseHandler(
            self._config,
            self._clients,
            release_saver=release_saver or bundle,
            **shared,
        )
        logger.debug("release_plugin_initialized", backend=self._config.aws.backend)

    @property
    def config(self) -> CloudReleaseConfig:
        return self._config

    @property
    def clients(self) -> AWSClientFactory:
        return self._clients

    # =========================================================================
    # Hooks
    # =========================================================================
    def configure_release(self, request: ConfigureReleaseRequest) -> HandlerResult:
        """Provide per-build environments before the release is built."""
        return self._configure.handle(request)

    def prepare_terraform(
        self,
        request: PrepareTerraformRequest,
        release_dir: Optional[str] = None,
    ) -> HandlerResult:
        """Configure terraform and stage the release before it runs."""
        return self._prepare.handle(request, release_dir)

    def upload_release(
        self,
        request: UploadReleaseRequest,
        configure_request: ConfigureReleaseRequest,
        release_dir: Optional[str] = None,
    ) -> HandlerResult:
        """Package and upload the built release."""
        return self._upload.handle(request, configure_request, release_dir)
