"""
cloudrelease.handlers.upload_release - Upload Release Hook
============================================================

Runs after the release has been built: packages the release directory with
the terraform image, saves provider plugins to the team's plugin cache
(skipping any already there), and uploads the bundle to
``<team>/<component>/<component>-<version>.zip`` in the release bucket.

The team, component and version come from the configure-release request of
the same pipeline run.

Failures:
    A bucket that rejects the upload is an infrastructure fault, not
    something the operator can fix in cdflow.yaml, so it fails the request
    as a HardFailure rather than a soft ``success=False`` response.
"""

from __future__ import annotations

from typing import Any, Optional

from cloudrelease.core.config import CloudReleaseConfig
from cloudrelease.core.models import (
    ConfigureReleaseRequest,
    UploadReleaseRequest,
    UploadReleaseResponse,
)
from cloudrelease.handlers.base import BaseHandler
from cloudrelease.infrastructure.artifact_cache import ArtifactCache
from cloudrelease.infrastructure.release_bundle import ReleaseSaver, ZipReleaseBundle
from cloudrelease.integrations.aws.base import AWSClientFactory


class UploadReleaseHandler(BaseHandler):
    """Packages and uploads the release bundle.

    ``handle(request, configure_request, release_dir=None)``.
    """

    hook = "upload_release"

    def __init__(
        self,
        config: CloudReleaseConfig,
        clients: AWSClientFactory,
        release_saver: Optional[ReleaseSaver] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(config, clients, **kwargs)
        self._release_saver = release_saver or ZipReleaseBundle(config.cache.plugin_path_prefix)

    def _new_response(self) -> UploadReleaseResponse:
        return UploadReleaseResponse()

    def _execute(
        self,
        response: UploadReleaseResponse,
        request: UploadReleaseRequest,
        configure_request: ConfigureReleaseRequest,
        release_dir: Optional[str] = None,
    ) -> None:
        context = self._context(configure_request.config, configure_request.env)
        release = context.release_session()
        cache = ArtifactCache(
            context.clients.object_store(release),
            context.team,
            self._config,
            context.deadline,
            self._progress,
        )

        self._progress("Uploading release...")
        bundle = self._release_saver.save(
            configure_request.component,
            configure_request.version,
            request.terraform_image,
            release_dir or self._config.cache.release_folder,
            cache.save_plugin,
        )
        artifact = cache.release_artifact(configure_request.component, configure_request.version)
        with bundle:
            location = cache.upload_release(artifact, bundle)

        response.message = f"Release uploaded to {location}."
        self._progress(response.message)
