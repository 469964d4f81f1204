"""
cloudrelease.handlers.prepare_terraform - Prepare Terraform Hook
==================================================================

Runs before terraform for one environment:

    1. Backend:  terraform_backend_type "s3" + BackendConfig carrying
                 release-account credentials
    2. Deploy:   deploy-account credentials into response.env
    3. State:    optional existence check (state_should_exist)
    4. Release:  when a version is given, download and unpack the bundle,
                 resolving provider plugins through the plugin cache, and
                 report the bundle's terraform image
"""

from __future__ import annotations

from typing import Any, Optional

from cloudrelease.core.config import CloudReleaseConfig
from cloudrelease.core.models import PrepareTerraformRequest, PrepareTerraformResponse
from cloudrelease.credentials.chain import deploy_account_name
from cloudrelease.credentials.context import (
    RequestContext,
    account_prefix_from_config,
    assume_role_to_deploy,
)
from cloudrelease.handlers.base import BaseHandler
from cloudrelease.infrastructure.artifact_cache import ArtifactCache
from cloudrelease.infrastructure.release_bundle import ReleaseLoader, ZipReleaseBundle
from cloudrelease.infrastructure.state_backend import BACKEND_TYPE, StateBackendResolver
from cloudrelease.integrations.aws.base import AWSClientFactory


class PrepareTerraformHandler(BaseHandler):
    """Configures terraform's backend and credentials, and stages the release.

    ``handle(request, release_dir=None)`` with a PrepareTerraformRequest;
    ``release_dir`` defaults to ``cache.release_folder``.
    """

    hook = "prepare_terraform"

    def __init__(
        self,
        config: CloudReleaseConfig,
        clients: AWSClientFactory,
        release_loader: Optional[ReleaseLoader] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(config, clients, **kwargs)
        self._release_loader = release_loader or ZipReleaseBundle(config.cache.plugin_path_prefix)

    def _new_response(self) -> PrepareTerraformResponse:
        return PrepareTerraformResponse()

    def _execute(
        self,
        response: PrepareTerraformResponse,
        request: PrepareTerraformRequest,
        release_dir: Optional[str] = None,
    ) -> None:
        context = self._context(request.config, request.env)
        release = context.release_session()

        resolver = StateBackendResolver(self._config, context.deadline, self._progress)
        backend = resolver.resolve(context.team, request.component, release)
        response.terraform_backend_type = BACKEND_TYPE
        response.terraform_backend_config = backend.as_dict()

        self._add_deploy_credentials(response, request, context)

        object_store = context.clients.object_store(release)
        resolver.verify_state(object_store, backend, request.env_name, request.state_should_exist)

        if not request.version:
            return

        cache = ArtifactCache(object_store, context.team, self._config, context.deadline, self._progress)
        artifact = cache.release_artifact(request.component, request.version)
        stream = cache.download_release(artifact)
        if stream is None:
            return
        with stream:
            response.terraform_image = self._release_loader.load(
                stream,
                request.component,
                request.version,
                release_dir or self._config.cache.release_folder,
                cache.open_plugin,
            )

    def _add_deploy_credentials(
        self,
        response: PrepareTerraformResponse,
        request: PrepareTerraformRequest,
        context: RequestContext,
    ) -> None:
        if assume_role_to_deploy(request.config):
            if "additional_prod_envs" in request.config:
                self._progress(
                    "Found additional_prod_envs, appending them to the default "
                    f"resulting in: {context.prod_env_names()}"
                )
            account_name = deploy_account_name(
                account_prefix_from_config(request.config),
                request.env_name,
                context.prod_env_names(),
            )
            self._progress(f'- Assuming "{context.team}-deploy" role in "{account_name}" account...')

        deploy = context.deploy_session(request.env_name)
        response.env.update(deploy.as_env(self._config.aws.region))
