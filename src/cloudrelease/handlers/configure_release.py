"""
cloudrelease.handlers.configure_release - Configure Release Hook
==================================================================

Runs before the release is built. Every build gets release-account
credentials; each declared need adds its own variables:

    Need      Variables added
    ────────  ────────────────────────────────────────────────────────
    lambda    LAMBDA_BUCKET
    ecr       ECR_REPOSITORY (URI of the reconciled team-component repo)
              ECR_TAG        (<build_id>-<version>)

Needs are parsed into the closed Need enum before any cloud call is made,
so an unknown need fails the request without side effects.
"""

from __future__ import annotations

from typing import Callable

from cloudrelease.core.enums import Need
from cloudrelease.core.exceptions import UnsupportedNeedError
from cloudrelease.core.models import ConfigureReleaseRequest, ConfigureReleaseResponse
from cloudrelease.credentials.context import RequestContext
from cloudrelease.handlers.base import BaseHandler
from cloudrelease.registry.reconciler import RepositoryReconciler, repository_name


class _NeedPlan:
    """Build ids per need, collected while the request is being parsed."""

    def __init__(self) -> None:
        self.lambda_builds: list[str] = []
        self.ecr_builds: list[str] = []


class ConfigureReleaseHandler(BaseHandler):
    """Populates per-build environments for the release step.

    ``handle(request)`` with a ConfigureReleaseRequest.
    """

    hook = "configure_release"

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._need_planners: dict[Need, Callable[[_NeedPlan, str], None]] = {
            Need.LAMBDA: lambda plan, build_id: plan.lambda_builds.append(build_id),
            Need.ECR: lambda plan, build_id: plan.ecr_builds.append(build_id),
        }
        unhandled = set(Need) - set(self._need_planners)
        if unhandled:
            raise TypeError(f"no configure-release handling for needs: {sorted(unhandled)}")

    def _new_response(self) -> ConfigureReleaseResponse:
        return ConfigureReleaseResponse()

    def _execute(self, response: ConfigureReleaseResponse, request: ConfigureReleaseRequest) -> None:
        plan = self._plan(request)
        context = self._context(request.config, request.env)

        aws = self._config.aws
        credentials = context.release_session().as_env(aws.region)
        for build_id in sorted(request.release_requirements):
            response.env[build_id] = dict(credentials)

        for build_id in plan.lambda_builds:
            response.env[build_id]["LAMBDA_BUCKET"] = aws.lambda_bucket

        if plan.ecr_builds:
            self._configure_ecr(response, request, context, plan.ecr_builds)

    def _plan(self, request: ConfigureReleaseRequest) -> _NeedPlan:
        plan = _NeedPlan()
        for build_id in sorted(request.release_requirements):
            for raw in request.release_requirements[build_id].needs:
                need = Need.parse(raw)
                if need is None:
                    raise UnsupportedNeedError(need=raw, build_id=build_id)
                self._need_planners[need](plan, build_id)
        return plan

    def _configure_ecr(
        self,
        response: ConfigureReleaseResponse,
        request: ConfigureReleaseRequest,
        context: RequestContext,
        ecr_builds: list[str],
    ) -> None:
        registry = context.clients.registry(context.release_session())
        reconciler = RepositoryReconciler(registry, self._config, context.deadline)
        repository = reconciler.reconcile(
            repository_name(context.team, request.component),
            ecr_builds,
        )
        for build_id in ecr_builds:
            response.env[build_id]["ECR_REPOSITORY"] = repository.uri
            response.env[build_id]["ECR_TAG"] = f"{build_id}-{request.version}"
