"""
cloudrelease.credentials.context - Per-Request Context
========================================================

A RequestContext is created for exactly one hook invocation and thrown away
afterwards. It owns everything that is scoped to that request:

    - the request environment and the team it is acting for
    - the per-request Deadline
    - memoized root / release / deploy sessions and the role session name
    - the request-scoped client factory that holds the SDK sessions

Both the reconciler and the state backend need the release-account session;
memoizing it here means the role is assumed once per request, never once
per component. Nothing here is module- or process-global.

Usage:
    >>> context = RequestContext.from_request(config, clients, request.config, request.env)
    >>> release = context.release_session()
    >>> context.release_session() is release
    True
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

import structlog

from cloudrelease.core.config import CloudReleaseConfig
from cloudrelease.core.deadline import Deadline
from cloudrelease.core.exceptions import ConfigurationError
from cloudrelease.core.models import Session
from cloudrelease.credentials.chain import CredentialChain, role_session_name
from cloudrelease.integrations.aws.base import AWSClientFactory


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()


# =============================================================================
# Request Config Readers
# =============================================================================
# The per-request ``config`` mapping comes from the project's cdflow.yaml
# ``config.params`` section, so values arrive untyped.
# =============================================================================
def team_from_config(request_config: Mapping[str, Any]) -> str:
    """Read the team name from the request config.

    Raises:
        ConfigurationError: ``team`` is missing, empty or not a string.
    """
    team = request_config.get("team")
    if not isinstance(team, str) or not team:
        raise ConfigurationError(
            message="cdflow.yaml: error - config.params.team must be set and be a string value",
            error_code="MISSING_TEAM",
        )
    return team


def account_prefix_from_config(request_config: Mapping[str, Any]) -> str:
    """Read ``account_prefix``, required whenever deploy delegation is active."""
    prefix = request_config.get("account_prefix")
    if not isinstance(prefix, str) or not prefix:
        raise ConfigurationError(
            message=(
                "cdflow.yaml: error - config.params.account_prefix must be set "
                "and be a string value"
            ),
            error_code="MISSING_ACCOUNT_PREFIX",
        )
    return prefix


def prod_env_names_from_config(
    request_config: Mapping[str, Any],
    defaults: list[str],
) -> list[str]:
    """Production environment names: the defaults plus ``additional_prod_envs``."""
    additional = request_config.get("additional_prod_envs")
    if additional is None:
        return list(defaults)
    if not isinstance(additional, list) or not all(isinstance(v, str) for v in additional):
        raise ConfigurationError(
            message="cdflow.yaml: error - config.params.additional_prod_envs must be a list of strings",
            error_code="INVALID_PROD_ENVS",
        )
    return list(defaults) + list(additional)


def assume_role_to_deploy(request_config: Mapping[str, Any]) -> bool:
    """Only an explicit boolean False disables deploy-account delegation."""
    return request_config.get("assume_role_to_deploy") is not False


# =============================================================================
# Request Context
# =============================================================================
class RequestContext:
    """Everything scoped to one hook invocation.

    Attributes:
        config: Plugin configuration.
        clients: Request-scoped client factory; SDK sessions built for this
            request are dropped with it.
        request_config: The request's untyped ``config`` mapping.
        env: The request environment.
        team: Team the request acts for.
        deadline: Per-request deadline.
        chain: CredentialChain bound to this request's deadline.
    """

    def __init__(
        self,
        config: CloudReleaseConfig,
        clients: AWSClientFactory,
        request_config: Mapping[str, Any],
        env: Mapping[str, str],
        team: str,
        deadline: Optional[Deadline] = None,
    ) -> None:
        self.config = config
        self.clients = clients.request_scope()
        self.request_config = request_config
        self.env = env
        self.team = team
        self.deadline = deadline or Deadline(config.request_timeout_seconds)
        self.chain = CredentialChain(config.aws, self.clients, self.deadline)

        self._role_session_name: Optional[str] = None
        self._root: Optional[Session] = None
        self._release: Optional[Session] = None
        self._deploy: dict[str, Session] = {}
        self._logger = logger.bind(component="request_context", team=team)

    @classmethod
    def from_request(
        cls,
        config: CloudReleaseConfig,
        clients: AWSClientFactory,
        request_config: Mapping[str, Any],
        env: Mapping[str, str],
        deadline: Optional[Deadline] = None,
    ) -> RequestContext:
        """Build a context, reading the team from the request config."""
        team = team_from_config(request_config)
        return cls(config, clients, request_config, env, team, deadline)

    # =========================================================================
    # Memoized Values
    # =========================================================================
    def role_session_name(self) -> str:
        if self._role_session_name is None:
            self._role_session_name = role_session_name(
                self.env, self.config.role_session_name_candidates
            )
        return self._role_session_name

    def root_session(self) -> Session:
        if self._root is None:
            self._root = self.chain.resolve_root_session(self.env)
        return self._root

    def release_session(self) -> Session:
        if self._release is None:
            self._release = self.chain.resolve_release_session(
                self.root_session(), self.team, self.role_session_name()
            )
        return self._release

    def prod_env_names(self) -> list[str]:
        return prod_env_names_from_config(self.request_config, self.config.prod_env_names)

    def deploy_session(self, env_name: str) -> Session:
        """Session for the account ``env_name`` deploys into.

        With ``assume_role_to_deploy: false`` the root session is returned
        unchanged (single-account setups).
        """
        if env_name in self._deploy:
            return self._deploy[env_name]

        if not assume_role_to_deploy(self.request_config):
            self._logger.info("deploy_delegation_bypassed", env_name=env_name)
            session = self.root_session()
        else:
            account_prefix = account_prefix_from_config(self.request_config)
            session = self.chain.resolve_deploy_session(
                self.root_session(),
                self.team,
                env_name,
                self.prod_env_names(),
                account_prefix,
                self.role_session_name(),
            )
        self._deploy[env_name] = session
        return session
