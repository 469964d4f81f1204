"""
cloudrelease.credentials.chain - Multi-Account Credential Delegation
======================================================================

Turns the static credentials the orchestrator runs with into the sessions
each hook needs:

    ┌──────────────┐  AssumeRole <team>-deploy   ┌───────────────────┐
    │ Root session │ ──────────────────────────→ │ Release account   │
    │ (static env) │                             │ (fixed account id)│
    └──────┬───────┘                             └───────────────────┘
           │  ListAccounts (name == prefix+"prod"/"dev")
           │  AssumeRole <team>-deploy
           ▼
    ┌──────────────────┐
    │ Deploy account   │   (skipped when assume_role_to_deploy is False:
    │ (per environment)│    the root credentials are echoed back as-is)
    └──────────────────┘

Role ARNs always name the ``<team>-deploy`` role; only the account differs.

Error Split:
    Missing env credentials, an unusable role session name, a refused role
    assumption and an unknown account alias are OperatorErrors. An SDK that
    cannot build a session from valid credentials is an InfrastructureError.
"""

from __future__ import annotations

import re
from contextlib import closing
from typing import Iterable, Mapping, Optional

import structlog

from cloudrelease.core.config import AWSConfig
from cloudrelease.core.deadline import Deadline
from cloudrelease.core.exceptions import (
    AccountNotFoundError,
    MissingCredentialsError,
    RoleSessionNameError,
)
from cloudrelease.core.models import Session
from cloudrelease.integrations.aws.base import AWSClientFactory


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()


# =============================================================================
# Role Session Name
# =============================================================================
# Session names keep only [A-Za-z0-9+=,.@-], 2 to 64 characters. Everything
# else (underscores included) is stripped rather than rejected, so e-mail
# addresses and job names work as-is.
# =============================================================================
_SESSION_NAME_STRIPPER = re.compile(r"[^A-Za-z0-9+=,.@-]")
MIN_SESSION_NAME_LENGTH = 2
MAX_SESSION_NAME_LENGTH = 64

DEFAULT_SESSION_NAME_CANDIDATES = ("ROLE_SESSION_NAME", "JOB_NAME", "EMAIL")


def role_session_name(
    env: Mapping[str, str],
    candidates: Iterable[str] = DEFAULT_SESSION_NAME_CANDIDATES,
) -> str:
    """Derive the role session name for a request.

    The first candidate variable with a non-empty value wins. Invalid
    characters are removed and the result is truncated to 64 characters.

    Args:
        env: The request environment.
        candidates: Variable names to try, in order of preference.

    Returns:
        A session name STS will accept.

    Raises:
        RoleSessionNameError: No candidate is set, or the chosen one has
            fewer than two valid characters.

    Example:
        >>> role_session_name({"EMAIL": "jane.doe+ci@example.com"})
        'jane.doe+ci@example.com'
        >>> role_session_name({"JOB_NAME": "a!@#b$%^c"})
        'a@bc'
    """
    candidates = list(candidates)
    for name in candidates:
        value = env.get(name) or ""
        if value:
            break
    else:
        raise RoleSessionNameError(
            message=(
                "error - no role session name, please set one of these as an "
                f"environment variable: {', '.join(candidates)}"
            ),
            details={"candidates": candidates},
        )

    sanitized = _SESSION_NAME_STRIPPER.sub("", value)
    if len(sanitized) < MIN_SESSION_NAME_LENGTH:
        raise RoleSessionNameError(
            message=(
                f'role session name variable "{name}" does not have enough '
                "valid characters (must have at least two)"
            ),
            details={"variable": name},
        )
    return sanitized[:MAX_SESSION_NAME_LENGTH]


def deploy_role_arn(account_id: str, team: str) -> str:
    """ARN of the ``<team>-deploy`` role in ``account_id``."""
    return f"arn:aws:iam::{account_id}:role/{team}-deploy"


def deploy_account_name(account_prefix: str, env_name: str, prod_env_names: Iterable[str]) -> str:
    """Alias of the account an environment deploys into: ``<prefix>prod`` or ``<prefix>dev``."""
    suffix = "prod" if env_name in set(prod_env_names) else "dev"
    return account_prefix + suffix


# =============================================================================
# Credential Chain
# =============================================================================
class CredentialChain:
    """Resolves root, release-account and deploy-account sessions.

    The chain itself is stateless; memoization of the sessions it produces
    belongs to the per-request RequestContext.

    Attributes:
        _config: AWS configuration (release account id, region).
        _clients: Factory for the STS and Organizations interfaces.
        _deadline: Checked before every blocking call.
    """

    def __init__(
        self,
        config: AWSConfig,
        client_factory: AWSClientFactory,
        deadline: Optional[Deadline] = None,
    ) -> None:
        self._config = config
        self._clients = client_factory
        self._deadline = deadline or Deadline.none()
        self._logger = logger.bind(component="credential_chain")

    # =========================================================================
    # Root
    # =========================================================================
    def resolve_root_session(self, env: Mapping[str, str]) -> Session:
        """Build the root session from the request environment.

        Raises:
            MissingCredentialsError: AWS_ACCESS_KEY_ID or AWS_SECRET_ACCESS_KEY
                is missing or empty.
            SessionConstructionError: The SDK could not build a session.
        """
        access_key_id = env.get("AWS_ACCESS_KEY_ID") or ""
        secret_access_key = env.get("AWS_SECRET_ACCESS_KEY") or ""
        if not access_key_id or not secret_access_key:
            raise MissingCredentialsError()

        session = Session(
            access_key_id=access_key_id,
            secret_access_key=secret_access_key,
            session_token=env.get("AWS_SESSION_TOKEN") or None,
        )
        self._clients.open_session(session)
        self._logger.debug("root_session_resolved")
        return session

    # =========================================================================
    # Release Account
    # =========================================================================
    def resolve_release_session(self, root: Session, team: str, session_name: str) -> Session:
        """Assume ``<team>-deploy`` in the fixed release account."""
        role_arn = deploy_role_arn(self._config.release_account_id, team)
        return self._assume(root, role_arn, session_name)

    # =========================================================================
    # Deploy Account
    # =========================================================================
    def find_account_id(self, root: Session, account_name: str) -> str:
        """Look up an organization account id by its exact name.

        Pages are fetched one at a time and listing stops at the first match;
        without a match every page is visited.

        Raises:
            AccountNotFoundError: No account has that name.
        """
        directory = self._clients.account_directory(root)
        pages_read = 0
        with closing(directory.iter_account_pages()) as pages:
            while True:
                self._deadline.check("ListAccounts")
                page = next(pages, None)
                if page is None:
                    break
                pages_read += 1
                for account in page:
                    if account.name == account_name:
                        self._logger.debug(
                            "account_resolved",
                            account_name=account_name,
                            account_id=account.id,
                            pages_read=pages_read,
                        )
                        return account.id

        self._logger.info("account_not_found", account_name=account_name, pages_read=pages_read)
        raise AccountNotFoundError(account_name=account_name)

    def resolve_deploy_session(
        self,
        root: Session,
        team: str,
        env_name: str,
        prod_env_names: Iterable[str],
        account_prefix: str,
        session_name: str,
    ) -> Session:
        """Assume ``<team>-deploy`` in the account ``env_name`` deploys into."""
        account_name = deploy_account_name(account_prefix, env_name, prod_env_names)
        account_id = self.find_account_id(root, account_name)
        return self._assume(root, deploy_role_arn(account_id, team), session_name)

    # =========================================================================
    # Internal
    # =========================================================================
    def _assume(self, caller: Session, role_arn: str, session_name: str) -> Session:
        self._deadline.check("AssumeRole")
        session = self._clients.role_assumer(caller).assume_role(role_arn, session_name)
        self._logger.info(
            "role_assumed",
            role_arn=role_arn,
            role_session_name=session_name,
        )
        return session
