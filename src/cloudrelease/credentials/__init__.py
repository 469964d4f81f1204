"""
cloudrelease.credentials - Credential Delegation
==================================================

    - CredentialChain:   root → release account → deploy account sessions
    - RequestContext:    per-request owner of memoized sessions and deadline
    - role_session_name: derives the STS role session name from the env
"""

from cloudrelease.credentials.chain import (
    CredentialChain,
    deploy_account_name,
    deploy_role_arn,
    role_session_name,
)
from cloudrelease.credentials.context import RequestContext, team_from_config

__all__ = [
    "CredentialChain",
    "RequestContext",
    "role_session_name",
    "deploy_role_arn",
    "deploy_account_name",
    "team_from_config",
]
