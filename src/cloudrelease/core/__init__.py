"""
cloudrelease.core - Foundation Layer
======================================

The building blocks every other module in CloudRelease depends on:

    - config:      Plugin configuration (CloudReleaseConfig, AWSConfig, ...)
    - enums:       Need, TagMutability, RepositoryState, CacheTier
    - models:      Pydantic data models (Session, BackendConfig, requests, ...)
    - exceptions:  Operator-facing vs. infrastructure exception hierarchy
    - results:     Ok / SoftFailure / HardFailure handler outcomes
    - deadline:    Per-request deadline checked before blocking calls

Dependency Rule:
    core/ depends on NOTHING else in the cloudrelease package, and does no I/O.
"""

from cloudrelease.core.config import (
    AWSConfig,
    CacheConfig,
    CloudReleaseConfig,
    RegistryConfig,
)
from cloudrelease.core.deadline import Deadline
from cloudrelease.core.enums import CacheTier, Need, RepositoryState, TagMutability
from cloudrelease.core.exceptions import (
    AccountNotFoundError,
    ArtifactError,
    ArtifactNotFoundError,
    CloudAPIError,
    CloudReleaseError,
    ConfigurationError,
    DeadlineExceededError,
    InfrastructureError,
    MissingCredentialsError,
    OperatorError,
    PluginPathError,
    RoleAssumptionError,
    RoleSessionNameError,
    SessionConstructionError,
    StateExistenceError,
    UnsupportedNeedError,
)
from cloudrelease.core.models import (
    BackendConfig,
    PluginReference,
    ReleaseArtifact,
    RepositoryDescriptor,
    Session,
)
from cloudrelease.core.results import HandlerResult, HardFailure, Ok, SoftFailure

__all__ = [
    # Config
    "CloudReleaseConfig",
    "AWSConfig",
    "RegistryConfig",
    "CacheConfig",
    # Deadline
    "Deadline",
    # Enums
    "Need",
    "TagMutability",
    "RepositoryState",
    "CacheTier",
    # Models
    "Session",
    "RepositoryDescriptor",
    "BackendConfig",
    "ReleaseArtifact",
    "PluginReference",
    # Results
    "HandlerResult",
    "Ok",
    "SoftFailure",
    "HardFailure",
    # Exceptions
    "CloudReleaseError",
    "OperatorError",
    "ConfigurationError",
    "MissingCredentialsError",
    "RoleSessionNameError",
    "RoleAssumptionError",
    "AccountNotFoundError",
    "UnsupportedNeedError",
    "StateExistenceError",
    "PluginPathError",
    "ArtifactNotFoundError",
    "InfrastructureError",
    "SessionConstructionError",
    "CloudAPIError",
    "DeadlineExceededError",
    "ArtifactError",
]
