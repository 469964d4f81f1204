"""
cloudrelease.integrations.aws - AWS Service Interfaces and Backends
=====================================================================

Components talk to AWS only through the interfaces in ``base``:

    - RoleAssumer:          STS AssumeRole
    - AccountDirectoryAPI:  Organizations ListAccounts
    - RegistryAPI:          ECR repository settings and policies
    - ObjectStoreAPI:       S3 head/get/upload
    - AWSClientFactory:     builds all of the above for a Session

Backends:
    - Boto3ClientFactory:     synchronous boto3 clients (production)
    - InMemoryClientFactory:  dictionaries with call tracking (tests)

Usage:
    >>> factory = create_client_factory(config.aws)
    >>> factory.registry(release_session).describe_repository("team-app")
"""

from cloudrelease.integrations.aws.base import (
    LIFECYCLE_POLICY_NOT_FOUND,
    OBJECT_NOT_FOUND_CODES,
    REPOSITORY_NOT_FOUND,
    REPOSITORY_POLICY_NOT_FOUND,
    AccountDirectoryAPI,
    AccountSummary,
    AWSClientFactory,
    ObjectStoreAPI,
    RegistryAPI,
    RepositoryInfo,
    RoleAssumer,
)
from cloudrelease.integrations.aws.factory import create_client_factory
from cloudrelease.integrations.aws.mock import (
    InMemoryAccountDirectory,
    InMemoryClientFactory,
    InMemoryObjectStore,
    InMemoryRegistry,
    InMemoryRoleAssumer,
)

__all__ = [
    # Interfaces
    "AWSClientFactory",
    "RoleAssumer",
    "AccountDirectoryAPI",
    "RegistryAPI",
    "ObjectStoreAPI",
    "AccountSummary",
    "RepositoryInfo",
    # Not-found codes
    "REPOSITORY_NOT_FOUND",
    "LIFECYCLE_POLICY_NOT_FOUND",
    "REPOSITORY_POLICY_NOT_FOUND",
    "OBJECT_NOT_FOUND_CODES",
    # Backends
    "InMemoryClientFactory",
    "InMemoryRoleAssumer",
    "InMemoryAccountDirectory",
    "InMemoryRegistry",
    "InMemoryObjectStore",
    "create_client_factory",
]
