"""
cloudrelease.integrations.aws.base - Abstract Cloud Service Interfaces
========================================================================

This module defines the contracts every cloud service backend must implement.
Components never construct SDK clients themselves; they receive these
interfaces, built for a specific Session by an AWSClientFactory.

Architecture Context:

    ┌──────────────────────┐  role_assumer(session)   ┌──────────────────┐
    │ CredentialChain      │ ───────────────────────→ │  AWSClientFactory │
    │ RepositoryReconciler │  registry(session)       │  (abstract)       │
    │ StateBackendResolver │  object_store(session)   │                   │
    │ ArtifactCache        │  account_directory(...)  └─────────┬─────────┘
    └──────────────────────┘                                    │
                                                   ┌────────────┴───────────┐
                                              ┌────▼─────┐          ┌───────▼──────┐
                                              │ InMemory │          │ Boto3 (STS,  │
                                              │ (fakes)  │          │ ECR, S3, Org)│
                                              └──────────┘          └──────────────┘

Error Contract:
    Every method raises CloudAPIError for API failures, carrying the
    provider's error code in ``aws_code``. The codes listed below are the only
    ones callers treat as "absent"; anything else is an infrastructure failure.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, BinaryIO, Iterator

from pydantic import BaseModel, Field

from cloudrelease.core.enums import TagMutability
from cloudrelease.core.models import Session


# =============================================================================
# Recognized "Not Found" Error Codes
# =============================================================================
REPOSITORY_NOT_FOUND = "RepositoryNotFoundException"
LIFECYCLE_POLICY_NOT_FOUND = "LifecyclePolicyNotFoundException"
REPOSITORY_POLICY_NOT_FOUND = "RepositoryPolicyNotFoundException"

# HeadObject has no body, so S3 reports a bare "NotFound" / "404" code rather
# than the "NoSuchKey" a GetObject would.
OBJECT_NOT_FOUND_CODES = ("NotFound", "404", "NoSuchKey")


# =============================================================================
# Value Types
# =============================================================================
class RepositoryInfo(BaseModel):
    """Remote view of a registry repository."""

    name: str = Field(description="Repository name")
    uri: str = Field(description="Repository URI")
    scan_on_push: bool = Field(default=False, description="Image scanning flag")
    tag_mutability: TagMutability = Field(
        default=TagMutability.MUTABLE,
        description="Image tag mutability",
    )


class AccountSummary(BaseModel):
    """One member account of the organization."""

    id: str = Field(description="Account id")
    name: str = Field(description="Account name (alias)")
    status: str = Field(default="ACTIVE", description="Account status")


# =============================================================================
# Role Assumption
# =============================================================================
class RoleAssumer(ABC):
    """Obtains credentials for a role in another account."""

    @abstractmethod
    def assume_role(self, role_arn: str, role_session_name: str) -> Session:
        """Assume ``role_arn`` and return the temporary credentials.

        Raises:
            RoleAssumptionError: The role could not be assumed by the caller.
            CloudAPIError: The service could not be reached.
        """
        ...


# =============================================================================
# Account Directory
# =============================================================================
class AccountDirectoryAPI(ABC):
    """Lists the member accounts of the organization."""

    @abstractmethod
    def iter_account_pages(self) -> Iterator[list[AccountSummary]]:
        """Yield member accounts one page at a time.

        Pages are fetched lazily, so a caller that stops iterating early
        issues no further list calls.
        """
        ...


# =============================================================================
# Container Registry
# =============================================================================
class RegistryAPI(ABC):
    """Container registry repository operations."""

    @abstractmethod
    def describe_repository(self, name: str) -> RepositoryInfo:
        """Describe one repository. Missing → REPOSITORY_NOT_FOUND."""
        ...

    @abstractmethod
    def create_repository(
        self,
        name: str,
        scan_on_push: bool,
        tag_mutability: TagMutability,
    ) -> RepositoryInfo:
        """Create a repository with the given security settings."""
        ...

    @abstractmethod
    def put_image_scanning_configuration(self, name: str, scan_on_push: bool) -> None:
        """Set the scan-on-push flag of a repository."""
        ...

    @abstractmethod
    def put_image_tag_mutability(self, name: str, tag_mutability: TagMutability) -> None:
        """Set the tag mutability of a repository."""
        ...

    @abstractmethod
    def get_lifecycle_policy(self, name: str) -> str:
        """Return the lifecycle policy text. Missing → LIFECYCLE_POLICY_NOT_FOUND."""
        ...

    @abstractmethod
    def put_lifecycle_policy(self, name: str, policy_text: str) -> None:
        """Replace the lifecycle policy of a repository."""
        ...

    @abstractmethod
    def get_repository_policy(self, name: str) -> str:
        """Return the access policy text. Missing → REPOSITORY_POLICY_NOT_FOUND."""
        ...

    @abstractmethod
    def set_repository_policy(self, name: str, policy_text: str) -> None:
        """Replace the access policy of a repository."""
        ...


# =============================================================================
# Object Store
# =============================================================================
class ObjectStoreAPI(ABC):
    """Durable object storage operations."""

    @abstractmethod
    def head_object(self, bucket: str, key: str) -> dict[str, Any]:
        """Return object metadata. Missing → one of OBJECT_NOT_FOUND_CODES."""
        ...

    @abstractmethod
    def get_object(self, bucket: str, key: str) -> BinaryIO:
        """Open an object for streaming reads. The caller closes the stream."""
        ...

    @abstractmethod
    def upload_fileobj(self, bucket: str, key: str, fileobj: BinaryIO) -> None:
        """Stream ``fileobj`` to ``bucket/key``, overwriting any existing object."""
        ...


# =============================================================================
# Client Factory
# =============================================================================
class AWSClientFactory(ABC):
    """Builds service interfaces bound to a particular Session.

    Subclasses must implement every builder plus ``open_session``, which is
    where "these credentials cannot even be turned into an SDK session" is
    detected.
    """

    @abstractmethod
    def open_session(self, session: Session) -> None:
        """Construct (and cache) the SDK session for ``session``.

        Raises:
            SessionConstructionError: The SDK rejected otherwise valid credentials.
        """
        ...

    def request_scope(self) -> AWSClientFactory:
        """Factory to use for a single request.

        Anything a factory caches per credential set lives on the returned
        object and is dropped together with the request. Factories that
        hold no credential state return themselves.
        """
        return self

    @abstractmethod
    def role_assumer(self, session: Session) -> RoleAssumer:
        ...

    @abstractmethod
    def account_directory(self, session: Session) -> AccountDirectoryAPI:
        ...

    @abstractmethod
    def registry(self, session: Session) -> RegistryAPI:
        ...

    @abstractmethod
    def object_store(self, session: Session) -> ObjectStoreAPI:
        ...
