"""
cloudrelease.integrations.aws.mock - In-Memory Cloud Backends for Testing
===========================================================================

In-memory implementations of every service interface. They make no network
calls and are the default backends for tests and local experiments.

Why In-Memory Backends?
    1. **No credentials required**: Tests run without an AWS account.
    2. **Deterministic**: Same calls always produce the same state.
    3. **Call tracking**: Every call is recorded for assertions, which is how
       idempotence ("no writes on the second run") is verified.
    4. **Failure injection**: Any operation can be made to fail with a chosen
       error code.

Usage:
    >>> clients = InMemoryClientFactory()
    >>> clients.account_directory_api.add_accounts({"foodev": "111", "fooprod": "222"})
    >>> clients.registry_api.fail("DescribeRepositories", "AccessDeniedException")
    >>> clients.registry_api.writes
    []
"""

from __future__ import annotations

import io
from typing import Any, BinaryIO, Iterator, Optional

import structlog

from cloudrelease.core.enums import TagMutability
from cloudrelease.core.exceptions import (
    CloudAPIError,
    RoleAssumptionError,
    SessionConstructionError,
)
from cloudrelease.core.models import Session
from cloudrelease.integrations.aws.base import (
    LIFECYCLE_POLICY_NOT_FOUND,
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


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()


class _FailureInjection:
    """Shared failure-injection and call-tracking behaviour."""

    def __init__(self) -> None:
        self._failures: dict[str, CloudAPIError] = {}
        self._call_history: list[tuple[str, Any]] = []

    @property
    def call_history(self) -> list[tuple[str, Any]]:
        """Every recorded call as ``(operation, argument)``."""
        return list(self._call_history)

    def operations(self) -> list[str]:
        """Names of every recorded operation, in call order."""
        return [operation for operation, _ in self._call_history]

    def fail(self, operation: str, aws_code: str, message: str = "") -> None:
        """Make ``operation`` raise CloudAPIError with ``aws_code`` from now on."""
        self._failures[operation] = CloudAPIError(
            message=message or f"{operation} failed: {aws_code}",
            operation=operation,
            aws_code=aws_code,
        )

    def clear_failures(self) -> None:
        self._failures.clear()

    def reset_history(self) -> None:
        self._call_history.clear()

    def _record(self, operation: str, argument: Any) -> None:
        self._call_history.append((operation, argument))
        if operation in self._failures:
            raise self._failures[operation]


# =============================================================================
# Role Assumer
# =============================================================================
class InMemoryRoleAssumer(_FailureInjection, RoleAssumer):
    """Hands out deterministic credentials for any role.

    Attributes:
        _credentials: Role ARN → credentials to return for it.
        _denied: Role ARNs whose assumption is refused.
    """

    def __init__(self) -> None:
        super().__init__()
        self._credentials: dict[str, Session] = {}
        self._denied: set[str] = set()

    def set_credentials(self, role_arn: str, session: Session) -> None:
        """Return ``session`` whenever ``role_arn`` is assumed."""
        self._credentials[role_arn] = session

    def deny(self, role_arn: str) -> None:
        """Refuse to let anyone assume ``role_arn``."""
        self._denied.add(role_arn)

    @property
    def assumed_roles(self) -> list[tuple[str, str]]:
        """``(role_arn, role_session_name)`` for every assumption made."""
        return [argument for operation, argument in self._call_history if operation == "AssumeRole"]

    def assume_role(self, role_arn: str, role_session_name: str) -> Session:
        self._record("AssumeRole", (role_arn, role_session_name))
        if role_arn in self._denied:
            raise RoleAssumptionError(
                message=f"Unable to assume role: not authorized to assume {role_arn}",
                role_arn=role_arn,
            )
        if role_arn in self._credentials:
            return self._credentials[role_arn]
        account_id = role_arn.split(":")[4] if role_arn.count(":") >= 5 else ""
        return Session(
            access_key_id=f"ASIA{account_id}",
            secret_access_key=f"secret-{account_id}",
            session_token=f"token-{account_id}",
            account_id=account_id,
            role_arn=role_arn,
        )


# =============================================================================
# Account Directory
# =============================================================================
class InMemoryAccountDirectory(_FailureInjection, AccountDirectoryAPI):
    """Serves organization accounts from explicit pages.

    Attributes:
        _pages: Pages of accounts, served in order.
        pages_served: How many pages have been handed out so far.
    """

    def __init__(self, pages: Optional[list[list[AccountSummary]]] = None) -> None:
        super().__init__()
        self._pages: list[list[AccountSummary]] = pages or []
        self.pages_served = 0

    def add_accounts(self, accounts: dict[str, str], page_size: int = 20) -> None:
        """Append ``name → id`` accounts, split into pages of ``page_size``."""
        summaries = [AccountSummary(id=id_, name=name) for name, id_ in accounts.items()]
        for start in range(0, len(summaries), page_size):
            self._pages.append(summaries[start:start + page_size])

    def iter_account_pages(self) -> Iterator[list[AccountSummary]]:
        for index, page in enumerate(self._pages):
            self._record("ListAccounts", index)
            self.pages_served += 1
            yield list(page)


# =============================================================================
# Registry
# =============================================================================
WRITE_OPERATIONS = frozenset({
    "CreateRepository",
    "PutImageScanningConfiguration",
    "PutImageTagMutability",
    "PutLifecyclePolicy",
    "SetRepositoryPolicy",
})


class InMemoryRegistry(_FailureInjection, RegistryAPI):
    """A container registry held in dictionaries.

    Attributes:
        repositories: Name → repository.
        lifecycle_policies: Name → lifecycle policy text.
        repository_policies: Name → access policy text.
    """

    def __init__(self, account_id: str = "123456789012", region: str = "eu-west-1") -> None:
        super().__init__()
        self._account_id = account_id
        self._region = region
        self.repositories: dict[str, RepositoryInfo] = {}
        self.lifecycle_policies: dict[str, str] = {}
        self.repository_policies: dict[str, str] = {}

    def uri_for(self, name: str) -> str:
        return f"{self._account_id}.dkr.ecr.{self._region}.amazonaws.com/{name}"

    def add_repository(
        self,
        name: str,
        scan_on_push: bool = True,
        tag_mutability: TagMutability = TagMutability.IMMUTABLE,
    ) -> RepositoryInfo:
        """Seed an existing repository (bypasses call tracking)."""
        info = RepositoryInfo(
            name=name,
            uri=self.uri_for(name),
            scan_on_push=scan_on_push,
            tag_mutability=tag_mutability,
        )
        self.repositories[name] = info
        return info

    @property
    def writes(self) -> list[str]:
        """Write operations issued so far, in order."""
        return [operation for operation in self.operations() if operation in WRITE_OPERATIONS]

    def _require(self, name: str) -> RepositoryInfo:
        if name not in self.repositories:
            raise CloudAPIError(
                message=f"The repository with name '{name}' does not exist",
                operation="DescribeRepositories",
                aws_code=REPOSITORY_NOT_FOUND,
            )
        return self.repositories[name]

    def describe_repository(self, name: str) -> RepositoryInfo:
        self._record("DescribeRepositories", name)
        return self._require(name)

    def create_repository(
        self,
        name: str,
        scan_on_push: bool,
        tag_mutability: TagMutability,
    ) -> RepositoryInfo:
        self._record("CreateRepository", name)
        if name in self.repositories:
            raise CloudAPIError(
                message=f"The repository with name '{name}' already exists",
                operation="CreateRepository",
                aws_code="RepositoryAlreadyExistsException",
            )
        return self.add_repository(name, scan_on_push, tag_mutability)

    def put_image_scanning_configuration(self, name: str, scan_on_push: bool) -> None:
        self._record("PutImageScanningConfiguration", name)
        current = self._require(name)
        self.repositories[name] = current.model_copy(update={"scan_on_push": scan_on_push})

    def put_image_tag_mutability(self, name: str, tag_mutability: TagMutability) -> None:
        self._record("PutImageTagMutability", name)
        current = self._require(name)
        self.repositories[name] = current.model_copy(update={"tag_mutability": tag_mutability})

    def get_lifecycle_policy(self, name: str) -> str:
        self._record("GetLifecyclePolicy", name)
        self._require(name)
        if name not in self.lifecycle_policies:
            raise CloudAPIError(
                message=f"Lifecycle policy does not exist for '{name}'",
                operation="GetLifecyclePolicy",
                aws_code=LIFECYCLE_POLICY_NOT_FOUND,
            )
        return self.lifecycle_policies[name]

    def put_lifecycle_policy(self, name: str, policy_text: str) -> None:
        self._record("PutLifecyclePolicy", name)
        self._require(name)
        self.lifecycle_policies[name] = policy_text

    def get_repository_policy(self, name: str) -> str:
        self._record("GetRepositoryPolicy", name)
        self._require(name)
        if name not in self.repository_policies:
            raise CloudAPIError(
                message=f"Repository policy does not exist for '{name}'",
                operation="GetRepositoryPolicy",
                aws_code=REPOSITORY_POLICY_NOT_FOUND,
            )
        return self.repository_policies[name]

    def set_repository_policy(self, name: str, policy_text: str) -> None:
        self._record("SetRepositoryPolicy", name)
        self._require(name)
        self.repository_policies[name] = policy_text


# =============================================================================
# Object Store
# =============================================================================
class InMemoryObjectStore(_FailureInjection, ObjectStoreAPI):
    """An object store held in a dictionary keyed by ``(bucket, key)``."""

    def __init__(self) -> None:
        super().__init__()
        self.objects: dict[tuple[str, str], bytes] = {}

    def put(self, bucket: str, key: str, data: bytes) -> None:
        """Seed an object (bypasses call tracking)."""
        self.objects[(bucket, key)] = data

    def contains(self, bucket: str, key: str) -> bool:
        return (bucket, key) in self.objects

    @property
    def uploads(self) -> list[tuple[str, str]]:
        """``(bucket, key)`` of every upload, in order."""
        return [argument for operation, argument in self._call_history if operation == "PutObject"]

    def head_object(self, bucket: str, key: str) -> dict[str, Any]:
        self._record("HeadObject", (bucket, key))
        if (bucket, key) not in self.objects:
            raise CloudAPIError(
                message="Not Found",
                operation="HeadObject",
                aws_code="404",
            )
        return {}

    def get_object(self, bucket: str, key: str) -> BinaryIO:
        self._record("GetObject", (bucket, key))
        if (bucket, key) not in self.objects:
            raise CloudAPIError(
                message="The specified key does not exist.",
                operation="GetObject",
                aws_code="NoSuchKey",
            )
        return io.BytesIO(self.objects[(bucket, key)])

    def upload_fileobj(self, bucket: str, key: str, fileobj: BinaryIO) -> None:
        self._record("PutObject", (bucket, key))
        self.objects[(bucket, key)] = fileobj.read()


# =============================================================================
# Factory
# =============================================================================
class InMemoryClientFactory(AWSClientFactory):
    """Hands out one shared in-memory backend per service.

    The same backend instance is returned regardless of the session asked
    for; ``sessions_used`` records which session each service was built for,
    so tests can check the right account was used for the right call.

    Attributes:
        role_assumer_api: Shared InMemoryRoleAssumer.
        account_directory_api: Shared InMemoryAccountDirectory.
        registry_api: Shared InMemoryRegistry.
        object_store_api: Shared InMemoryObjectStore.
        sessions_used: ``(service, access_key_id)`` per builder call.
        fail_open_session: If True, open_session() raises.
    """

    def __init__(self, account_id: str = "123456789012", region: str = "eu-west-1") -> None:
        self.role_assumer_api = InMemoryRoleAssumer()
        self.account_directory_api = InMemoryAccountDirectory()
        self.registry_api = InMemoryRegistry(account_id=account_id, region=region)
        self.object_store_api = InMemoryObjectStore()
        self.sessions_used: list[tuple[str, str]] = []
        self.opened_sessions: list[str] = []
        self.fail_open_session = False
        self._logger = logger.bind(component="in_memory_client_factory")

    def open_session(self, session: Session) -> None:
        if self.fail_open_session:
            self._logger.warning("open_session_failed", access_key_id=session.access_key_id)
            raise SessionConstructionError(
                message="unable to create a new AWS session: simulated failure",
            )
        self.opened_sessions.append(session.access_key_id)

    def role_assumer(self, session: Session) -> RoleAssumer:
        self.sessions_used.append(("sts", session.access_key_id))
        return self.role_assumer_api

    def account_directory(self, session: Session) -> AccountDirectoryAPI:
        self.sessions_used.append(("organizations", session.access_key_id))
        return self.account_directory_api

    def registry(self, session: Session) -> RegistryAPI:
        self.sessions_used.append(("ecr", session.access_key_id))
        return self.registry_api

    def object_store(self, session: Session) -> ObjectStoreAPI:
        self.sessions_used.append(("s3", session.access_key_id))
        return self.object_store_api
