"""
cloudrelease.integrations.aws.boto - boto3 Service Backends
=============================================================

Production implementations of the service interfaces in ``base``, built on
synchronous boto3 clients. This is the only module that imports the SDK; SDK
exceptions are translated into CloudAPIError (or RoleAssumptionError) right
here, so nothing above this layer ever sees a botocore type.

Retries:
    Transient failures are retried by botocore itself ("standard" retry mode,
    ``aws.max_attempts`` attempts). Nothing in CloudRelease retries on top.

Usage:
    >>> factory = Boto3ClientFactory(config.aws).request_scope()
    >>> factory.open_session(root)
    >>> registry = factory.registry(release_session)
    >>> registry.describe_repository("team-app").uri
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, BinaryIO, Iterator, Optional

import boto3
import structlog
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from cloudrelease.core.config import AWSConfig
from cloudrelease.core.enums import TagMutability
from cloudrelease.core.exceptions import (
    CloudAPIError,
    RoleAssumptionError,
    SessionConstructionError,
)
from cloudrelease.core.models import Session
from cloudrelease.integrations.aws.base import (
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


# =============================================================================
# Error Translation
# =============================================================================
@contextmanager
def translate_errors(operation: str) -> Iterator[None]:
    """Translate botocore exceptions raised inside the block into CloudAPIError.

    Args:
        operation: API operation name, recorded on the error.
    """
    try:
        yield
    except ClientError as exc:
        error = exc.response.get("Error", {})
        code = str(error.get("Code", ""))
        raise CloudAPIError(
            message=f"{operation} failed: {error.get('Message') or code or exc}",
            operation=operation,
            aws_code=code,
        ) from exc
    except BotoCoreError as exc:
        raise CloudAPIError(
            message=f"{operation} failed: {exc}",
            operation=operation,
        ) from exc


def _account_from_arn(arn: str) -> str:
    # arn:partition:service:region:account-id:resource
    parts = arn.split(":")
    return parts[4] if len(parts) > 4 else ""


# =============================================================================
# STS
# =============================================================================
class Boto3RoleAssumer(RoleAssumer):
    """Assumes roles through STS."""

    def __init__(self, client: Any) -> None:
        self._client = client

    def assume_role(self, role_arn: str, role_session_name: str) -> Session:
        try:
            response = self._client.assume_role(
                RoleArn=role_arn,
                RoleSessionName=role_session_name,
            )
        except ClientError as exc:
            error = exc.response.get("Error", {})
            raise RoleAssumptionError(
                message=f"Unable to assume role: {error.get('Message') or exc}",
                role_arn=role_arn,
                details={"aws_code": error.get("Code", "")},
            ) from exc
        except BotoCoreError as exc:
            raise CloudAPIError(
                message=f"AssumeRole failed: {exc}",
                operation="AssumeRole",
            ) from exc

        credentials = response["Credentials"]
        return Session(
            access_key_id=credentials["AccessKeyId"],
            secret_access_key=credentials["SecretAccessKey"],
            session_token=credentials.get("SessionToken"),
            expiration=credentials.get("Expiration"),
            account_id=_account_from_arn(role_arn),
            role_arn=role_arn,
        )


# =============================================================================
# Organizations
# =============================================================================
class Boto3AccountDirectory(AccountDirectoryAPI):
    """Lists organization accounts with the ListAccounts paginator."""

    def __init__(self, client: Any) -> None:
        self._client = client

    def iter_account_pages(self) -> Iterator[list[AccountSummary]]:
        paginator = self._client.get_paginator("list_accounts")
        with translate_errors("ListAccounts"):
            for page in paginator.paginate():
                yield [
                    AccountSummary(
                        id=account["Id"],
                        name=account.get("Name", ""),
                        status=account.get("Status", ""),
                    )
                    for account in page.get("Accounts", [])
                ]


# =============================================================================
# ECR
# =============================================================================
class Boto3Registry(RegistryAPI):
    """ECR repository operations."""

    def __init__(self, client: Any) -> None:
        self._client = client

    @staticmethod
    def _to_info(repository: dict[str, Any]) -> RepositoryInfo:
        scanning = repository.get("imageScanningConfiguration") or {}
        return RepositoryInfo(
            name=repository["repositoryName"],
            uri=repository["repositoryUri"],
            scan_on_push=bool(scanning.get("scanOnPush", False)),
            tag_mutability=TagMutability(repository.get("imageTagMutability", "MUTABLE")),
        )

    def describe_repository(self, name: str) -> RepositoryInfo:
        with translate_errors("DescribeRepositories"):
            response = self._client.describe_repositories(repositoryNames=[name])
        return self._to_info(response["repositories"][0])

    def create_repository(
        self,
        name: str,
        scan_on_push: bool,
        tag_mutability: TagMutability,
    ) -> RepositoryInfo:
        with translate_errors("CreateRepository"):
            response = self._client.create_repository(
                repositoryName=name,
                imageScanningConfiguration={"scanOnPush": scan_on_push},
                imageTagMutability=tag_mutability.value,
            )
        return self._to_info(response["repository"])

    def put_image_scanning_configuration(self, name: str, scan_on_push: bool) -> None:
        with translate_errors("PutImageScanningConfiguration"):
            self._client.put_image_scanning_configuration(
                repositoryName=name,
                imageScanningConfiguration={"scanOnPush": scan_on_push},
            )

    def put_image_tag_mutability(self, name: str, tag_mutability: TagMutability) -> None:
        with translate_errors("PutImageTagMutability"):
            self._client.put_image_tag_mutability(
                repositoryName=name,
                imageTagMutability=tag_mutability.value,
            )

    def get_lifecycle_policy(self, name: str) -> str:
        with translate_errors("GetLifecyclePolicy"):
            response = self._client.get_lifecycle_policy(repositoryName=name)
        return response.get("lifecyclePolicyText", "")

    def put_lifecycle_policy(self, name: str, policy_text: str) -> None:
        with translate_errors("PutLifecyclePolicy"):
            self._client.put_lifecycle_policy(
                repositoryName=name,
                lifecyclePolicyText=policy_text,
            )

    def get_repository_policy(self, name: str) -> str:
        with translate_errors("GetRepositoryPolicy"):
            response = self._client.get_repository_policy(repositoryName=name)
        return response.get("policyText", "")

    def set_repository_policy(self, name: str, policy_text: str) -> None:
        with translate_errors("SetRepositoryPolicy"):
            self._client.set_repository_policy(
                repositoryName=name,
                policyText=policy_text,
            )


# =============================================================================
# S3
# =============================================================================
class Boto3ObjectStore(ObjectStoreAPI):
    """S3 object operations. Uploads go through the managed transfer API."""

    def __init__(self, client: Any) -> None:
        self._client = client

    def head_object(self, bucket: str, key: str) -> dict[str, Any]:
        with translate_errors("HeadObject"):
            response = self._client.head_object(Bucket=bucket, Key=key)
        return dict(response.get("Metadata") or {})

    def get_object(self, bucket: str, key: str) -> BinaryIO:
        with translate_errors("GetObject"):
            response = self._client.get_object(Bucket=bucket, Key=key)
        return response["Body"]

    def upload_fileobj(self, bucket: str, key: str, fileobj: BinaryIO) -> None:
        with translate_errors("PutObject"):
            self._client.upload_fileobj(fileobj, bucket, key)


# =============================================================================
# Factory
# =============================================================================
class Boto3ClientFactory(AWSClientFactory):
    """Builds boto3-backed service interfaces for a Session.

    The factory shared by the plugin keeps no credentials: every call builds
    a fresh ``boto3.session.Session``. ``request_scope()`` returns a child
    that builds one SDK session per distinct credential set and reuses it
    for every client made from it, for as long as the request holds it.

    Attributes:
        _config: AWS configuration (region, retry policy, socket timeouts).
        _sessions: SDK sessions keyed by access key id; ``None`` outside a
            request scope.
    """

    def __init__(self, config: AWSConfig) -> None:
        self._config = config
        self._client_config = Config(
            region_name=config.region,
            retries={"max_attempts": config.max_attempts, "mode": "standard"},
            connect_timeout=config.connect_timeout,
            read_timeout=config.read_timeout,
        )
        self._sessions: Optional[dict[str, boto3.session.Session]] = None
        self._logger = logger.bind(component="boto3_client_factory")

    def request_scope(self) -> Boto3ClientFactory:
        scoped = Boto3ClientFactory(self._config)
        scoped._sessions = {}
        return scoped

    def open_session(self, session: Session) -> None:
        self._boto_session(session)

    def _boto_session(self, session: Session) -> boto3.session.Session:
        if self._sessions is not None and session.access_key_id in self._sessions:
            return self._sessions[session.access_key_id]
        try:
            boto_session = boto3.session.Session(
                aws_access_key_id=session.access_key_id,
                aws_secret_access_key=session.secret_access_key,
                aws_session_token=session.session_token or None,
                region_name=self._config.region,
            )
        except (BotoCoreError, ValueError) as exc:
            raise SessionConstructionError(
                message=f"unable to create a new AWS session: {exc}",
            ) from exc
        if self._sessions is not None:
            self._sessions[session.access_key_id] = boto_session
        self._logger.debug("aws_session_opened", account_id=session.account_id)
        return boto_session

    def _client(self, session: Session, service: str) -> Any:
        with translate_errors(f"create {service} client"):
            return self._boto_session(session).client(service, config=self._client_config)

    def role_assumer(self, session: Session) -> RoleAssumer:
        return Boto3RoleAssumer(self._client(session, "sts"))

    def account_directory(self, session: Session) -> AccountDirectoryAPI:
        return Boto3AccountDirectory(self._client(session, "organizations"))

    def registry(self, session: Session) -> RegistryAPI:
        return Boto3Registry(self._client(session, "ecr"))

    def object_store(self, session: Session) -> ObjectStoreAPI:
        return Boto3ObjectStore(self._client(session, "s3"))
