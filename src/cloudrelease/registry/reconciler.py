"""
cloudrelease.registry.reconciler - Container Registry Reconciliation
======================================================================

Brings one registry repository into its required shape, writing only what
has drifted.

State Machine:

    ┌─────────┐  describe: RepositoryNotFoundException   ┌─────────┐
    │ MISSING │ ───────────────────────────────────────→ │ CREATED │
    └─────────┘  create(scan_on_push, IMMUTABLE)         └────┬────┘
         │                                                    │ put access policy
         │ describe: found                                    │ put lifecycle policy
         ▼                                                    ▼
    compare scan_on_push ─→ put_image_scanning_configuration  ┌──────────┐
    compare mutability   ─→ put_image_tag_mutability          │ VERIFIED │
    compare access policy  ─→ set_repository_policy   ──────→ └──────────┘
    compare lifecycle policy ─→ put_lifecycle_policy

Each comparison issues at most one write, and only on mismatch, so a second
reconciliation with no external change makes zero writes.

Error Handling:
    Only the three not-found codes select the create / "absent" branches.
    Every other CloudAPIError propagates and aborts the reconciliation.
"""

from __future__ import annotations

from typing import Iterable, Optional

import structlog

from cloudrelease.core.config import CloudReleaseConfig
from cloudrelease.core.deadline import Deadline
from cloudrelease.core.enums import RepositoryState, TagMutability
from cloudrelease.core.exceptions import CloudAPIError
from cloudrelease.core.models import RepositoryDescriptor
from cloudrelease.integrations.aws.base import (
    LIFECYCLE_POLICY_NOT_FOUND,
    REPOSITORY_NOT_FOUND,
    REPOSITORY_POLICY_NOT_FOUND,
    RegistryAPI,
    RepositoryInfo,
)
from cloudrelease.registry.policies import (
    build_access_policy,
    build_lifecycle_policy,
    canonical_policy,
)


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()


REQUIRED_SCAN_ON_PUSH = True
REQUIRED_TAG_MUTABILITY = TagMutability.IMMUTABLE


def repository_name(team: str, component: str) -> str:
    """The only way a repository name is ever formed: ``team-component``."""
    return f"{team}-{component}"


class RepositoryReconciler:
    """Ensures a registry repository exists with the required settings.

    Attributes:
        _registry: Registry interface bound to the release-account session.
        _access_policy: Target access policy text (fixed per organization).
        _retention_count: Tagged images kept per build id.
        _deadline: Checked before every registry call.
    """

    def __init__(
        self,
        registry: RegistryAPI,
        config: CloudReleaseConfig,
        deadline: Optional[Deadline] = None,
    ) -> None:
        self._registry = registry
        self._access_policy = build_access_policy(config.aws.organization_id)
        self._retention_count = config.registry.image_retention_count
        self._deadline = deadline or Deadline.none()
        self._logger = logger.bind(component="repository_reconciler")

    def reconcile(self, name: str, ecr_build_ids: Iterable[str]) -> RepositoryDescriptor:
        """Reconcile repository ``name`` for the given ecr build ids.

        Args:
            name: Repository name (see ``repository_name``).
            ecr_build_ids: Build ids that declared the "ecr" need. Order does
                not matter.

        Returns:
            The reconciled RepositoryDescriptor; ``writes`` lists every
            corrective call that was made.

        Raises:
            CloudAPIError: Any registry failure other than a recognized
                not-found signal.
        """
        build_ids = sorted(set(ecr_build_ids))
        lifecycle_policy = build_lifecycle_policy(build_ids, self._retention_count)
        writes: list[str] = []

        info = self._describe(name)
        if info is None:
            info = self._create(name, writes)
            state = RepositoryState.CREATED
            current_access_policy = ""
            current_lifecycle_policy = ""
        else:
            state = RepositoryState.VERIFIED
            self._correct_settings(info, writes)
            current_access_policy = self._get_access_policy(name)
            current_lifecycle_policy = self._get_lifecycle_policy(name) if build_ids else ""

        if current_access_policy != self._access_policy:
            self._deadline.check("SetRepositoryPolicy")
            self._registry.set_repository_policy(name, self._access_policy)
            writes.append("SetRepositoryPolicy")

        if build_ids and current_lifecycle_policy != lifecycle_policy:
            self._deadline.check("PutLifecyclePolicy")
            self._registry.put_lifecycle_policy(name, lifecycle_policy)
            writes.append("PutLifecyclePolicy")

        self._logger.info(
            "repository_reconciled",
            repository=name,
            initial_state=state.value,
            writes=writes,
            build_ids=build_ids,
        )
        return RepositoryDescriptor(
            name=name,
            uri=info.uri,
            scan_on_push=REQUIRED_SCAN_ON_PUSH,
            tag_mutability=REQUIRED_TAG_MUTABILITY,
            lifecycle_policy=lifecycle_policy if build_ids else current_lifecycle_policy,
            access_policy=self._access_policy,
            state=RepositoryState.VERIFIED,
            writes=writes,
        )

    # =========================================================================
    # Steps
    # =========================================================================
    def _describe(self, name: str) -> Optional[RepositoryInfo]:
        self._deadline.check("DescribeRepositories")
        try:
            return self._registry.describe_repository(name)
        except CloudAPIError as exc:
            if exc.is_not_found(REPOSITORY_NOT_FOUND):
                return None
            raise

    def _create(self, name: str, writes: list[str]) -> RepositoryInfo:
        self._deadline.check("CreateRepository")
        info = self._registry.create_repository(
            name,
            scan_on_push=REQUIRED_SCAN_ON_PUSH,
            tag_mutability=REQUIRED_TAG_MUTABILITY,
        )
        writes.append("CreateRepository")
        self._logger.info("repository_created", repository=name, uri=info.uri)
        return info

    def _correct_settings(self, info: RepositoryInfo, writes: list[str]) -> None:
        # Separate calls: the registry API has no combined settings update.
        if info.scan_on_push != REQUIRED_SCAN_ON_PUSH:
            self._deadline.check("PutImageScanningConfiguration")
            self._registry.put_image_scanning_configuration(info.name, REQUIRED_SCAN_ON_PUSH)
            writes.append("PutImageScanningConfiguration")
        if info.tag_mutability != REQUIRED_TAG_MUTABILITY:
            self._deadline.check("PutImageTagMutability")
            self._registry.put_image_tag_mutability(info.name, REQUIRED_TAG_MUTABILITY)
            writes.append("PutImageTagMutability")

    def _get_access_policy(self, name: str) -> str:
        self._deadline.check("GetRepositoryPolicy")
        try:
            return canonical_policy(self._registry.get_repository_policy(name))
        except CloudAPIError as exc:
            if exc.is_not_found(REPOSITORY_POLICY_NOT_FOUND):
                return ""
            raise

    def _get_lifecycle_policy(self, name: str) -> str:
        self._deadline.check("GetLifecyclePolicy")
        try:
            return canonical_policy(self._registry.get_lifecycle_policy(name))
        except CloudAPIError as exc:
            if exc.is_not_found(LIFECYCLE_POLICY_NOT_FOUND):
                return ""
            raise
