"""
cloudrelease.infrastructure.state_backend - Terraform Remote State Backend
============================================================================

Computes where a component's terraform state lives and, on request, checks
that state does (or does not) already exist there.

Layout (S3 backend, non-default workspaces):

    s3://<tfstate_bucket>/<team>/<component>/<env_name>/terraform.tfstate
                         └─ workspace_key_prefix ─┘└ workspace ┘└── key ──┘

    locks: DynamoDB table <team>-tflocks

Existence Check:
    expectation None   → skipped
    expectation True   → object must exist; otherwise the operator is told to
                         use --new-state (or contact platform after a rename)
    expectation False  → object must NOT exist; a not-found HEAD is success,
                         a found object tells the operator to drop --new-state
"""

from __future__ import annotations

from typing import Callable, Optional

import structlog

from cloudrelease.core.config import CloudReleaseConfig
from cloudrelease.core.deadline import Deadline
from cloudrelease.core.exceptions import CloudAPIError, StateExistenceError
from cloudrelease.core.models import BackendConfig, Session
from cloudrelease.integrations.aws.base import OBJECT_NOT_FOUND_CODES, ObjectStoreAPI


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()


STATE_KEY = "terraform.tfstate"
BACKEND_TYPE = "s3"

STATE_NOT_FOUND_MESSAGE = (
    "state file not found\n\n"
    "If creating a new service, or new environment for an existing service, "
    "use the --new-state flag.\n\n"
    "Otherwise, this can happen if the team or component name have been changed. "
    "In this case the tfstate\n"
    "needs to be moved in order to keep track of your resources. "
    "Contact Platform for assistance.\n"
)

STATE_FOUND_MESSAGE = (
    "state file found\n\n"
    "Remove the --new-state or -n option if this service has previously been deployed.\n"
)


class StateBackendResolver:
    """Builds BackendConfig values and validates remote state presence.

    Attributes:
        _region: Region written into the backend config.
        _bucket: The terraform state bucket.
        _deadline: Checked before the HEAD request.
        _progress: Receives one human-readable line per check performed.
    """

    def __init__(
        self,
        config: CloudReleaseConfig,
        deadline: Optional[Deadline] = None,
        progress: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._region = config.aws.region
        self._bucket = config.aws.tfstate_bucket
        self._deadline = deadline or Deadline.none()
        self._progress = progress or (lambda line: None)
        self._logger = logger.bind(component="state_backend_resolver")

    def resolve(self, team: str, component: str, credentials: Session) -> BackendConfig:
        """Backend config for ``team/component``, carrying ``credentials``.

        Pure: makes no calls and always returns the same value for the same
        inputs.
        """
        return BackendConfig(
            access_key=credentials.access_key_id,
            secret_key=credentials.secret_access_key,
            token=credentials.session_token or "",
            region=self._region,
            bucket=self._bucket,
            workspace_key_prefix=f"{team}/{component}",
            key=STATE_KEY,
            dynamodb_table=f"{team}-tflocks",
        )

    def verify_state(
        self,
        object_store: ObjectStoreAPI,
        backend: BackendConfig,
        env_name: str,
        expectation: Optional[bool],
    ) -> None:
        """Check remote state presence against ``expectation``.

        Args:
            object_store: Object store bound to the release-account session.
            backend: Backend config from ``resolve``.
            env_name: Environment (terraform workspace) being deployed.
            expectation: True (must exist), False (must not exist), or None
                to skip the check.

        Raises:
            StateExistenceError: Presence contradicts the expectation.
            CloudAPIError: The HEAD request failed for any other reason.
        """
        if expectation is None:
            return

        key = backend.state_key(env_name)
        location = f"s3://{backend.bucket}/{key}"
        if expectation:
            self._progress(f"- Checking tfstate exists at {location}")
        else:
            self._progress(f"- Checking tfstate does not already exist at {location}")

        exists = self._exists(object_store, backend.bucket, key)
        self._logger.info(
            "state_checked",
            state_key=key,
            expected=expectation,
            exists=exists,
        )

        if expectation and not exists:
            raise StateExistenceError(
                message=STATE_NOT_FOUND_MESSAGE,
                state_key=key,
                expected=True,
            )
        if not expectation and exists:
            raise StateExistenceError(
                message=STATE_FOUND_MESSAGE,
                state_key=key,
                expected=False,
            )

    def _exists(self, object_store: ObjectStoreAPI, bucket: str, key: str) -> bool:
        self._deadline.check("HeadObject")
        try:
            object_store.head_object(bucket, key)
        except CloudAPIError as exc:
            if exc.is_not_found(*OBJECT_NOT_FOUND_CODES):
                return False
            raise
        return True
