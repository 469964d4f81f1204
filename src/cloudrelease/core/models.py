"""
cloudrelease.core.models - Core Data Models
=============================================

The Pydantic data models every layer of CloudRelease speaks in.

Model Groups:
    Identity & credentials:
        Session             → Temporary credentials bound to one account
    Cloud resources:
        RepositoryDescriptor → A reconciled container registry repository
        BackendConfig        → Terraform S3 remote state backend settings
        ReleaseArtifact      → A versioned release bundle in the release bucket
        PluginReference      → A provider plugin inside a release bundle
    Host contract (request/response pairs for the three hook points):
        ConfigureReleaseRequest / ConfigureReleaseResponse
        PrepareTerraformRequest / PrepareTerraformResponse
        UploadReleaseRequest    / UploadReleaseResponse

Data Flow:
    ┌──────────────┐   Session   ┌──────────────────────┐
    │ Credential   │ ──────────→ │ RepositoryReconciler │ → RepositoryDescriptor
    │ Chain        │             │ StateBackendResolver │ → BackendConfig
    └──────────────┘             │ ArtifactCache        │ ← ReleaseArtifact
                                 └──────────────────────┘   PluginReference
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from cloudrelease.core.enums import RepositoryState, TagMutability


# =============================================================================
# Session
# =============================================================================
# A Session is only ever held in memory for one request (see RequestContext).
# Secrets are excluded from repr so they never end up in logs by accident.
# =============================================================================
class Session(BaseModel):
    """Temporary credentials bound to one cloud account.

    Attributes:
        access_key_id: AWS access key id.
        secret_access_key: AWS secret access key.
        session_token: Session token; None for long-lived root keys.
        expiration: When the credentials expire (assumed roles only).
        account_id: Account the credentials belong to, when known.
        role_arn: Role these credentials were obtained through, if any.
    """

    access_key_id: str = Field(description="AWS access key id")
    secret_access_key: str = Field(repr=False, description="AWS secret access key")
    session_token: Optional[str] = Field(
        default=None,
        repr=False,
        description="Session token (None for static root keys)",
    )
    expiration: Optional[datetime] = Field(
        default=None,
        description="Expiry of assumed-role credentials",
    )
    account_id: Optional[str] = Field(
        default=None,
        description="Account these credentials are bound to",
    )
    role_arn: Optional[str] = Field(
        default=None,
        description="Role ARN these credentials were assumed from",
    )

    model_config = {"frozen": True}

    def as_env(self, region: str) -> dict[str, str]:
        """Render the credentials as the standard AWS environment variables.

        Args:
            region: Value for AWS_DEFAULT_REGION.

        Returns:
            Dict with AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY,
            AWS_SESSION_TOKEN and AWS_DEFAULT_REGION.
        """
        return {
            "AWS_ACCESS_KEY_ID": self.access_key_id,
            "AWS_SECRET_ACCESS_KEY": self.secret_access_key,
            "AWS_SESSION_TOKEN": self.session_token or "",
            "AWS_DEFAULT_REGION": region,
        }


# =============================================================================
# Repository Descriptor
# =============================================================================
class RepositoryDescriptor(BaseModel):
    """A container registry repository after reconciliation.

    Attributes:
        name: Logical name, always ``team-component``.
        uri: Remote URI, assigned at creation and immutable thereafter.
        scan_on_push: Image scanning flag (always True once reconciled).
        tag_mutability: Tag mutability (always IMMUTABLE once reconciled).
        lifecycle_policy: Serialized retention policy now in effect.
        access_policy: Serialized repository access policy now in effect.
        state: Final state-machine state.
        writes: Corrective API operations issued, in order. Empty when the
            repository had no drift.
    """

    name: str = Field(description="Repository name (team-component)")
    uri: str = Field(description="Repository URI")
    scan_on_push: bool = Field(default=True, description="Scan images on push")
    tag_mutability: TagMutability = Field(
        default=TagMutability.IMMUTABLE,
        description="Image tag mutability",
    )
    lifecycle_policy: str = Field(default="", description="Retention policy JSON")
    access_policy: str = Field(default="", description="Access policy JSON")
    state: RepositoryState = Field(
        default=RepositoryState.VERIFIED,
        description="Reconciliation state",
    )
    writes: list[str] = Field(
        default_factory=list,
        description="Write operations issued during reconciliation",
    )


# =============================================================================
# Backend Config
# =============================================================================
# When using a non-default workspace, terraform stores state at
#   bucket/workspace_key_prefix/<workspace>/key
# =============================================================================
class BackendConfig(BaseModel):
    """Terraform S3 backend configuration for one team/component."""

    access_key: str = Field(description="Release account access key id")
    secret_key: str = Field(repr=False, description="Release account secret key")
    token: str = Field(default="", repr=False, description="Release account session token")
    region: str = Field(description="State bucket region")
    bucket: str = Field(description="State bucket")
    workspace_key_prefix: str = Field(description="team/component")
    key: str = Field(default="terraform.tfstate", description="State object name")
    dynamodb_table: str = Field(description="Lock table (team-tflocks)")

    model_config = {"frozen": True}

    def state_key(self, env_name: str) -> str:
        """Object key of the state file for one environment (workspace)."""
        return f"{self.workspace_key_prefix}/{env_name}/{self.key}"

    def as_dict(self) -> dict[str, str]:
        """Render the backend config as the map handed to terraform."""
        return self.model_dump()


# =============================================================================
# Release Artifact
# =============================================================================
class ReleaseArtifact(BaseModel):
    """A versioned release bundle, identified by team, component and version."""

    team: str = Field(description="Owning team")
    component: str = Field(description="Component name")
    version: str = Field(default="", description="Release version")

    model_config = {"frozen": True}

    @property
    def key(self) -> str:
        """Object key: ``team/component/component-version.zip``."""
        return f"{self.team}/{self.component}/{self.component}-{self.version}.zip"


# =============================================================================
# Plugin Reference
# =============================================================================
class PluginReference(BaseModel):
    """A provider plugin referenced from inside a release bundle.

    The checksum, not the path, is the plugin's real identity.
    """

    path: str = Field(description="Path of the plugin inside the release")
    checksum: str = Field(description="Content checksum (hex sha256)")

    model_config = {"frozen": True}


# =============================================================================
# Host Contract: Configure Release
# =============================================================================
class ReleaseRequirement(BaseModel):
    """What a single build needs from the plugin."""

    needs: list[str] = Field(default_factory=list, description="Raw need names")


class ConfigureReleaseRequest(BaseModel):
    """Request sent before the release is built.

    Attributes:
        component: Component being released.
        version: Release version.
        config: Per-request plugin configuration (``team`` lives here).
        env: Environment of the orchestrator (root credentials etc.).
        release_requirements: Build id → what the build needs.
    """

    component: str = Field(default="", description="Component name")
    version: str = Field(default="", description="Release version")
    config: dict[str, Any] = Field(default_factory=dict, description="Request config")
    env: dict[str, str] = Field(default_factory=dict, description="Request environment")
    release_requirements: dict[str, ReleaseRequirement] = Field(
        default_factory=dict,
        description="Build id to release requirement",
    )


class ConfigureReleaseResponse(BaseModel):
    """Per-build environment variables handed back to the builds."""

    env: dict[str, dict[str, str]] = Field(
        default_factory=dict,
        description="Build id to environment variables",
    )


# =============================================================================
# Host Contract: Prepare Terraform
# =============================================================================
class PrepareTerraformRequest(BaseModel):
    """Request sent before terraform runs for one environment.

    Attributes:
        state_should_exist: True → state must already exist; False → state
            must not exist (``--new-state``); None → no check.
    """

    component: str = Field(default="", description="Component name")
    version: str = Field(default="", description="Release version ('' = none)")
    env_name: str = Field(default="", description="Target environment name")
    config: dict[str, Any] = Field(default_factory=dict, description="Request config")
    env: dict[str, str] = Field(default_factory=dict, description="Request environment")
    state_should_exist: Optional[bool] = Field(
        default=None,
        description="Expected remote state presence (None = don't check)",
    )


class PrepareTerraformResponse(BaseModel):
    """Everything terraform needs to run against the right backend and account."""

    env: dict[str, str] = Field(default_factory=dict, description="Terraform environment")
    terraform_backend_type: str = Field(default="", description="Backend type")
    terraform_backend_config: dict[str, str] = Field(
        default_factory=dict,
        description="Backend configuration map",
    )
    terraform_image: str = Field(default="", description="Terraform image from the release")


# =============================================================================
# Host Contract: Upload Release
# =============================================================================
class UploadReleaseRequest(BaseModel):
    """Request sent after the release has been built."""

    terraform_image: str = Field(default="", description="Terraform image to record")


class UploadReleaseResponse(BaseModel):
    """Outcome details of a release upload."""

    message: str = Field(default="", description="Where the release was uploaded")
