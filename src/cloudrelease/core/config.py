"""
cloudrelease.core.config - Configuration Management
=====================================================

This module provides the configuration system for CloudRelease. Configuration
can be loaded from multiple sources with the following priority (highest first):

    1. Explicit constructor arguments
    2. Environment variables (prefixed with CLOUDRELEASE_)
    3. YAML configuration file (cloudrelease.yaml)
    4. Default values defined in the models below

Architecture Context:
    Configuration flows DOWN through the system. The top-level
    CloudReleaseConfig is created once and passed to every component:

        CloudReleaseConfig
            ├── AWSConfig       → CredentialChain, client factories, backend
            ├── RegistryConfig  → RepositoryReconciler
            ├── CacheConfig     → ArtifactCache, release bundle
            └── (other settings) → handlers, RequestContext

    This is the plugin's own configuration (accounts, buckets, cache paths).
    It is NOT the per-request ``config`` mapping the orchestrator sends with
    every request (team, account_prefix, ...), which is read by the handlers.

Usage:
    # Load from environment variables:
    config = CloudReleaseConfig()

    # Load from YAML file:
    config = load_config("cloudrelease.yaml")

    # Explicit overrides:
    config = CloudReleaseConfig(aws=AWSConfig(region="us-east-1"))

Environment Variables:
    CLOUDRELEASE_LOG_LEVEL=DEBUG
    CLOUDRELEASE_AWS__REGION=eu-west-1
    CLOUDRELEASE_AWS__RELEASE_BUCKET=my-releases
    CLOUDRELEASE_CACHE__PLUGIN_CACHE_DIR=/tmp/plugins
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


# =============================================================================
# AWS Configuration
# =============================================================================
# Fixed account, organization, and bucket identities plus the SDK client
# behaviour (retries, socket timeouts). Retries are owned by botocore; we
# only choose the policy.
# =============================================================================
class AWSConfig(BaseModel):
    """Configuration for the AWS accounts and SDK clients.

    Attributes:
        backend: Which client factory to build ("boto3" or "memory").
        region: Region used for every client and echoed to builds as
            AWS_DEFAULT_REGION.
        release_account_id: The well-known account holding registries,
            release artifacts and remote state.
        organization_id: Organization the registry access policy is scoped to.
        lambda_bucket: Bucket handed to builds that need "lambda".
        release_bucket: Bucket holding release artifacts and cached plugins.
        tfstate_bucket: Bucket holding terraform remote state.
        max_attempts: botocore retry attempts (standard retry mode).
        connect_timeout: Socket connect timeout in seconds.
        read_timeout: Socket read timeout in seconds.
    """

    backend: str = Field(
        default="boto3",
        description="Client backend: 'boto3' (real AWS) or 'memory' (in-memory fakes)",
    )
    region: str = Field(
        default="eu-west-1",
        description="AWS region for all clients",
    )
    release_account_id: str = Field(
        default="724178030834",
        description="Account id of the release account",
    )
    organization_id: str = Field(
        default="o-4bcq8rkz1x",
        description="Organization id the registry access policy grants pulls to",
    )
    lambda_bucket: str = Field(
        default="acuris-lambdas",
        description="Bucket for lambda build outputs",
    )
    release_bucket: str = Field(
        default="acuris-releases",
        description="Bucket for release artifacts and plugin cache",
    )
    tfstate_bucket: str = Field(
        default="acuris-tfstate",
        description="Bucket for terraform remote state",
    )
    max_attempts: int = Field(
        default=5,
        ge=1,
        le=20,
        description="botocore client retry attempts",
    )
    connect_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Socket connect timeout in seconds",
    )
    read_timeout: float = Field(
        default=60.0,
        gt=0,
        description="Socket read timeout in seconds",
    )


# =============================================================================
# Registry Configuration
# =============================================================================
class RegistryConfig(BaseModel):
    """Configuration for container registry reconciliation.

    Attributes:
        image_retention_count: Tagged images kept per build before the
            lifecycle policy expires older ones.
    """

    image_retention_count: int = Field(
        default=50,
        ge=1,
        description="Tagged images kept per build id prefix",
    )


# =============================================================================
# Cache Configuration
# =============================================================================
class CacheConfig(BaseModel):
    """Configuration for release staging and the plugin cache.

    Attributes:
        release_folder: Default directory releases are unpacked into.
        plugin_cache_dir: Local, shared terraform plugin cache directory.
        plugin_path_prefix: Namespace every plugin path in a bundle must
            start with.
    """

    release_folder: str = Field(
        default="/release",
        description="Directory releases are unpacked into",
    )
    plugin_cache_dir: str = Field(
        default="/cache/terraform-plugin-cache",
        description="Local terraform plugin cache directory",
    )
    plugin_path_prefix: str = Field(
        default=".terraform/plugins/",
        description="Required prefix of plugin paths inside a release",
    )


# =============================================================================
# Main Configuration
# =============================================================================
# Environment Variable Mapping:
#   CLOUDRELEASE_LOG_LEVEL            → config.log_level
#   CLOUDRELEASE_AWS__REGION          → config.aws.region
#   CLOUDRELEASE_REGISTRY__IMAGE_RETENTION_COUNT
#                                     → config.registry.image_retention_count
# =============================================================================
class CloudReleaseConfig(BaseSettings):
    """Top-level configuration for the CloudRelease plugin.

    Attributes:
        log_level: Logging level. Structured logs use structlog.
        prod_env_names: Environment names deployed into the "prod" account.
            Requests may extend this set with ``additional_prod_envs``.
        role_session_name_candidates: Ordered request environment variables
            a role session name is taken from.
        request_timeout_seconds: Per-request deadline for all blocking cloud
            calls. None disables the deadline.
        aws: AWS account and client configuration (see AWSConfig).
        registry: Registry reconciliation configuration (see RegistryConfig).
        cache: Release staging configuration (see CacheConfig).
    """

    # -------------------------------------------------------------------------
    # General Settings
    # -------------------------------------------------------------------------
    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )
    prod_env_names: list[str] = Field(
        default_factory=lambda: ["live"],
        description="Environments that deploy into the prod account",
    )
    role_session_name_candidates: list[str] = Field(
        default_factory=lambda: ["ROLE_SESSION_NAME", "JOB_NAME", "EMAIL"],
        min_length=1,
        description="Env vars a role session name is read from, in order",
    )
    request_timeout_seconds: Optional[float] = Field(
        default=None,
        gt=0,
        description="Deadline for one request's blocking calls (None = no deadline)",
    )

    # -------------------------------------------------------------------------
    # Nested Configurations
    # -------------------------------------------------------------------------
    aws: AWSConfig = Field(
        default_factory=AWSConfig,
        description="AWS account and client configuration",
    )
    registry: RegistryConfig = Field(
        default_factory=RegistryConfig,
        description="Container registry configuration",
    )
    cache: CacheConfig = Field(
        default_factory=CacheConfig,
        description="Release staging and plugin cache configuration",
    )

    model_config = {
        "env_prefix": "CLOUDRELEASE_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
    }


# =============================================================================
# Configuration Loader
# =============================================================================
def load_config(path: Optional[str] = None) -> CloudReleaseConfig:
    """Load CloudRelease configuration from a YAML file and/or environment.

    Args:
        path: Path to a YAML configuration file. If None, looks for
            'cloudrelease.yaml' in the current directory. If that doesn't
            exist either, uses pure defaults + environment variables.

    Returns:
        A fully validated CloudReleaseConfig instance.

    Raises:
        FileNotFoundError: If an explicit path is provided but doesn't exist.
    """
    if path is None:
        default_path = Path("cloudrelease.yaml")
        if default_path.exists():
            path = str(default_path)

    yaml_data: dict[str, Any] = {}
    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(
                f"Configuration file not found: {path}. "
                f"Create one or use CLOUDRELEASE_* environment variables."
            )

        with open(config_path) as f:
            raw_data = yaml.safe_load(f)
            if isinstance(raw_data, dict):
                yaml_data = raw_data

    return CloudReleaseConfig(**yaml_data)


def get_default_config() -> CloudReleaseConfig:
    """Create a CloudReleaseConfig with all defaults (plus any env overrides)."""
    return CloudReleaseConfig()
