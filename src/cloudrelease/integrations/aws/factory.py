"""
cloudrelease.integrations.aws.factory - Client Factory Selection
==================================================================

Maps ``aws.backend`` to a concrete AWSClientFactory.

Usage:
    >>> from cloudrelease.integrations.aws import create_client_factory
    >>> from cloudrelease.core.config import AWSConfig
    >>>
    >>> factory = create_client_factory(AWSConfig(backend="memory"))
    >>> type(factory)  # InMemoryClientFactory
"""

from __future__ import annotations

from cloudrelease.core.config import AWSConfig
from cloudrelease.core.exceptions import ConfigurationError
from cloudrelease.integrations.aws.base import AWSClientFactory


def create_client_factory(config: AWSConfig) -> AWSClientFactory:
    """Create the client factory named by ``config.backend``.

    Backends:
        - "boto3"  → Boto3ClientFactory (real AWS, synchronous boto3 clients)
        - "memory" → InMemoryClientFactory (fakes, no network)

    Raises:
        ConfigurationError: If the backend name is not recognized.
    """
    backend = config.backend.lower()

    if backend == "boto3":
        from cloudrelease.integrations.aws.boto import Boto3ClientFactory
        return Boto3ClientFactory(config)

    if backend == "memory":
        from cloudrelease.integrations.aws.mock import InMemoryClientFactory
        return InMemoryClientFactory(
            account_id=config.release_account_id,
            region=config.region,
        )

    raise ConfigurationError(
        message=(
            f"Unknown AWS client backend: '{backend}'. "
            f"Available backends: 'boto3', 'memory'."
        ),
        error_code="UNKNOWN_BACKEND",
    )
