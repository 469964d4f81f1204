"""
Shared Test Fixtures for CloudRelease
=======================================

Reusable pytest fixtures used across the test suite, organized by layer:

    1. Configuration fixtures
    2. Integration fixtures (in-memory AWS backends)
    3. Request fixtures (env, request config)
    4. Facade fixtures (ReleasePlugin)

Every fixture runs against InMemoryClientFactory; no test touches AWS.
"""

from __future__ import annotations

import io

import pytest

from cloudrelease.core.config import AWSConfig, CacheConfig, CloudReleaseConfig
from cloudrelease.core.models import Session
from cloudrelease.facade import ReleasePlugin
from cloudrelease.integrations.aws.mock import InMemoryClientFactory


RELEASE_ACCOUNT_ID = "724178030834"
DEV_ACCOUNT_ID = "111111111111"
PROD_ACCOUNT_ID = "222222222222"
TEAM = "my-team"


# =============================================================================
# Configuration
# =============================================================================

@pytest.fixture
def config(tmp_path):
    """CloudRelease configuration with in-memory backends and tmp cache dirs."""
    return CloudReleaseConfig(
        aws=AWSConfig(backend="memory"),
        cache=CacheConfig(
            release_folder=str(tmp_path / "release"),
            plugin_cache_dir=str(tmp_path / "plugin-cache"),
        ),
    )


# =============================================================================
# Integrations
# =============================================================================

@pytest.fixture
def clients():
    """InMemoryClientFactory with a dev and a prod account in the organization."""
    factory = InMemoryClientFactory(account_id=RELEASE_ACCOUNT_ID)
    factory.account_directory_api.add_accounts({
        "acmedev": DEV_ACCOUNT_ID,
        "acmeprod": PROD_ACCOUNT_ID,
    })
    return factory


@pytest.fixture
def root_session():
    """Static root credentials, as read from the request environment."""
    return Session(access_key_id="AKIAROOT", secret_access_key="root-secret")


# =============================================================================
# Requests
# =============================================================================

@pytest.fixture
def root_env():
    """A request environment with root credentials and a role session name."""
    return {
        "AWS_ACCESS_KEY_ID": "AKIAROOT",
        "AWS_SECRET_ACCESS_KEY": "root-secret",
        "ROLE_SESSION_NAME": "ci-job",
    }


@pytest.fixture
def request_config():
    """Per-request config as sent by the orchestrator."""
    return {"team": TEAM, "account_prefix": "acme"}


# =============================================================================
# Facade
# =============================================================================

@pytest.fixture
def diagnostics():
    """Captures operator-facing output."""
    return io.StringIO()


@pytest.fixture
def plugin(config, clients, diagnostics):
    """ReleasePlugin wired to the in-memory backends."""
    return ReleasePlugin(config, client_factory=clients, diagnostics=diagnostics)
