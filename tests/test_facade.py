"""
Tests for cloudrelease.facade - CloudRelease Top-Level Facade
===============================================================

These tests drive ReleasePlugin the way the orchestrator does, one pipeline
run at a time:

    configure_release → (build) → upload_release → prepare_terraform

What's Being Tested:
    - Default wiring (config, client factory from config.aws.backend)
    - A full release round trip: the bundle and its provider plugins are
      uploaded, then staged again for terraform in another directory
    - The plugin cache is consulted before the release bucket
    - configure_logging routes structured logs to the given stream

All tests use the in-memory backends; nothing talks to AWS.
"""

import io

import pytest
import structlog

from cloudrelease import ReleasePlugin, configure_logging
from cloudrelease.core.config import AWSConfig, CloudReleaseConfig
from cloudrelease.core.models import (
    ConfigureReleaseRequest,
    PrepareTerraformRequest,
    ReleaseRequirement,
    UploadReleaseRequest,
)
from cloudrelease.core.results import Ok
from cloudrelease.integrations.aws.mock import InMemoryClientFactory


PLUGIN_PATH = ".terraform/plugins/linux_amd64/terraform-provider-aws_v5"


# =============================================================================
# Helpers
# =============================================================================
def _configure_request(request_config, env) -> ConfigureReleaseRequest:
    return ConfigureReleaseRequest(
        component="my-component",
        version="1.0.0",
        config=request_config,
        env=env,
        release_requirements={
            "api": ReleaseRequirement(needs=["ecr"]),
            "fn": ReleaseRequirement(needs=["lambda"]),
        },
    )


def _prepare_request(request_config, env, env_name="live") -> PrepareTerraformRequest:
    return PrepareTerraformRequest(
        component="my-component",
        version="1.0.0",
        env_name=env_name,
        config=request_config,
        env=env,
        state_should_exist=False,
    )


@pytest.fixture
def built_release(tmp_path):
    """A release directory as the build step leaves it."""
    root = tmp_path / "built"
    (root / "infra").mkdir(parents=True)
    (root / "infra" / "main.tf").write_text("# main\n")
    (root / "config").mkdir()
    (root / "config" / "live.json").write_text("{}\n")
    plugin = root / PLUGIN_PATH
    plugin.parent.mkdir(parents=True)
    plugin.write_bytes(b"provider-binary")
    return root


# =============================================================================
# Test: Wiring
# =============================================================================
class TestWiring:
    """Tests for ReleasePlugin construction."""

    def test_client_factory_from_config(self) -> None:
        plugin = ReleasePlugin(CloudReleaseConfig(aws=AWSConfig(backend="memory")))
        assert isinstance(plugin.clients, InMemoryClientFactory)

    def test_explicit_client_factory(self, config, clients) -> None:
        plugin = ReleasePlugin(config, client_factory=clients)
        assert plugin.clients is clients
        assert plugin.config is config


# =============================================================================
# Test: Pipeline Round Trip
# =============================================================================
class TestPipeline:
    """A whole pipeline run through the facade."""

    def test_release_round_trip(self, plugin, clients, request_config, root_env, built_release, tmp_path) -> None:
        configured = plugin.configure_release(_configure_request(request_config, root_env))
        assert isinstance(configured, Ok)
        assert configured.response.env["api"]["ECR_TAG"] == "api-1.0.0"
        assert configured.response.env["fn"]["LAMBDA_BUCKET"] == "acuris-lambdas"

        uploaded = plugin.upload_release(
            UploadReleaseRequest(terraform_image="hashicorp/terraform:1.5"),
            _configure_request(request_config, root_env),
            str(built_release),
        )
        assert isinstance(uploaded, Ok)

        staged_dir = tmp_path / "staged"
        prepared = plugin.prepare_terraform(_prepare_request(request_config, root_env), str(staged_dir))

        assert isinstance(prepared, Ok)
        assert prepared.response.terraform_image == "hashicorp/terraform:1.5"
        assert prepared.response.env["AWS_ACCESS_KEY_ID"] == "ASIA222222222222"
        assert (staged_dir / "infra" / "main.tf").read_text() == "# main\n"
        assert (staged_dir / PLUGIN_PATH).read_bytes() == b"provider-binary"

    def test_second_configure_makes_no_registry_writes(self, plugin, clients, request_config, root_env) -> None:
        plugin.configure_release(_configure_request(request_config, root_env))
        clients.registry_api.reset_history()

        plugin.configure_release(_configure_request(request_config, root_env))

        assert clients.registry_api.writes == []

    def test_local_plugin_cache_preferred(
        self, plugin, clients, config, request_config, root_env, built_release, tmp_path
    ) -> None:
        plugin.upload_release(UploadReleaseRequest(), _configure_request(request_config, root_env), str(built_release))
        local = tmp_path / "plugin-cache" / "linux_amd64" / "terraform-provider-aws_v5"
        local.parent.mkdir(parents=True)
        local.write_bytes(b"provider-binary")
        clients.object_store_api.reset_history()

        result = plugin.prepare_terraform(_prepare_request(request_config, root_env), str(tmp_path / "staged"))

        assert isinstance(result, Ok)
        gets = [key for op, (_, key) in clients.object_store_api.call_history if op == "GetObject"]
        assert gets == ["my-team/my-component/my-component-1.0.0.zip"]


# =============================================================================
# Test: Logging
# =============================================================================
class TestConfigureLogging:
    """Tests for configure_logging()."""

    def test_logs_go_to_stream(self) -> None:
        stream = io.StringIO()
        try:
            configure_logging("DEBUG", stream=stream)
            structlog.get_logger().info("release_uploaded", location="s3://b/k")
        finally:
            structlog.reset_defaults()
        assert "release_uploaded" in stream.getvalue()

    def test_level_filters(self) -> None:
        stream = io.StringIO()
        try:
            configure_logging("WARNING", stream=stream)
            structlog.get_logger().info("hidden_event")
        finally:
            structlog.reset_defaults()
        assert stream.getvalue() == ""
