"""
Tests for cloudrelease.credentials.context
============================================
"""

import pytest

from cloudrelease.core.exceptions import ConfigurationError
from cloudrelease.credentials.context import (
    RequestContext,
    account_prefix_from_config,
    assume_role_to_deploy,
    prod_env_names_from_config,
    team_from_config,
)
from cloudrelease.integrations.aws.boto import Boto3ClientFactory


# =============================================================================
# Test: Request Config Readers
# =============================================================================
class TestRequestConfigReaders:
    """Tests for the untyped request config readers."""

    def test_team(self) -> None:
        assert team_from_config({"team": "my-team"}) == "my-team"

    @pytest.mark.parametrize("request_config", [{}, {"team": ""}, {"team": 42}])
    def test_team_missing_or_invalid(self, request_config) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            team_from_config(request_config)
        assert exc_info.value.error_code == "MISSING_TEAM"
        assert "config.params.team" in exc_info.value.message

    def test_account_prefix_missing(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            account_prefix_from_config({"team": "my-team"})
        assert exc_info.value.error_code == "MISSING_ACCOUNT_PREFIX"

    def test_prod_env_defaults(self) -> None:
        assert prod_env_names_from_config({}, ["live"]) == ["live"]

    def test_additional_prod_envs_appended(self) -> None:
        names = prod_env_names_from_config({"additional_prod_envs": ["staging"]}, ["live"])
        assert names == ["live", "staging"]

    def test_additional_prod_envs_must_be_strings(self) -> None:
        with pytest.raises(ConfigurationError):
            prod_env_names_from_config({"additional_prod_envs": "staging"}, ["live"])

    @pytest.mark.parametrize("value, expected", [
        (None, True),
        (True, True),
        ("false", True),
        (0, True),
        (False, False),
    ])
    def test_only_explicit_false_disables_delegation(self, value, expected) -> None:
        request_config = {} if value is None else {"assume_role_to_deploy": value}
        assert assume_role_to_deploy(request_config) is expected


# =============================================================================
# Test: Request Context
# =============================================================================
class TestRequestContext:
    """Tests for RequestContext memoization and delegation."""

    def test_from_request_reads_team(self, config, clients, request_config, root_env) -> None:
        context = RequestContext.from_request(config, clients, request_config, root_env)
        assert context.team == "my-team"

    def test_from_request_without_team(self, config, clients, root_env) -> None:
        with pytest.raises(ConfigurationError):
            RequestContext.from_request(config, clients, {}, root_env)

    def test_release_session_assumed_once(self, config, clients, request_config, root_env) -> None:
        """Repeated lookups within one request reuse the same session."""
        context = RequestContext.from_request(config, clients, request_config, root_env)
        first = context.release_session()
        assert context.release_session() is first
        assert len(clients.role_assumer_api.assumed_roles) == 1

    def test_new_context_assumes_again(self, config, clients, request_config, root_env) -> None:
        """Nothing is shared between requests."""
        RequestContext.from_request(config, clients, request_config, root_env).release_session()
        RequestContext.from_request(config, clients, request_config, root_env).release_session()
        assert len(clients.role_assumer_api.assumed_roles) == 2

    def test_sdk_sessions_scoped_to_context(self, config, request_config, root_env) -> None:
        shared = Boto3ClientFactory(config.aws)
        first = RequestContext.from_request(config, shared, request_config, root_env)
        second = RequestContext.from_request(config, shared, request_config, root_env)

        assert first.clients is not shared
        assert first.clients is not second.clients
        assert shared._sessions is None

    def test_deploy_session_memoized_per_env(self, config, clients, request_config, root_env) -> None:
        context = RequestContext.from_request(config, clients, request_config, root_env)
        ci = context.deploy_session("ci")
        assert context.deploy_session("ci") is ci
        live = context.deploy_session("live")

        assert ci.account_id == "111111111111"
        assert live.account_id == "222222222222"
        assert len(clients.role_assumer_api.assumed_roles) == 2

    def test_additional_prod_env_goes_to_prod_account(self, config, clients, root_env) -> None:
        request_config = {
            "team": "my-team",
            "account_prefix": "acme",
            "additional_prod_envs": ["staging"],
        }
        context = RequestContext.from_request(config, clients, request_config, root_env)
        assert context.deploy_session("staging").account_id == "222222222222"

    def test_bypass_returns_root_session(self, config, clients, root_env) -> None:
        request_config = {"team": "my-team", "assume_role_to_deploy": False}
        context = RequestContext.from_request(config, clients, request_config, root_env)

        session = context.deploy_session("live")

        assert session is context.root_session()
        assert session.access_key_id == "AKIAROOT"
        assert clients.role_assumer_api.assumed_roles == []
        assert clients.account_directory_api.pages_served == 0

    def test_delegation_needs_account_prefix(self, config, clients, root_env) -> None:
        context = RequestContext.from_request(config, clients, {"team": "my-team"}, root_env)
        with pytest.raises(ConfigurationError):
            context.deploy_session("live")

    def test_role_session_name_from_env(self, config, clients, request_config) -> None:
        env = {"AWS_ACCESS_KEY_ID": "AK", "AWS_SECRET_ACCESS_KEY": "SK", "EMAIL": "dev@example.com"}
        context = RequestContext.from_request(config, clients, request_config, env)
        context.release_session()
        assert clients.role_assumer_api.assumed_roles[0][1] == "dev@example.com"

    def test_default_deadline_from_config(self, config, clients, request_config, root_env) -> None:
        context = RequestContext.from_request(config, clients, request_config, root_env)
        assert context.deadline.is_set is (config.request_timeout_seconds is not None)
