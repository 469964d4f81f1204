"""
Tests for cloudrelease.registry.reconciler
============================================

Scenarios run against InMemoryRegistry, where ``writes`` is what proves a
reconciliation did (or did not) correct anything. Policy text the way ECR
returns it is checked through Boto3Registry and a stubbed client.
"""

import json

import boto3
import pytest
from botocore.stub import Stubber

from cloudrelease.core.config import CloudReleaseConfig
from cloudrelease.core.deadline import Deadline
from cloudrelease.core.enums import RepositoryState, TagMutability
from cloudrelease.core.exceptions import CloudAPIError, DeadlineExceededError
from cloudrelease.integrations.aws.boto import Boto3Registry
from cloudrelease.integrations.aws.mock import InMemoryRegistry
from cloudrelease.registry.policies import build_access_policy, build_lifecycle_policy
from cloudrelease.registry.reconciler import RepositoryReconciler, repository_name


@pytest.fixture
def registry():
    return InMemoryRegistry(account_id="724178030834", region="eu-west-1")


@pytest.fixture
def reconciler(registry):
    return RepositoryReconciler(registry, CloudReleaseConfig())


def _seed_compliant(registry, name, build_ids):
    config = CloudReleaseConfig()
    registry.add_repository(name)
    registry.repository_policies[name] = build_access_policy(config.aws.organization_id)
    registry.lifecycle_policies[name] = build_lifecycle_policy(build_ids)


def _ecr_formatted(policy_text):
    return json.dumps(json.loads(policy_text), indent=2, separators=(",", " : "))


# =============================================================================
# Test: Naming
# =============================================================================
class TestRepositoryName:
    """Tests for repository_name()."""

    def test_team_dash_component(self) -> None:
        assert repository_name("my-team", "my-component") == "my-team-my-component"


# =============================================================================
# Test: Create Path
# =============================================================================
class TestCreate:
    """Tests for reconciling a repository that does not exist yet."""

    def test_creates_and_attaches_policies(self, registry, reconciler) -> None:
        descriptor = reconciler.reconcile("my-team-app", ["api"])

        assert descriptor.writes == ["CreateRepository", "SetRepositoryPolicy", "PutLifecyclePolicy"]
        assert registry.writes == descriptor.writes
        assert descriptor.uri == "724178030834.dkr.ecr.eu-west-1.amazonaws.com/my-team-app"
        assert descriptor.state == RepositoryState.VERIFIED

    def test_created_with_required_settings(self, registry, reconciler) -> None:
        reconciler.reconcile("my-team-app", ["api"])
        info = registry.repositories["my-team-app"]
        assert info.scan_on_push is True
        assert info.tag_mutability == TagMutability.IMMUTABLE

    def test_new_repository_policies_not_read_first(self, registry, reconciler) -> None:
        reconciler.reconcile("my-team-app", ["api"])
        assert "GetRepositoryPolicy" not in registry.operations()
        assert "GetLifecyclePolicy" not in registry.operations()

    def test_no_ecr_builds_skips_lifecycle(self, registry, reconciler) -> None:
        descriptor = reconciler.reconcile("my-team-app", [])
        assert descriptor.writes == ["CreateRepository", "SetRepositoryPolicy"]
        assert "my-team-app" not in registry.lifecycle_policies


# =============================================================================
# Test: Idempotence
# =============================================================================
class TestIdempotence:
    """A second run with no external change writes nothing."""

    def test_second_run_has_zero_writes(self, registry, reconciler) -> None:
        first = reconciler.reconcile("my-team-app", ["web", "api"])
        registry.reset_history()
        second = reconciler.reconcile("my-team-app", ["api", "web"])

        assert second.writes == []
        assert registry.writes == []
        assert second.uri == first.uri
        assert second.lifecycle_policy == first.lifecycle_policy

    def test_compliant_repository_only_reads(self, registry, reconciler) -> None:
        _seed_compliant(registry, "my-team-app", ["api"])
        reconciler.reconcile("my-team-app", ["api"])
        assert registry.operations() == [
            "DescribeRepositories",
            "GetRepositoryPolicy",
            "GetLifecyclePolicy",
        ]

    def test_lifecycle_left_alone_without_ecr_builds(self, registry, reconciler) -> None:
        _seed_compliant(registry, "my-team-app", ["old"])
        descriptor = reconciler.reconcile("my-team-app", [])

        assert descriptor.writes == []
        assert "GetLifecyclePolicy" not in registry.operations()
        assert registry.lifecycle_policies["my-team-app"] == build_lifecycle_policy(["old"])

    def test_registry_formatted_policies_are_compliant(self) -> None:
        """ECR hands stored policies back pretty-printed; that is not drift."""
        config = CloudReleaseConfig()
        client = boto3.client(
            "ecr",
            region_name="eu-west-1",
            aws_access_key_id="testing",
            aws_secret_access_key="testing",
        )
        name = "my-team-app"
        with Stubber(client) as stubber:
            stubber.add_response(
                "describe_repositories",
                {
                    "repositories": [{
                        "repositoryName": name,
                        "repositoryUri": f"724178030834.dkr.ecr.eu-west-1.amazonaws.com/{name}",
                        "imageScanningConfiguration": {"scanOnPush": True},
                        "imageTagMutability": "IMMUTABLE",
                    }]
                },
                {"repositoryNames": [name]},
            )
            stubber.add_response(
                "get_repository_policy",
                {"policyText": _ecr_formatted(build_access_policy(config.aws.organization_id))},
                {"repositoryName": name},
            )
            stubber.add_response(
                "get_lifecycle_policy",
                {"lifecyclePolicyText": _ecr_formatted(build_lifecycle_policy(["api"]))},
                {"repositoryName": name},
            )
            descriptor = RepositoryReconciler(Boto3Registry(client), config).reconcile(name, ["api"])
            stubber.assert_no_pending_responses()

        assert descriptor.writes == []


# =============================================================================
# Test: Drift Correction
# =============================================================================
class TestDrift:
    """Each drifted attribute is corrected with exactly one call."""

    def test_scan_on_push_disabled(self, registry, reconciler) -> None:
        _seed_compliant(registry, "my-team-app", ["api"])
        registry.repositories["my-team-app"] = registry.repositories["my-team-app"].model_copy(
            update={"scan_on_push": False}
        )
        descriptor = reconciler.reconcile("my-team-app", ["api"])
        assert descriptor.writes == ["PutImageScanningConfiguration"]
        assert registry.repositories["my-team-app"].scan_on_push is True

    def test_mutable_tags(self, registry, reconciler) -> None:
        registry.add_repository("my-team-app", tag_mutability=TagMutability.MUTABLE)
        descriptor = reconciler.reconcile("my-team-app", ["api"])
        assert descriptor.writes == [
            "PutImageTagMutability",
            "SetRepositoryPolicy",
            "PutLifecyclePolicy",
        ]

    def test_everything_drifted(self, registry, reconciler) -> None:
        registry.add_repository("my-team-app", scan_on_push=False, tag_mutability=TagMutability.MUTABLE)
        registry.repository_policies["my-team-app"] = '{"Version":"2012-10-17","Statement":[]}'
        registry.lifecycle_policies["my-team-app"] = build_lifecycle_policy(["api"])

        descriptor = reconciler.reconcile("my-team-app", ["api", "web"])

        assert descriptor.writes == [
            "PutImageScanningConfiguration",
            "PutImageTagMutability",
            "SetRepositoryPolicy",
            "PutLifecyclePolicy",
        ]
        assert registry.lifecycle_policies["my-team-app"] == build_lifecycle_policy(["api", "web"])

    def test_new_build_id_rewrites_lifecycle_only(self, registry, reconciler) -> None:
        _seed_compliant(registry, "my-team-app", ["api"])
        descriptor = reconciler.reconcile("my-team-app", ["api", "worker"])
        assert descriptor.writes == ["PutLifecyclePolicy"]


# =============================================================================
# Test: Errors
# =============================================================================
class TestErrors:
    """Only recognized not-found codes change the flow."""

    def test_describe_access_denied_propagates(self, registry, reconciler) -> None:
        registry.fail("DescribeRepositories", "AccessDeniedException")
        with pytest.raises(CloudAPIError):
            reconciler.reconcile("my-team-app", ["api"])
        assert registry.writes == []

    def test_policy_read_failure_propagates(self, registry, reconciler) -> None:
        registry.add_repository("my-team-app")
        registry.fail("GetRepositoryPolicy", "ThrottlingException")
        with pytest.raises(CloudAPIError) as exc_info:
            reconciler.reconcile("my-team-app", ["api"])
        assert exc_info.value.aws_code == "ThrottlingException"

    def test_write_failure_propagates(self, registry, reconciler) -> None:
        registry.fail("CreateRepository", "LimitExceededException")
        with pytest.raises(CloudAPIError):
            reconciler.reconcile("my-team-app", ["api"])

    def test_expired_deadline_makes_no_calls(self, registry) -> None:
        reconciler = RepositoryReconciler(registry, CloudReleaseConfig(), Deadline(0))
        with pytest.raises(DeadlineExceededError):
            reconciler.reconcile("my-team-app", ["api"])
        assert registry.operations() == []
