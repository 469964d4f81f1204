"""
Local Pipeline Example - One Release Through All Three Hooks
============================================================

This example runs a whole pipeline against the in-memory AWS backends:

    1. configure_release  → per-build environments (ECR repo, lambda bucket)
    2. upload_release     → bundle + provider plugins into the release bucket
    3. prepare_terraform  → backend config, deploy credentials, staged release

Nothing here talks to AWS, so it is a quick way to see what the plugin
hands back to the orchestrator at each step.

Usage:
    python examples/local_pipeline.py
"""

from __future__ import annotations

import tempfile
from pathlib import Path

from cloudrelease import ReleasePlugin, configure_logging
from cloudrelease.core.config import AWSConfig, CacheConfig, CloudReleaseConfig
from cloudrelease.core.models import (
    ConfigureReleaseRequest,
    PrepareTerraformRequest,
    ReleaseRequirement,
    UploadReleaseRequest,
)
from cloudrelease.integrations.aws.mock import InMemoryClientFactory


def build_release(root: Path) -> None:
    """Stand-in for the build step: terraform code plus one provider plugin."""
    (root / "infra").mkdir(parents=True)
    (root / "infra" / "main.tf").write_text('terraform {\n  backend "s3" {}\n}\n')
    plugin = root / ".terraform/plugins/linux_amd64/terraform-provider-aws_v5.0.0"
    plugin.parent.mkdir(parents=True)
    plugin.write_bytes(b"not really a provider")


def main() -> None:
    configure_logging("WARNING")
    workdir = Path(tempfile.mkdtemp(prefix="cloudrelease-"))

    config = CloudReleaseConfig(
        aws=AWSConfig(backend="memory"),
        cache=CacheConfig(
            release_folder=str(workdir / "staged"),
            plugin_cache_dir=str(workdir / "plugin-cache"),
        ),
    )
    clients = InMemoryClientFactory(account_id=config.aws.release_account_id)
    clients.account_directory_api.add_accounts({
        "acmedev": "111111111111",
        "acmeprod": "222222222222",
    })
    plugin = ReleasePlugin(config, client_factory=clients)

    env = {
        "AWS_ACCESS_KEY_ID": "AKIAEXAMPLE",
        "AWS_SECRET_ACCESS_KEY": "example-secret",
        "JOB_NAME": "example-pipeline #42",
    }
    request_config = {"team": "platform", "account_prefix": "acme"}

    configure_request = ConfigureReleaseRequest(
        component="checkout",
        version="1.4.0",
        config=request_config,
        env=env,
        release_requirements={
            "api": ReleaseRequirement(needs=["ecr"]),
            "resizer": ReleaseRequirement(needs=["lambda"]),
        },
    )

    # Step 1: configure the builds
    configured = plugin.configure_release(configure_request)
    print("configure_release")
    print("-" * 40)
    for build_id, build_env in configured.response.env.items():
        extras = {k: v for k, v in build_env.items() if not k.startswith("AWS_")}
        print(f"{build_id:8}: {extras}")
    print()

    # Step 2: build, then upload
    build_release(workdir / "built")
    uploaded = plugin.upload_release(
        UploadReleaseRequest(terraform_image="hashicorp/terraform:1.5.7"),
        configure_request,
        str(workdir / "built"),
    )
    print("upload_release")
    print("-" * 40)
    print(uploaded.response.message)
    print()

    # Step 3: prepare terraform for a brand-new live environment
    prepared = plugin.prepare_terraform(
        PrepareTerraformRequest(
            component="checkout",
            version="1.4.0",
            env_name="live",
            config=request_config,
            env=env,
            state_should_exist=False,
        )
    )
    print("prepare_terraform")
    print("-" * 40)
    print(f"Backend  : {prepared.response.terraform_backend_type}")
    print(f"State    : {prepared.response.terraform_backend_config['workspace_key_prefix']}")
    print(f"Locks    : {prepared.response.terraform_backend_config['dynamodb_table']}")
    print(f"Deploy   : {prepared.response.env['AWS_ACCESS_KEY_ID']}")
    print(f"Image    : {prepared.response.terraform_image}")
    print(f"Staged in: {config.cache.release_folder}")


if __name__ == "__main__":
    main()
