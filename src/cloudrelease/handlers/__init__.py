"""
cloudrelease.handlers - Hook Handlers
=======================================

One handler per orchestrator hook, all sharing BaseHandler's
Ok / SoftFailure / HardFailure template:

    - ConfigureReleaseHandler:  per-build credentials, lambda bucket, ECR repo
    - PrepareTerraformHandler:  backend config, deploy credentials, release staging
    - UploadReleaseHandler:     release packaging and upload
"""

from cloudrelease.handlers.base import BaseHandler
from cloudrelease.handlers.configure_release import ConfigureReleaseHandler
from cloudrelease.handlers.prepare_terraform import PrepareTerraformHandler
from cloudrelease.handlers.upload_release import UploadReleaseHandler

__all__ = [
    "BaseHandler",
    "ConfigureReleaseHandler",
    "PrepareTerraformHandler",
    "UploadReleaseHandler",
]
