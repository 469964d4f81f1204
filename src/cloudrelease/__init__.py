"""
CloudRelease - AWS Configuration Plugin for Release Pipelines
===============================================================

Turns a deployment orchestrator's declarative requests (team, component,
version, environment, per-build needs) into AWS credentials, a reconciled
ECR repository, a terraform S3 backend and staged release artifacts.

Quick Start:
    >>> from cloudrelease import ReleasePlugin
    >>> from cloudrelease.core import Ok
    >>> plugin = ReleasePlugin()
    >>> result = plugin.configure_release(request)
    >>> isinstance(result, Ok)
"""

__version__ = "0.1.0"

from cloudrelease.facade import ReleasePlugin, configure_logging

__all__ = ["ReleasePlugin", "configure_logging", "__version__"]
