"""
cloudrelease.registry - Container Registry Reconciliation
===========================================================

    - RepositoryReconciler:   idempotent repository create / drift correction
    - build_lifecycle_policy: deterministic per-build retention policy
    - build_access_policy:    pull-from-organization access policy
"""

from cloudrelease.registry.policies import build_access_policy, build_lifecycle_policy
from cloudrelease.registry.reconciler import RepositoryReconciler, repository_name

__all__ = [
    "RepositoryReconciler",
    "repository_name",
    "build_lifecycle_policy",
    "build_access_policy",
]
