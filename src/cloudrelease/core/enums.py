"""
cloudrelease.core.enums - Type-Safe Enumerations
==================================================

All enums inherit from both `str` and `Enum`, so they serialize to plain
strings and compare equal to them: ``Need.ECR == "ecr"``.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


# =============================================================================
# Build Needs
# =============================================================================
# A build declares the cloud resources it needs in its release requirements.
# The set is closed: every member must have an entry in the configure-release
# dispatch table (handlers/configure_release.py), and a raw string that is not
# a member is rejected up front.
# =============================================================================
class Need(str, Enum):
    """Resources a build can ask the plugin to provide.

    Usage:
        >>> Need.parse("ecr")
        <Need.ECR: 'ecr'>
        >>> Need.parse("docker")  # None, caller reports the failure
    """

    ECR = "ecr"         # Container registry repository + image tag
    LAMBDA = "lambda"   # Bucket to upload lambda packages to

    @classmethod
    def parse(cls, raw: str) -> Optional[Need]:
        """Return the member for ``raw``, or None if it is not supported."""
        try:
            return cls(raw)
        except ValueError:
            return None


# =============================================================================
# Tag Mutability
# =============================================================================
class TagMutability(str, Enum):
    """Image tag mutability setting of a registry repository."""

    MUTABLE = "MUTABLE"
    IMMUTABLE = "IMMUTABLE"


# =============================================================================
# Reconciliation States
# =============================================================================
#   MISSING → CREATED → VERIFIED
#   (found)  ─────────→ VERIFIED
# =============================================================================
class RepositoryState(str, Enum):
    """Where a repository is in its reconciliation state machine."""

    MISSING = "missing"
    CREATED = "created"
    VERIFIED = "verified"


# =============================================================================
# Plugin Cache Tiers
# =============================================================================
class CacheTier(str, Enum):
    """Which tier satisfied a plugin lookup."""

    LOCAL = "local"         # Local filesystem cache directory
    DURABLE = "durable"     # Team-scoped object in the release bucket
    BUNDLE = "bundle"       # Bytes carried in the release bundle itself
