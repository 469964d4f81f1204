"""
cloudrelease.infrastructure - State and Artifact Infrastructure
=================================================================

Components that consume a release-account session to work with durable
storage:

    ┌─────────────── HANDLERS ─────────────────────────────┐
    │  ConfigureRelease, PrepareTerraform, UploadRelease    │
    └───────────────────────┬──────────────────────────────┘
                            │
    ┌─────────────── INFRASTRUCTURE ───────────────────────┐
    │  StateBackendResolver   BackendConfig + state checks  │
    │  ArtifactCache          release staging, plugin cache │
    │  ZipReleaseBundle       ReleaseLoader / ReleaseSaver  │
    └───────────────────────┬──────────────────────────────┘
                            │ ObjectStoreAPI
                            ▼
                     release / tfstate buckets
"""

from cloudrelease.infrastructure.artifact_cache import ArtifactCache
from cloudrelease.infrastructure.release_bundle import (
    ReleaseLoader,
    ReleaseManifest,
    ReleaseSaver,
    ZipReleaseBundle,
)
from cloudrelease.infrastructure.state_backend import (
    BACKEND_TYPE,
    STATE_FOUND_MESSAGE,
    STATE_NOT_FOUND_MESSAGE,
    StateBackendResolver,
)

__all__ = [
    "ArtifactCache",
    "StateBackendResolver",
    "BACKEND_TYPE",
    "STATE_FOUND_MESSAGE",
    "STATE_NOT_FOUND_MESSAGE",
    "ReleaseLoader",
    "ReleaseSaver",
    "ReleaseManifest",
    "ZipReleaseBundle",
]
