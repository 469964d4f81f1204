"""
cloudrelease.infrastructure.artifact_cache - Release Staging and Plugin Cache
===============================================================================

Moves release bundles in and out of the release bucket, and serves provider
plugins cache-aside so the same multi-megabyte binary is not downloaded on
every pipeline run.

Release Staging:
    upload_release(artifact, reader)  → s3://<release_bucket>/<team>/<component>/<component>-<version>.zip
    download_release(artifact)        → stream of the same object (None for an
                                        empty version: nothing to fetch yet)

Plugin Cache-Aside (load path):

    open_plugin(".terraform/plugins/<name>", checksum)
        │
        ├─ 1. path outside ".terraform/plugins/"      → PluginPathError
        ├─ 2. <plugin_cache_dir>/<name> on local disk → stream   (LOCAL)
        ├─ 3. s3://<release_bucket>/<team>/terraform-plugins/<checksum>/<name>
        │                                             → stream   (DURABLE)
        └─ 4. not cached anywhere                     → None; the bundle loader
                                                        uses the bytes it carries

Plugin Cache-Aside (save path, during upload):
    save_plugin(reference, reader) → HEAD durable key; present → skip,
                                     absent → upload.

This component never copies a plugin into the release directory; that is up
to whoever consumes the returned stream.
"""

from __future__ import annotations

from pathlib import Path
from typing import BinaryIO, Callable, Optional

import structlog

from cloudrelease.core.config import CloudReleaseConfig
from cloudrelease.core.deadline import Deadline
from cloudrelease.core.enums import CacheTier
from cloudrelease.core.exceptions import (
    ArtifactNotFoundError,
    CloudAPIError,
    PluginPathError,
)
from cloudrelease.core.models import PluginReference, ReleaseArtifact
from cloudrelease.integrations.aws.base import OBJECT_NOT_FOUND_CODES, ObjectStoreAPI


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()


class ArtifactCache:
    """Release artifact staging plus the team-scoped plugin cache.

    Attributes:
        _store: Object store bound to the release-account session.
        _team: Team every key is scoped to.
        _bucket: Release bucket (artifacts and cached plugins).
        _plugin_cache_dir: Local plugin cache root.
        _plugin_prefix: Namespace every plugin path must start with.
        _deadline: Checked before every object store call.
        _progress: Receives human-readable progress lines.
    """

    def __init__(
        self,
        object_store: ObjectStoreAPI,
        team: str,
        config: CloudReleaseConfig,
        deadline: Optional[Deadline] = None,
        progress: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._store = object_store
        self._team = team
        self._bucket = config.aws.release_bucket
        self._plugin_cache_dir = Path(config.cache.plugin_cache_dir)
        self._plugin_prefix = config.cache.plugin_path_prefix
        self._deadline = deadline or Deadline.none()
        self._progress = progress or (lambda line: None)
        self._logger = logger.bind(component="artifact_cache", team=team)

    @property
    def bucket(self) -> str:
        return self._bucket

    # =========================================================================
    # Release Staging
    # =========================================================================
    def release_artifact(self, component: str, version: str) -> ReleaseArtifact:
        return ReleaseArtifact(team=self._team, component=component, version=version)

    def upload_release(self, artifact: ReleaseArtifact, reader: BinaryIO) -> str:
        """Stream ``reader`` to the artifact's key, replacing any existing object.

        Returns:
            The ``s3://`` location written.
        """
        self._deadline.check("PutObject")
        self._store.upload_fileobj(self._bucket, artifact.key, reader)
        location = f"s3://{self._bucket}/{artifact.key}"
        self._logger.info("release_uploaded", location=location, version=artifact.version)
        return location

    def download_release(self, artifact: ReleaseArtifact) -> Optional[BinaryIO]:
        """Open the release bundle for reading.

        Returns:
            A stream the caller must close, or None when ``artifact.version``
            is empty.

        Raises:
            ArtifactNotFoundError: No bundle has been uploaded for this version.
            CloudAPIError: Any other object store failure.
        """
        if not artifact.version:
            self._logger.debug("release_download_skipped", component=artifact.component)
            return None

        self._progress(f"- Downloading release from s3://{self._bucket}/{artifact.key}...")
        self._deadline.check("GetObject")
        try:
            return self._store.get_object(self._bucket, artifact.key)
        except CloudAPIError as exc:
            if exc.is_not_found(*OBJECT_NOT_FOUND_CODES):
                raise ArtifactNotFoundError(
                    message=(
                        f"release {artifact.component} {artifact.version} not found "
                        f"at s3://{self._bucket}/{artifact.key}"
                    ),
                    details={"key": artifact.key},
                ) from exc
            raise

    # =========================================================================
    # Plugin Cache
    # =========================================================================
    def plugin_name(self, reference: PluginReference) -> str:
        """The plugin path with its namespace prefix removed.

        Raises:
            PluginPathError: The path is outside the plugin namespace.
        """
        if not reference.path.startswith(self._plugin_prefix):
            raise PluginPathError(path=reference.path, expected_prefix=self._plugin_prefix)
        name = reference.path[len(self._plugin_prefix):]
        if not name or any(part in ("", ".", "..") for part in name.split("/")):
            raise PluginPathError(path=reference.path, expected_prefix=self._plugin_prefix)
        return name

    def plugin_key(self, reference: PluginReference) -> str:
        """Durable key: ``<team>/terraform-plugins/<checksum>/<name>``."""
        return f"{self._team}/terraform-plugins/{reference.checksum}/{self.plugin_name(reference)}"

    def open_plugin(self, reference: PluginReference) -> Optional[BinaryIO]:
        """Find a plugin in the local or durable cache.

        Returns:
            A stream the caller must close, or None if neither cache has it.

        Raises:
            PluginPathError: The path is outside the plugin namespace.
            OSError: The local cache file exists but cannot be read.
            CloudAPIError: The durable cache failed with a non-not-found error.
        """
        name = self.plugin_name(reference)

        try:
            stream = open(self._plugin_cache_dir / name, "rb")
        except FileNotFoundError:
            pass
        else:
            self._logger.debug("plugin_cache_hit", plugin=name, tier=CacheTier.LOCAL.value)
            return stream

        self._progress(f"- Downloading provider plugin {name}...")
        self._deadline.check("GetObject")
        try:
            stream = self._store.get_object(self._bucket, self.plugin_key(reference))
        except CloudAPIError as exc:
            if exc.is_not_found(*OBJECT_NOT_FOUND_CODES):
                self._logger.info("plugin_cache_miss", plugin=name, checksum=reference.checksum)
                return None
            raise
        self._logger.debug("plugin_cache_hit", plugin=name, tier=CacheTier.DURABLE.value)
        return stream

    def save_plugin(self, reference: PluginReference, reader: BinaryIO) -> bool:
        """Upload a plugin to the durable cache unless it is already there.

        Returns:
            True if the plugin was uploaded, False if it was already cached.
        """
        key = self.plugin_key(reference)

        self._deadline.check("HeadObject")
        try:
            self._store.head_object(self._bucket, key)
        except CloudAPIError as exc:
            if not exc.is_not_found(*OBJECT_NOT_FOUND_CODES):
                raise
        else:
            self._logger.debug("plugin_already_cached", key=key)
            return False

        self._progress(f"Saving provider plugin {reference.path}...")
        self._deadline.check("PutObject")
        self._store.upload_fileobj(self._bucket, key, reader)
        self._progress(f"Provider plugin {reference.path} saved.")
        self._logger.info("plugin_saved", key=key, checksum=reference.checksum)
        return True
