"""
cloudrelease.infrastructure.release_bundle - Release Bundle Packaging
=======================================================================

Turns a release directory into a single stream and back again. The cache
only depends on the two interfaces here; ZipReleaseBundle is the shipped
implementation.

Zip Layout:

    release.json                 manifest: component, version, terraform_image,
                                 plugins [{path, checksum}, ...]
    <every other file>           the release directory, relative paths
    .terraform/plugins/...       only when embed_plugins=True; otherwise
                                 plugins travel through the plugin cache

Save:
    Each file under ``.terraform/plugins/`` is hashed (sha256) and handed to
    the plugin saver instead of going into the archive.

Load:
    Everything is unpacked into the release directory, then each plugin in
    the manifest is materialized from the plugin opener, or from the archive
    itself when neither cache has it, and its checksum verified.
"""

from __future__ import annotations

import hashlib
import json
import shutil
import tempfile
import zipfile
from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Callable, Optional

import structlog
from pydantic import BaseModel, Field, ValidationError

from cloudrelease.core.enums import CacheTier
from cloudrelease.core.exceptions import ArtifactError, ArtifactNotFoundError
from cloudrelease.core.models import PluginReference


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()


MANIFEST_NAME = "release.json"
DEFAULT_PLUGIN_PREFIX = ".terraform/plugins/"

PluginOpener = Callable[[PluginReference], Optional[BinaryIO]]
PluginSaver = Callable[[PluginReference, BinaryIO], bool]


class ReleaseManifest(BaseModel):
    """Metadata stored alongside the release files."""

    component: str = Field(description="Component name")
    version: str = Field(description="Release version")
    terraform_image: str = Field(default="", description="Terraform image to run with")
    plugins: list[PluginReference] = Field(
        default_factory=list,
        description="Provider plugins the release needs",
    )


def file_checksum(path: Path) -> str:
    """Hex sha256 of a file's content."""
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            digest.update(chunk)
    return digest.hexdigest()


# =============================================================================
# Interfaces
# =============================================================================
class ReleaseLoader(ABC):
    """Unpacks a release bundle stream into a directory."""

    @abstractmethod
    def load(
        self,
        reader: BinaryIO,
        component: str,
        version: str,
        release_dir: str,
        open_plugin: PluginOpener,
    ) -> str:
        """Unpack ``reader`` into ``release_dir``.

        Returns:
            The terraform image recorded in the bundle.
        """
        ...


class ReleaseSaver(ABC):
    """Packages a release directory into a bundle stream."""

    @abstractmethod
    def save(
        self,
        component: str,
        version: str,
        terraform_image: str,
        release_dir: str,
        save_plugin: PluginSaver,
    ) -> BinaryIO:
        """Package ``release_dir``. The caller closes the returned stream."""
        ...


# =============================================================================
# Zip Implementation
# =============================================================================
class ZipReleaseBundle(ReleaseLoader, ReleaseSaver):
    """Release bundles as zip archives with a JSON manifest.

    Attributes:
        _plugin_prefix: Directory (relative, posix) holding provider plugins.
        _embed_plugins: Also store plugin bytes inside the archive.
    """

    def __init__(
        self,
        plugin_prefix: str = DEFAULT_PLUGIN_PREFIX,
        embed_plugins: bool = False,
    ) -> None:
        self._plugin_prefix = plugin_prefix
        self._embed_plugins = embed_plugins
        self._logger = logger.bind(component="zip_release_bundle")

    # =========================================================================
    # Save
    # =========================================================================
    def save(
        self,
        component: str,
        version: str,
        terraform_image: str,
        release_dir: str,
        save_plugin: PluginSaver,
    ) -> BinaryIO:
        root = Path(release_dir)
        if not root.is_dir():
            raise ArtifactError(
                message=f"release directory {release_dir!r} does not exist",
                details={"release_dir": release_dir},
            )

        manifest = ReleaseManifest(
            component=component,
            version=version,
            terraform_image=terraform_image,
        )
        output = tempfile.TemporaryFile()
        try:
            with zipfile.ZipFile(output, "w", compression=zipfile.ZIP_DEFLATED) as archive:
                for path in sorted(p for p in root.rglob("*") if p.is_file()):
                    relative = path.relative_to(root).as_posix()
                    if relative == MANIFEST_NAME:
                        continue
                    if relative.startswith(self._plugin_prefix):
                        reference = PluginReference(path=relative, checksum=file_checksum(path))
                        with open(path, "rb") as plugin:
                            save_plugin(reference, plugin)
                        manifest.plugins.append(reference)
                        if not self._embed_plugins:
                            continue
                    archive.write(path, relative)
                archive.writestr(MANIFEST_NAME, manifest.model_dump_json(indent=2))
        except BaseException:
            output.close()
            raise

        output.seek(0)
        self._logger.info(
            "release_packaged",
            component=component,
            version=version,
            plugins=len(manifest.plugins),
        )
        return output

    # =========================================================================
    # Load
    # =========================================================================
    def load(
        self,
        reader: BinaryIO,
        component: str,
        version: str,
        release_dir: str,
        open_plugin: PluginOpener,
    ) -> str:
        root = Path(release_dir)
        root.mkdir(parents=True, exist_ok=True)

        with tempfile.TemporaryFile() as buffer:
            # Object store bodies are not seekable; zipfile needs to seek.
            shutil.copyfileobj(reader, buffer)
            buffer.seek(0)
            try:
                with zipfile.ZipFile(buffer) as archive:
                    manifest = self._read_manifest(archive)
                    for name in archive.namelist():
                        if name == MANIFEST_NAME or name.endswith("/"):
                            continue
                        destination = self._safe_destination(root, name)
                        destination.parent.mkdir(parents=True, exist_ok=True)
                        with archive.open(name) as src, open(destination, "wb") as dst:
                            shutil.copyfileobj(src, dst)
                    for reference in manifest.plugins:
                        self._materialize_plugin(root, archive, reference, open_plugin)
            except zipfile.BadZipFile as exc:
                raise ArtifactError(
                    message=f"release {component} {version} is not a valid bundle: {exc}",
                ) from exc

        if (manifest.component, manifest.version) != (component, version):
            self._logger.warning(
                "release_manifest_mismatch",
                expected_component=component,
                expected_version=version,
                component=manifest.component,
                version=manifest.version,
            )
        self._logger.info(
            "release_unpacked",
            component=component,
            version=version,
            release_dir=release_dir,
            plugins=len(manifest.plugins),
        )
        return manifest.terraform_image

    def _read_manifest(self, archive: zipfile.ZipFile) -> ReleaseManifest:
        try:
            raw = archive.read(MANIFEST_NAME)
        except KeyError as exc:
            raise ArtifactError(message=f"release bundle has no {MANIFEST_NAME}") from exc
        try:
            return ReleaseManifest.model_validate(json.loads(raw))
        except (ValueError, ValidationError) as exc:
            raise ArtifactError(message=f"release bundle has an invalid {MANIFEST_NAME}: {exc}") from exc

    @staticmethod
    def _safe_destination(root: Path, name: str) -> Path:
        relative = PurePosixPath(name)
        if relative.is_absolute() or ".." in relative.parts:
            raise ArtifactError(
                message=f"release bundle entry {name!r} escapes the release directory",
                details={"entry": name},
            )
        return root.joinpath(*relative.parts)

    def _materialize_plugin(
        self,
        root: Path,
        archive: zipfile.ZipFile,
        reference: PluginReference,
        open_plugin: PluginOpener,
    ) -> None:
        destination = self._safe_destination(root, reference.path)
        destination.parent.mkdir(parents=True, exist_ok=True)

        stream = open_plugin(reference)
        if stream is None:
            if reference.path not in archive.namelist():
                raise ArtifactNotFoundError(
                    message=(
                        f"provider plugin {reference.path} ({reference.checksum}) "
                        "is not in any plugin cache or in the release bundle"
                    ),
                    details={"path": reference.path, "checksum": reference.checksum},
                )
            stream = archive.open(reference.path)
            self._logger.debug("plugin_from_bundle", plugin=reference.path, tier=CacheTier.BUNDLE.value)

        with stream, open(destination, "wb") as dst:
            shutil.copyfileobj(stream, dst)

        if file_checksum(destination) != reference.checksum:
            raise ArtifactError(
                message=f"checksum mismatch for provider plugin {reference.path}",
                details={"path": reference.path, "checksum": reference.checksum},
            )
