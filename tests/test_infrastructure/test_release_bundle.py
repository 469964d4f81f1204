"""
Tests for cloudrelease.infrastructure.release_bundle
======================================================

Bundles are packed and unpacked through a real ArtifactCache on top of
InMemoryObjectStore, so plugins travel the same way they do in production.
"""

import hashlib
import io
import json
import zipfile
from pathlib import Path

import pytest

from cloudrelease.core.exceptions import ArtifactError, ArtifactNotFoundError
from cloudrelease.infrastructure.artifact_cache import ArtifactCache
from cloudrelease.infrastructure.release_bundle import (
    MANIFEST_NAME,
    ZipReleaseBundle,
    file_checksum,
)
from cloudrelease.integrations.aws.mock import InMemoryObjectStore


PLUGIN_PATH = ".terraform/plugins/linux_amd64/terraform-provider-aws_v5"
PLUGIN_BYTES = b"provider-binary"


@pytest.fixture
def store():
    return InMemoryObjectStore()


@pytest.fixture
def cache(store, config):
    return ArtifactCache(store, "my-team", config)


@pytest.fixture
def release_dir(tmp_path):
    root = tmp_path / "build"
    (root / "infra").mkdir(parents=True)
    (root / "infra" / "main.tf").write_text('resource "null_resource" "x" {}\n')
    (root / "config").mkdir()
    (root / "config" / "live.json").write_text('{"count": 2}\n')
    plugin = root / PLUGIN_PATH
    plugin.parent.mkdir(parents=True)
    plugin.write_bytes(PLUGIN_BYTES)
    return root


def _names(stream) -> list:
    with zipfile.ZipFile(stream) as archive:
        return sorted(archive.namelist())


# =============================================================================
# Test: Save
# =============================================================================
class TestSave:
    """Tests for ZipReleaseBundle.save()."""

    def test_plugins_go_to_cache_not_archive(self, release_dir, cache, store) -> None:
        stream = ZipReleaseBundle().save("app", "1", "hashicorp/terraform:1.5", str(release_dir), cache.save_plugin)

        assert _names(stream) == ["config/live.json", "infra/main.tf", MANIFEST_NAME]
        assert len(store.uploads) == 1
        assert store.uploads[0][1].startswith("my-team/terraform-plugins/")

    def test_manifest_records_plugins(self, release_dir, cache) -> None:
        stream = ZipReleaseBundle().save("app", "1", "hashicorp/terraform:1.5", str(release_dir), cache.save_plugin)
        with zipfile.ZipFile(stream) as archive:
            manifest = json.loads(archive.read(MANIFEST_NAME))

        assert manifest["terraform_image"] == "hashicorp/terraform:1.5"
        assert manifest["plugins"] == [{
            "path": PLUGIN_PATH,
            "checksum": hashlib.sha256(PLUGIN_BYTES).hexdigest(),
        }]

    def test_embed_plugins(self, release_dir, cache) -> None:
        stream = ZipReleaseBundle(embed_plugins=True).save("app", "1", "", str(release_dir), cache.save_plugin)
        assert PLUGIN_PATH in _names(stream)

    def test_missing_release_dir(self, tmp_path, cache) -> None:
        with pytest.raises(ArtifactError):
            ZipReleaseBundle().save("app", "1", "", str(tmp_path / "nope"), cache.save_plugin)


# =============================================================================
# Test: Load
# =============================================================================
class TestLoad:
    """Tests for ZipReleaseBundle.load()."""

    def test_round_trip_through_durable_cache(self, release_dir, cache, tmp_path) -> None:
        bundle = ZipReleaseBundle()
        stream = bundle.save("app", "1", "hashicorp/terraform:1.5", str(release_dir), cache.save_plugin)

        target = tmp_path / "unpacked"
        image = bundle.load(stream, "app", "1", str(target), cache.open_plugin)

        assert image == "hashicorp/terraform:1.5"
        assert (target / "infra" / "main.tf").read_text() == 'resource "null_resource" "x" {}\n'
        assert (target / PLUGIN_PATH).read_bytes() == PLUGIN_BYTES

    def test_embedded_copy_used_when_not_cached(self, release_dir, tmp_path) -> None:
        """Falls back to the archive when neither cache tier has the plugin."""
        bundle = ZipReleaseBundle(embed_plugins=True)
        stream = bundle.save("app", "1", "", str(release_dir), lambda reference, reader: True)

        target = tmp_path / "unpacked"
        bundle.load(stream, "app", "1", str(target), lambda reference: None)

        assert (target / PLUGIN_PATH).read_bytes() == PLUGIN_BYTES

    def test_missing_plugin(self, release_dir, cache, tmp_path) -> None:
        bundle = ZipReleaseBundle()
        stream = bundle.save("app", "1", "", str(release_dir), lambda reference, reader: True)

        with pytest.raises(ArtifactNotFoundError):
            bundle.load(stream, "app", "1", str(tmp_path / "unpacked"), cache.open_plugin)

    def test_checksum_mismatch(self, release_dir, tmp_path) -> None:
        bundle = ZipReleaseBundle()
        stream = bundle.save("app", "1", "", str(release_dir), lambda reference, reader: True)

        with pytest.raises(ArtifactError):
            bundle.load(stream, "app", "1", str(tmp_path / "unpacked"), lambda reference: io.BytesIO(b"tampered"))

    def test_not_a_zip(self, tmp_path) -> None:
        with pytest.raises(ArtifactError):
            ZipReleaseBundle().load(io.BytesIO(b"not a zip"), "app", "1", str(tmp_path), lambda r: None)

    def test_missing_manifest(self, tmp_path) -> None:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as archive:
            archive.writestr("infra/main.tf", "")
        buffer.seek(0)
        with pytest.raises(ArtifactError):
            ZipReleaseBundle().load(buffer, "app", "1", str(tmp_path), lambda r: None)

    def test_entry_outside_release_dir(self, tmp_path) -> None:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as archive:
            archive.writestr(MANIFEST_NAME, json.dumps({"component": "app", "version": "1"}))
            archive.writestr("../escape.txt", "x")
        buffer.seek(0)
        with pytest.raises(ArtifactError):
            ZipReleaseBundle().load(buffer, "app", "1", str(tmp_path / "unpacked"), lambda r: None)
        assert not (tmp_path / "escape.txt").exists()


class TestFileChecksum:
    """Tests for file_checksum()."""

    def test_sha256_hex(self, tmp_path) -> None:
        path = Path(tmp_path / "f")
        path.write_bytes(b"abc")
        assert file_checksum(path) == hashlib.sha256(b"abc").hexdigest()

