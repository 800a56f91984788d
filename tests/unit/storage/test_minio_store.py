"""
Unit tests for MinioPackageStore.

Tests all methods with a mocked minio.Minio client to avoid network calls.
"""

from pathlib import Path
from unittest.mock import Mock, patch

import pytest
from minio.error import S3Error

from tileset_tools.errors import TargetExistsError, TilesetError
from tileset_tools.models.config import MinIOSettings
from tileset_tools.storage import MinioPackageStore


def _s3_error(code: str) -> S3Error:
    return S3Error(
        code=code,
        message=f"{code} message",
        resource="resource",
        request_id="test",
        host_id="test",
        response=Mock(status=404),
    )


def _object(name: str, is_dir: bool = False) -> Mock:
    obj = Mock()
    obj.object_name = name
    obj.is_dir = is_dir
    return obj


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def mock_client():
    """Mock Minio client with an existing, empty bucket."""
    client = Mock()
    client.bucket_exists.return_value = True
    client.list_objects.return_value = []
    client.remove_objects.return_value = []
    return client


# =============================================================================
# Test: get_client / split_name
# =============================================================================

def test_get_client():
    """Test that get_client creates a properly configured Minio client."""
    settings = MinIOSettings(
        MINIO_ENDPOINT="localhost:9000",
        MINIO_ROOT_USER="test_access",
        MINIO_ROOT_PASSWORD="test_secret",
        MINIO_USE_SSL=False,
    )
    with patch("tileset_tools.storage.minio_store.Minio") as mock_minio:
        MinioPackageStore.get_client(settings)

    mock_minio.assert_called_once_with(
        "localhost:9000",
        access_key="test_access",
        secret_key="test_secret",
        secure=False,
    )


def test_get_client_without_settings(monkeypatch, tmp_path):
    """Test that missing MinIO environment variables raise TilesetError."""
    monkeypatch.chdir(tmp_path)
    for name in ("MINIO_ENDPOINT", "MINIO_ROOT_USER", "MINIO_ROOT_PASSWORD"):
        monkeypatch.delenv(name, raising=False)
    with pytest.raises(TilesetError, match="MinIO settings are incomplete"):
        MinioPackageStore.get_client()


@pytest.mark.parametrize("name, expected", [
    ("s3://tiles/city", ("tiles", "city/")),
    ("s3://tiles/city/", ("tiles", "city/")),
    ("s3://tiles/city/tileset.json", ("tiles", "city/")),
    ("s3://tiles/tileset.json", ("tiles", "")),
    ("s3://tiles", ("tiles", "")),
])
def test_split_name(name, expected):
    assert MinioPackageStore.split_name(name) == expected


# =============================================================================
# Test: Reading
# =============================================================================

class TestMinioRead:
    """Tests for reading packages from MinIO."""

    def test_read_entry(self, mock_client):
        response = Mock()
        response.read.return_value = b"content"
        mock_client.get_object.return_value = response

        store = MinioPackageStore.open_for_read("s3://tiles/city", client=mock_client)

        assert store.read_entry("a.b3dm") == b"content"
        mock_client.get_object.assert_called_once_with("tiles", "city/a.b3dm")
        response.close.assert_called_once()
        response.release_conn.assert_called_once()

    def test_missing_entry_returns_none(self, mock_client):
        mock_client.get_object.side_effect = _s3_error("NoSuchKey")
        store = MinioPackageStore.open_for_read("s3://tiles/city", client=mock_client)
        assert store.read_entry("missing.b3dm") is None

    def test_other_errors_are_wrapped(self, mock_client):
        mock_client.get_object.side_effect = _s3_error("AccessDenied")
        store = MinioPackageStore.open_for_read("s3://tiles/city", client=mock_client)
        with pytest.raises(TilesetError, match="Failed to read 'a.b3dm'"):
            store.read_entry("a.b3dm")

    def test_list_keys_strips_prefix_and_skips_directories(self, mock_client):
        mock_client.list_objects.return_value = [
            _object("city/tileset.json"),
            _object("city/sub/", is_dir=True),
            _object("city/sub/a.b3dm"),
        ]
        store = MinioPackageStore.open_for_read("s3://tiles/city", client=mock_client)

        assert store.list_keys() == ["sub/a.b3dm", "tileset.json"]
        mock_client.list_objects.assert_called_with("tiles", prefix="city/", recursive=True)

    def test_missing_bucket(self, mock_client):
        mock_client.bucket_exists.return_value = False
        with pytest.raises(TilesetError, match="does not exist"):
            MinioPackageStore.open_for_read("s3://tiles/city", client=mock_client)


# =============================================================================
# Test: Writing
# =============================================================================

class TestMinioWrite:
    """Tests for writing packages to MinIO."""

    def test_entries_are_uploaded_on_close(self, mock_client):
        store = MinioPackageStore.open_for_write("s3://tiles/out", overwrite=False, client=mock_client)
        staging = store.staging
        store.write_entry("tileset.json", b"{}")
        store.write_entry("sub/a.glb", b"glTF")

        mock_client.fput_object.assert_not_called()
        store.close()

        uploaded = [call.args[1] for call in mock_client.fput_object.call_args_list]
        content_types = [call.kwargs["content_type"] for call in mock_client.fput_object.call_args_list]
        assert uploaded == ["out/sub/a.glb", "out/tileset.json"]
        assert content_types == ["model/gltf-binary", "application/json"]
        assert not Path(staging).exists()

    def test_existing_prefix_requires_overwrite(self, mock_client):
        mock_client.list_objects.return_value = [_object("out/tileset.json")]
        with pytest.raises(TargetExistsError):
            MinioPackageStore.open_for_write("s3://tiles/out", overwrite=False, client=mock_client)

    def test_overwrite_removes_existing_objects(self, mock_client):
        mock_client.list_objects.return_value = [_object("out/old.b3dm")]
        store = MinioPackageStore.open_for_write("s3://tiles/out", overwrite=True, client=mock_client)
        store.write_entry("tileset.json", b"{}")
        store.close()

        bucket, delete_list = mock_client.remove_objects.call_args.args
        assert bucket == "tiles"
        assert len(list(delete_list)) == 1
        mock_client.fput_object.assert_called_once()

    def test_discard_uploads_nothing(self, mock_client):
        store = MinioPackageStore.open_for_write("s3://tiles/out", overwrite=False, client=mock_client)
        staging = store.staging
        store.write_entry("tileset.json", b"{}")
        store.discard()

        mock_client.fput_object.assert_not_called()
        mock_client.remove_objects.assert_not_called()
        assert not Path(staging).exists()

    def test_upload_errors_are_wrapped(self, mock_client):
        mock_client.fput_object.side_effect = _s3_error("InternalError")
        store = MinioPackageStore.open_for_write("s3://tiles/out", overwrite=False, client=mock_client)
        staging = store.staging
        store.write_entry("tileset.json", b"{}")

        with pytest.raises(TilesetError, match="Failed to close"):
            store.close()
        assert not Path(staging).exists()

    def test_root_tileset_is_uploaded_last(self, mock_client):
        store = MinioPackageStore.open_for_write("s3://tiles/out/main.json", overwrite=False, client=mock_client)
        store.write_entry("a.b3dm", b"b3dm")
        store.write_entry("main.json", b"{}")
        store.write_entry("z.b3dm", b"b3dm")
        store.close()

        uploaded = [call.args[1] for call in mock_client.fput_object.call_args_list]
        assert uploaded == ["out/a.b3dm", "out/z.b3dm", "out/main.json"]

    def test_failed_upload_removes_uploaded_objects(self, mock_client):
        def fput_object(bucket, object_name, file_path, content_type=None):
            if object_name == "out/z.b3dm":
                raise _s3_error("InternalError")

        mock_client.fput_object.side_effect = fput_object
        store = MinioPackageStore.open_for_write("s3://tiles/out", overwrite=False, client=mock_client)
        store.write_entry("tileset.json", b"{}")
        store.write_entry("a.b3dm", b"b3dm")
        store.write_entry("z.b3dm", b"b3dm")

        with patch("tileset_tools.storage.minio_store.DeleteObject", side_effect=lambda name: name):
            with pytest.raises(TilesetError, match="Failed to close"):
                store.close()

        uploaded = [call.args[1] for call in mock_client.fput_object.call_args_list]
        assert uploaded == ["out/a.b3dm", "out/z.b3dm"]
        mock_client.remove_objects.assert_called_once_with("tiles", ["out/a.b3dm"])
