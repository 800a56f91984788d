# =============================================================================
# Unit Tests: Configuration Models
# =============================================================================

import pytest
from pydantic import ValidationError

from tileset_tools.models import GltfUpgradeOptions, MinIOSettings, TilesetToolsSettings


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Run without a .env file and without tool variables from the host."""
    monkeypatch.chdir(tmp_path)
    for name in ("TILESET_TOOLS_LOG_LEVEL", "TILESET_TOOLS_JSON_INDENT", "MINIO_ENDPOINT",
                 "MINIO_ROOT_USER", "MINIO_ROOT_PASSWORD", "MINIO_USE_SSL"):
        monkeypatch.delenv(name, raising=False)


class TestTilesetToolsSettings:
    """Tests for TilesetToolsSettings."""

    def test_defaults(self):
        settings = TilesetToolsSettings()
        assert settings.log_level == "INFO"
        assert settings.json_indent == 2

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("TILESET_TOOLS_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("TILESET_TOOLS_JSON_INDENT", "4")
        settings = TilesetToolsSettings()
        assert settings.log_level == "DEBUG"
        assert settings.json_indent == 4

    def test_from_env_file(self, tmp_path):
        (tmp_path / ".env").write_text("TILESET_TOOLS_JSON_INDENT=0\nUNRELATED=1\n")
        assert TilesetToolsSettings().json_indent == 0

    def test_negative_indent(self, monkeypatch):
        monkeypatch.setenv("TILESET_TOOLS_JSON_INDENT", "-1")
        with pytest.raises(ValidationError):
            TilesetToolsSettings()


class TestMinIOSettings:
    """Tests for MinIOSettings."""

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("MINIO_ENDPOINT", "minio:9000")
        monkeypatch.setenv("MINIO_ROOT_USER", "user")
        monkeypatch.setenv("MINIO_ROOT_PASSWORD", "secret")
        settings = MinIOSettings()

        assert settings.endpoint == "minio:9000"
        assert settings.access_key == "user"
        assert settings.use_ssl is False

    def test_missing_endpoint(self):
        with pytest.raises(ValidationError):
            MinIOSettings()


class TestGltfUpgradeOptions:
    """Tests for GltfUpgradeOptions."""

    def test_defaults(self):
        assert GltfUpgradeOptions().normalize_legacy_headers is True

    def test_unknown_options_are_kept(self):
        options = GltfUpgradeOptions.model_validate({"normalize_legacy_headers": False, "draco": {"level": 7}})
        assert options.normalize_legacy_headers is False
        assert options.model_extra == {"draco": {"level": 7}}
