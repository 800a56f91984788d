# =============================================================================
# Configuration Models Module
# =============================================================================
# Provides Pydantic Settings models for the tileset tools:
# - MinIOSettings: S3-compatible object storage for s3:// packages
# - TilesetToolsSettings: logging and output formatting
# - GltfUpgradeOptions: options forwarded to embedded glTF upgrades
# =============================================================================

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = [
    "MinIOSettings",
    "TilesetToolsSettings",
    "GltfUpgradeOptions",
]


# =============================================================================
# MinIO Settings (S3-Compatible Object Storage)
# =============================================================================

class MinIOSettings(BaseSettings):
    """
    Configuration for MinIO (S3-compatible object storage).

    Used when a package name starts with "s3://". The bucket and key prefix
    come from the package name itself.

    Maps environment variables:
    - MINIO_ENDPOINT → endpoint
    - MINIO_ROOT_USER → access_key
    - MINIO_ROOT_PASSWORD → secret_key
    - MINIO_USE_SSL → use_ssl

    Attributes:
        endpoint: MinIO server endpoint (host:port)
        access_key: Access key (maps from MINIO_ROOT_USER)
        secret_key: Secret key (maps from MINIO_ROOT_PASSWORD)
        use_ssl: Whether to use SSL/TLS (default: False)
    """

    endpoint: str = Field(..., validation_alias="MINIO_ENDPOINT", description="MinIO server endpoint (host:port)")
    access_key: str = Field(..., validation_alias="MINIO_ROOT_USER", description="Access key (maps from MINIO_ROOT_USER)")
    secret_key: str = Field(..., validation_alias="MINIO_ROOT_PASSWORD", description="Secret key (maps from MINIO_ROOT_PASSWORD)")
    use_ssl: bool = Field(False, validation_alias="MINIO_USE_SSL", description="Whether to use SSL/TLS")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",  # Ignore unrelated env vars from shared .env files
    )


# =============================================================================
# Tool Settings
# =============================================================================

class TilesetToolsSettings(BaseSettings):
    """
    General settings for the command line tools.

    Maps environment variables:
    - TILESET_TOOLS_LOG_LEVEL → log_level
    - TILESET_TOOLS_JSON_INDENT → json_indent
    """

    log_level: str = Field("INFO", validation_alias="TILESET_TOOLS_LOG_LEVEL", description="Root log level")
    json_indent: int = Field(2, ge=0, validation_alias="TILESET_TOOLS_JSON_INDENT", description="Indentation of written tileset JSON")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


# =============================================================================
# glTF Upgrade Options
# =============================================================================

class GltfUpgradeOptions(BaseModel):
    """
    Options for upgrading glTF payloads embedded in B3DM/I3DM/CMPT content.

    The upgrader itself only reads `normalize_legacy_headers`. Any other
    option is kept as-is and forwarded to the glb upgrade hook, which owns
    its meaning.

    Attributes:
        normalize_legacy_headers: Rewrite legacy B3DM headers to the current
            28-byte layout (default: True)
    """

    normalize_legacy_headers: bool = Field(
        True, description="Rewrite legacy B3DM headers to the current layout"
    )

    model_config = ConfigDict(extra="allow")
