# =============================================================================
# MinIO Package Store - S3-Compatible Object Storage
# =============================================================================
# Tileset package stored as objects below a key prefix of a bucket
# ("s3://bucket/prefix"). Writes are staged locally and uploaded on close,
# root tileset JSON last; a failed upload removes the objects it created.
# =============================================================================

import logging
import shutil
import tempfile
from pathlib import Path

from minio import Minio
from minio.deleteobjects import DeleteObject
from minio.error import S3Error
from pydantic import ValidationError

from ..errors import TargetExistsError, TilesetError
from ..models.config import MinIOSettings
from ..paths import determine_tileset_json_file_name, is_json_name, parse_s3_path
from .base import PackageStore

__all__ = ["MinioPackageStore"]

logger = logging.getLogger(__name__)


class MinioPackageStore(PackageStore):
    """
    Package stored in MinIO (S3-compatible object storage).

    Keys map to object names by prepending the package prefix. Entries written
    to a target are staged in a local temporary directory; `close()` removes
    the previous package objects (when overwriting) and uploads the staged
    entries, `discard()` only deletes the staging directory.

    Attributes:
        client: Configured Minio client
        bucket: Bucket holding the package
        prefix: Object name prefix of the package ("" or ending with "/")
    """

    io_errors = (OSError, S3Error)

    def __init__(
        self,
        name: str,
        client: Minio,
        bucket: str,
        prefix: str,
        writable: bool,
        overwrite: bool = False,
        staging: Path | None = None,
    ):
        super().__init__(name, writable, overwrite)
        self.client = client
        self.bucket = bucket
        self.prefix = prefix
        self.staging = staging

    # -------------------------------------------------------------------------
    # Opening
    # -------------------------------------------------------------------------

    @staticmethod
    def get_client(settings: MinIOSettings | None = None) -> Minio:
        """
        Create a MinIO client instance.

        Args:
            settings: Connection settings (default: loaded from the environment)

        Returns:
            Configured Minio client
        """
        if settings is None:
            try:
                settings = MinIOSettings()
            except ValidationError as exc:
                raise TilesetError(f"MinIO settings are incomplete: {exc}") from exc
        return Minio(
            settings.endpoint,
            access_key=settings.access_key,
            secret_key=settings.secret_key,
            secure=settings.use_ssl,
        )

    @staticmethod
    def split_name(name: str) -> tuple[str, str]:
        """
        Split a package name into bucket and object prefix.

        Examples:
            >>> MinioPackageStore.split_name("s3://tiles/city/tileset.json")
            ('tiles', 'city/')
            >>> MinioPackageStore.split_name("s3://tiles")
            ('tiles', '')
        """
        bucket, prefix = parse_s3_path(name)
        if is_json_name(prefix):
            prefix = prefix.rpartition("/")[0]
        prefix = prefix.strip("/")
        return bucket, f"{prefix}/" if prefix else ""

    @classmethod
    def open_for_read(cls, name: str, client: Minio | None = None) -> "MinioPackageStore":
        bucket, prefix = cls.split_name(name)
        client = client or cls.get_client()
        try:
            if not client.bucket_exists(bucket):
                raise TilesetError(f"Source bucket '{bucket}' does not exist")
        except S3Error as exc:
            raise TilesetError(f"Failed to access '{name}': {exc}") from exc
        return cls(name, client, bucket, prefix, writable=False)

    @classmethod
    def open_for_write(cls, name: str, overwrite: bool, client: Minio | None = None) -> "MinioPackageStore":
        bucket, prefix = cls.split_name(name)
        client = client or cls.get_client()
        store = cls(name, client, bucket, prefix, writable=True, overwrite=overwrite)
        try:
            if not client.bucket_exists(bucket):
                raise TilesetError(f"Target bucket '{bucket}' does not exist")
            exists = any(True for _ in store._list_objects())
        except S3Error as exc:
            raise TilesetError(f"Failed to access '{name}': {exc}") from exc
        if exists and not overwrite:
            raise TargetExistsError(f"Target package already exists: {name}")

        store.staging = Path(tempfile.mkdtemp(prefix="tileset-tools-"))
        return store

    # -------------------------------------------------------------------------
    # Backend hooks
    # -------------------------------------------------------------------------

    def _list_objects(self):
        for obj in self.client.list_objects(self.bucket, prefix=self.prefix, recursive=True):
            if not obj.is_dir:
                yield obj

    def _read(self, key: str) -> bytes | None:
        try:
            response = self.client.get_object(self.bucket, self.prefix + key)
        except S3Error as exc:
            if exc.code == "NoSuchKey":
                return None
            raise
        try:
            return response.read()
        finally:
            response.close()
            response.release_conn()

    def _keys(self) -> list[str]:
        return [obj.object_name[len(self.prefix):] for obj in self._list_objects()]

    def _write(self, key: str, data: bytes) -> None:
        path = self.staging / key
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    def _finalize(self) -> None:
        uploaded: list[str] = []
        try:
            if self.overwrite:
                self._remove_existing()
            for key in self._upload_order():
                object_name = self.prefix + key
                self.client.fput_object(
                    self.bucket,
                    object_name,
                    str(self.staging / key),
                    content_type=self._infer_content_type(Path(key).suffix),
                )
                uploaded.append(object_name)
                logger.debug(f"Uploaded s3://{self.bucket}/{object_name}")
        except Exception:
            self._remove_uploaded(uploaded)
            raise
        finally:
            shutil.rmtree(self.staging, ignore_errors=True)

    def _upload_order(self) -> list[str]:
        """Staged keys, with the root tileset JSON last so the package only appears once complete."""
        keys = sorted(p.relative_to(self.staging).as_posix() for p in self.staging.rglob("*") if p.is_file())
        root_key = determine_tileset_json_file_name(self.name)
        return sorted(keys, key=lambda key: key == root_key)

    def _remove_uploaded(self, object_names: list[str]) -> None:
        if not object_names:
            return
        logger.warning(f"Removing {len(object_names)} partially uploaded objects of '{self.name}'")
        try:
            errors = list(self.client.remove_objects(
                self.bucket, [DeleteObject(name) for name in object_names]
            ))
        except S3Error as exc:
            logger.error(f"Failed to remove partial upload of '{self.name}': {exc}")
            return
        for error in errors:
            logger.error(f"Failed to remove partial upload of '{self.name}': {error}")

    def _remove_existing(self) -> None:
        delete_list = [DeleteObject(obj.object_name) for obj in self._list_objects()]
        if not delete_list:
            return
        errors = list(self.client.remove_objects(self.bucket, delete_list))
        if errors:
            raise TilesetError(
                f"Failed to remove {len(errors)} existing objects of '{self.name}': {errors[0]}"
            )

    def _abandon(self) -> None:
        shutil.rmtree(self.staging, ignore_errors=True)

    def _release(self) -> None:
        pass

    @staticmethod
    def _infer_content_type(suffix: str) -> str:
        """
        Infer MIME type from file extension.

        Args:
            suffix: File extension (e.g., ".json", ".glb")

        Returns:
            MIME type string
        """
        content_types = {
            ".json": "application/json",
            ".glb": "model/gltf-binary",
            ".gltf": "model/gltf+json",
            ".geojson": "application/geo+json",
            ".png": "image/png",
            ".jpg": "image/jpeg",
            ".jpeg": "image/jpeg",
            ".ktx2": "image/ktx2",
        }

        return content_types.get(suffix.lower(), "application/octet-stream")
