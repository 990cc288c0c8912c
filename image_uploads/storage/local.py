"""Local filesystem implementation of BlobStore."""
import json
import logging
import os
from pathlib import Path
from typing import Mapping, Optional

from config import get_settings

from .base import BlobStore, StorageError

logger = logging.getLogger(__name__)

_META_SUFFIX = ".json"


class LocalBlobStore(BlobStore):
    """Local filesystem blob store.

    Each namespace is a directory under the storage root. Payloads live in
    ``<root>/<name>/blobs/<key>`` and metadata in a JSON sidecar at
    ``<root>/<name>/meta/<key>.json``. The sidecar is written last, so a key
    only becomes visible to ``list_keys`` once both files are in place.
    """

    def __init__(self, storage_root: Optional[str | Path] = None, name: Optional[str] = None):
        """Initialize local blob store.

        Args:
            storage_root: Root directory for all namespaces.
                         If not provided, uses the configured storage root from settings.
            name: Namespace of this store. Defaults to the configured store name.
        """
        settings = get_settings()

        if storage_root is not None:
            self.storage_root = Path(storage_root)
        else:
            self.storage_root = settings.storage_root
        self.name = name or settings.store_name

        self.blob_dir = self.storage_root / self.name / "blobs"
        self.meta_dir = self.storage_root / self.name / "meta"
        self._ensure_storage_dirs()
        logger.info(f"Initialized LocalBlobStore {self.name} with root: {self.storage_root}")

    def _ensure_storage_dirs(self) -> None:
        """Ensure the namespace directories exist."""
        try:
            self.blob_dir.mkdir(parents=True, exist_ok=True)
            self.meta_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create storage directory: {e}")
            raise StorageError(f"Failed to create storage directory: {e}")

    def _resolve(self, directory: Path, filename: str) -> Optional[Path]:
        """Resolve a file directly inside ``directory``, or None if it would escape it.

        Names the filesystem cannot represent (NUL bytes, over-long names)
        also resolve to None.
        """
        try:
            candidate = (directory / filename).resolve()
            if candidate.parent != directory.resolve():
                return None
        except (OSError, ValueError):
            return None
        return candidate

    @staticmethod
    def _is_file(path: Optional[Path]) -> bool:
        if path is None:
            return False
        try:
            return path.is_file()
        except (OSError, ValueError):
            return False

    def _payload_path(self, key: str) -> Optional[Path]:
        return self._resolve(self.blob_dir, key)

    def _meta_path(self, key: str) -> Optional[Path]:
        return self._resolve(self.meta_dir, f"{key}{_META_SUFFIX}")

    @staticmethod
    def _write_atomic(path: Path, content: bytes) -> None:
        tmp_path = path.with_name(f".{path.name}.tmp")
        tmp_path.write_bytes(content)
        os.replace(tmp_path, path)

    def put(self, key: str, content: bytes, metadata: Mapping[str, str]) -> None:
        """Write a payload file followed by its metadata sidecar.

        Raises:
            ValueError: If the key is empty or is not a plain file name.
            StorageError: If either file cannot be written.
        """
        if not key:
            raise ValueError("Storage key cannot be empty")

        payload_path = self._payload_path(key)
        meta_path = self._meta_path(key)
        if payload_path is None or meta_path is None:
            raise ValueError(f"Invalid storage key: {key}")

        sidecar = json.dumps({str(k): str(v) for k, v in metadata.items()})
        try:
            self._write_atomic(payload_path, content)
            self._write_atomic(meta_path, sidecar.encode("utf-8"))
            logger.debug(f"Saved blob to: {payload_path}")
        except OSError as e:
            logger.error(f"Failed to save blob {key}: {e}")
            raise StorageError(f"Failed to save blob: {e}")

    def get(self, key: str) -> Optional[bytes]:
        if not key:
            return None

        payload_path = self._payload_path(key)
        if not self._is_file(payload_path):
            logger.debug(f"Blob not found: {key}")
            return None

        try:
            return payload_path.read_bytes()
        except OSError as e:
            logger.error(f"Failed to read blob from {payload_path}: {e}")
            raise StorageError(f"Failed to read blob: {e}")

    def get_metadata(self, key: str) -> Optional[dict[str, str]]:
        if not key:
            return None

        meta_path = self._meta_path(key)
        if not self._is_file(meta_path):
            return None

        try:
            payload = json.loads(meta_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read metadata from {meta_path}: {e}")
            raise StorageError(f"Failed to read metadata: {e}")

        if not isinstance(payload, dict):
            raise StorageError(f"Corrupt metadata for blob: {key}")
        return {str(k): str(v) for k, v in payload.items()}

    def list_keys(self) -> list[str]:
        """List keys ordered by the time their metadata was written."""
        try:
            sidecars = [
                path for path in self.meta_dir.iterdir()
                if path.is_file() and path.name.endswith(_META_SUFFIX)
            ]
            sidecars.sort(key=lambda path: (path.stat().st_mtime_ns, path.name))
        except OSError as e:
            logger.error(f"Failed to list blobs in {self.meta_dir}: {e}")
            raise StorageError(f"Failed to list blobs: {e}")

        return [path.name[: -len(_META_SUFFIX)] for path in sidecars]
