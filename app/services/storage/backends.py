"""
Storage backends for firmware binaries.

Each backend stores raw bytes and returns a plain dict reference that is
persisted on the catalog entry, so the same bytes can be released later.
Backends raise StorageError for every failure; callers never see SDK
exceptions.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from google.api_core.exceptions import NotFound
from google.cloud import storage
from werkzeug.utils import secure_filename

from app.core.errors import StorageError
from app.schemas.storage import BackendStatus
from app.utils.time import utcnow

logger = logging.getLogger(__name__)


class LocalStorageBackend:
    """Firmware binaries on the local filesystem"""

    name = "local"

    def __init__(self, root: str):
        self.root = Path(root)

    def _path_for(self, filename: str, version: str) -> Path:
        safe_name = secure_filename(filename) or "firmware.bin"
        return self.root / f"v{secure_filename(version)}_{safe_name}"

    def store(self, data: bytes, filename: str, version: str) -> Dict[str, Any]:
        path = self._path_for(filename, version)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            # "xb" refuses to overwrite an existing binary
            with open(path, "xb") as f:
                f.write(data)
        except FileExistsError:
            raise StorageError(f"Local file already exists: {path.name}")
        except OSError as e:
            raise StorageError(f"Local store failed: {e}")

        logger.info(f"Stored firmware {version} locally at {path}")
        return {"path": str(path)}

    def release(self, reference: Dict[str, Any]) -> None:
        path = reference.get("path")
        if not path:
            return
        try:
            os.remove(path)
        except FileNotFoundError:
            logger.warning(f"Local firmware file already gone: {path}")
        except OSError as e:
            raise StorageError(f"Local delete failed: {e}")
        logger.info(f"Released local firmware file {path}")

    def check(self) -> BackendStatus:
        if self.root.exists() and not os.access(self.root, os.W_OK):
            return BackendStatus(connected=False, detail=f"{self.root} is not writable")
        return BackendStatus(connected=True, detail=str(self.root))


class GCSStorageBackend:
    """Firmware binaries in a Google Cloud Storage bucket.

    Next to every binary a small JSON manifest is written; it is the
    provider-side catalog record and is removed together with the binary.
    """

    name = "gcs"

    def __init__(self, bucket_name: Optional[str], prefix: str = "firmware/", client=None):
        self.bucket_name = bucket_name
        self.prefix = prefix
        self._client = client

    @property
    def client(self):
        if self._client is None:
            try:
                self._client = storage.Client()
            except Exception as e:
                raise StorageError(f"Failed to initialize Google Cloud Storage client: {e}")
        return self._client

    def _bucket(self):
        if not self.bucket_name:
            raise StorageError("GCS_BUCKET is not configured")
        return self.client.bucket(self.bucket_name)

    def store(self, data: bytes, filename: str, version: str) -> Dict[str, Any]:
        bucket = self._bucket()
        object_name = f"{self.prefix}{secure_filename(version)}/{secure_filename(filename) or 'firmware.bin'}"
        manifest_name = f"{self.prefix}manifests/{secure_filename(version)}.json"

        try:
            blob = bucket.blob(object_name)
            blob.upload_from_string(data, content_type="application/octet-stream")
        except Exception as e:
            raise StorageError(f"GCS upload failed: {e}")

        url = f"https://storage.googleapis.com/{self.bucket_name}/{object_name}"
        manifest = {
            "version": version,
            "object": object_name,
            "url": url,
            "uploaded_at": utcnow().isoformat(),
        }
        try:
            bucket.blob(manifest_name).upload_from_string(
                json.dumps(manifest), content_type="application/json"
            )
        except Exception as e:
            # Without its manifest the binary is an orphan
            try:
                blob.delete()
            except Exception as cleanup_error:
                logger.error(f"Failed to remove orphaned GCS object {object_name}: {cleanup_error}")
            raise StorageError(f"GCS manifest write failed: {e}")

        logger.info(f"Stored firmware {version} in gs://{self.bucket_name}/{object_name}")
        return {"bucket": self.bucket_name, "object": object_name, "manifest": manifest_name, "url": url}

    def release(self, reference: Dict[str, Any]) -> None:
        bucket_name = reference.get("bucket") or self.bucket_name
        if not bucket_name:
            raise StorageError("GCS_BUCKET is not configured")
        try:
            bucket = self.client.bucket(bucket_name)
            for key in ("object", "manifest"):
                object_name = reference.get(key)
                if not object_name:
                    continue
                try:
                    bucket.blob(object_name).delete()
                except NotFound:
                    logger.warning(f"GCS object already gone: {object_name}")
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"GCS delete failed: {e}")
        logger.info(f"Released GCS firmware object {reference.get('object')}")

    def check(self) -> BackendStatus:
        try:
            exists = self._bucket().exists()
        except Exception as e:
            return BackendStatus(connected=False, detail=str(getattr(e, "message", e)))
        if not exists:
            return BackendStatus(connected=False, detail=f"Bucket {self.bucket_name} not found")
        return BackendStatus(connected=True, detail=self.bucket_name)
