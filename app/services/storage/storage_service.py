# app/services/storage/storage_service.py
import logging
from typing import Dict, List, Optional

from app.core.config import settings
from app.core.errors import StorageError, ValidationError
from app.schemas.storage import BackendStatus, StorageLocator
from app.services.storage.backends import GCSStorageBackend, LocalStorageBackend

logger = logging.getLogger(__name__)

BOTH = "both"


class StorageService:
    """Stores firmware binaries on one or both backends and releases them again"""

    def __init__(self, backends: Dict[str, object], default_provider: str = "local"):
        self.backends = backends
        self.default_provider = default_provider

    def _resolve(self, provider: Optional[str]) -> List[str]:
        provider = provider or self.default_provider
        if provider == BOTH:
            return list(self.backends)
        if provider not in self.backends:
            raise ValidationError(
                f"Unknown storage provider '{provider}'. Use one of: {', '.join([*self.backends, BOTH])}"
            )
        return [provider]

    def store(self, data: bytes, filename: str, version: str, provider: Optional[str] = None) -> StorageLocator:
        """Store bytes on every chosen backend.

        A multi-backend store is a saga: when a later backend fails, the
        backends that already succeeded are released before StorageError
        is raised, so no bytes are left behind.
        """
        names = self._resolve(provider)
        references: Dict[str, Dict] = {}

        for name in names:
            try:
                references[name] = self.backends[name].store(data, filename, version)
            except StorageError as e:
                logger.error(f"Storage backend {name} failed for firmware {version}: {e.message}")
                self._compensate(references)
                raise

        return StorageLocator(provider=provider or self.default_provider, references=references)

    def _compensate(self, references: Dict[str, Dict]) -> None:
        for name in reversed(list(references)):
            try:
                self.backends[name].release(references[name])
            except StorageError as e:
                # The original failure is what the caller needs to see
                logger.error(f"Compensating delete on {name} failed: {e.message}")

    def release(self, locator: StorageLocator) -> None:
        """Delete the bytes behind a locator from every backend it names"""
        errors = []
        for name, reference in locator.references.items():
            backend = self.backends.get(name)
            if backend is None:
                errors.append(f"{name}: backend not configured")
                continue
            try:
                backend.release(reference)
            except StorageError as e:
                errors.append(f"{name}: {e.message}")

        if errors:
            raise StorageError(f"Storage delete failed: {'; '.join(errors)}")

    def status(self) -> Dict[str, BackendStatus]:
        return {name: backend.check() for name, backend in self.backends.items()}


def build_storage_service() -> StorageService:
    """Storage service wired from settings"""
    backends = {
        "local": LocalStorageBackend(settings.FIRMWARE_DIR),
        "gcs": GCSStorageBackend(settings.GCS_BUCKET, prefix=settings.GCS_PREFIX),
    }
    return StorageService(backends, default_provider=settings.STORAGE_PROVIDER)
