# app/services/firmware/firmware_service.py
import os
import re
import hashlib
import logging
from typing import Iterable, List, Optional, Tuple
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.core.config import settings
from app.core.errors import ConflictError, NotFoundError, StorageError, ValidationError
from app.db.models import FirmwareStatus, FirmwareUpdate, Printer
from app.schemas.storage import StorageLocator
from app.services.storage.storage_service import StorageService
from app.utils.time import utcnow

logger = logging.getLogger(__name__)

SEMVER_PATTERN = re.compile(r"^\d+\.\d+\.\d+(?:[-+][0-9A-Za-z.-]+)?$")


class FirmwareService:
    """Catalog of uploaded firmware binaries"""

    def __init__(self, session: Session, storage: StorageService):
        self.session = session
        self.storage = storage

    def compute_sha256(self, data: bytes) -> str:
        """Compute SHA256 checksum of firmware data"""
        return hashlib.sha256(data).hexdigest()

    def list_firmware(self) -> List[FirmwareUpdate]:
        """All catalog entries, most recent upload first"""
        statement = select(FirmwareUpdate).order_by(FirmwareUpdate.upload_date.desc())
        return list(self.session.exec(statement).all())

    def get_firmware(self, firmware_id: str) -> FirmwareUpdate:
        firmware = self.session.get(FirmwareUpdate, firmware_id)
        if not firmware:
            raise NotFoundError("Firmware update not found")
        return firmware

    def get_firmware_by_version(self, version: str) -> Optional[FirmwareUpdate]:
        """Get firmware metadata by version"""
        statement = select(FirmwareUpdate).where(FirmwareUpdate.version == version)
        return self.session.exec(statement).first()

    def _validate_upload(
        self,
        file_data: bytes,
        filename: str,
        version: str,
        description: str,
        target_printers: List[str],
    ) -> None:
        if not version or not description:
            raise ValidationError("Version and description are required")
        if not SEMVER_PATTERN.match(version):
            raise ValidationError(f"Version '{version}' is not a semantic version (e.g. 2.3.0)")
        if not target_printers:
            raise ValidationError("At least one target printer is required")
        if not filename:
            raise ValidationError("No file uploaded")

        extension = os.path.splitext(filename)[1].lower()
        if extension not in settings.FIRMWARE_ALLOWED_EXTENSIONS:
            raise ValidationError(f"Only {', '.join(settings.FIRMWARE_ALLOWED_EXTENSIONS)} files are allowed")
        if not file_data:
            raise ValidationError("Firmware file is empty")
        if len(file_data) > settings.FIRMWARE_MAX_SIZE:
            raise ValidationError(f"Firmware file too large. Max size: {settings.FIRMWARE_MAX_SIZE} bytes")

        known = set(self.session.exec(select(Printer.id).where(Printer.id.in_(target_printers))).all())
        unknown = [printer_id for printer_id in target_printers if printer_id not in known]
        if unknown:
            raise ValidationError(f"Unknown target printer(s): {', '.join(unknown)}")

    def prepare_upload(
        self,
        version: str,
        file_data: bytes,
        filename: str,
        description: str,
        target_printers: Iterable[str],
    ) -> Tuple[str, str, List[str]]:
        """Normalize and validate an upload; returns (version, description, targets).

        Raises ConflictError for an existing version, so nothing is stored for it.
        """
        version = (version or "").strip()
        description = (description or "").strip()
        targets = list(dict.fromkeys(str(t) for t in target_printers or []))

        self._validate_upload(file_data, filename, version, description, targets)

        if self.get_firmware_by_version(version):
            raise ConflictError(f"Firmware version {version} already exists")
        return version, description, targets

    def record_upload(
        self,
        locator: StorageLocator,
        version: str,
        file_data: bytes,
        filename: str,
        description: str,
        targets: List[str],
        uploaded_by: Optional[str] = None,
    ) -> FirmwareUpdate:
        """Insert the pending catalog entry for bytes already in storage"""
        firmware = FirmwareUpdate(
            version=version,
            filename=filename,
            file_size=len(file_data),
            upload_date=utcnow(),
            description=description,
            status=FirmwareStatus.PENDING.value,
            target_printers=targets,
            storage_provider=locator.provider,
            storage_info=locator.references,
            uploaded_by=uploaded_by,
            checksum=f"sha256:{self.compute_sha256(file_data)}",
        )

        try:
            self.session.add(firmware)
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            self._release_quietly(locator, version)
            raise ConflictError(f"Firmware version {version} already exists")
        except Exception:
            self.session.rollback()
            self._release_quietly(locator, version)
            raise

        self.session.refresh(firmware)
        logger.info(f"Firmware {version} uploaded by {uploaded_by} for printers {targets}")
        return firmware

    def upload_firmware(
        self,
        version: str,
        file_data: bytes,
        filename: str,
        description: str,
        target_printers: Iterable[str],
        uploaded_by: Optional[str] = None,
        provider: Optional[str] = None,
    ) -> FirmwareUpdate:
        """Store the binary and record a pending catalog entry.

        Nothing is stored unless validation and the version check pass, and
        no catalog entry exists unless the bytes were stored.
        """
        version, description, targets = self.prepare_upload(
            version, file_data, filename, description, target_printers
        )
        locator = self.storage.store(file_data, filename, version, provider)
        return self.record_upload(locator, version, file_data, filename, description, targets, uploaded_by)

    def _release_quietly(self, locator: StorageLocator, version: str) -> None:
        # Used only while another error is already propagating
        try:
            self.storage.release(locator)
        except StorageError as e:
            logger.error(f"Failed to release stored bytes for firmware {version}: {e.message}")

    def delete_firmware(self, firmware_id: str) -> FirmwareUpdate:
        """Release the stored binary, then drop the catalog record"""
        firmware = self.get_firmware(firmware_id)

        if firmware.status == FirmwareStatus.DEPLOYING:
            raise ConflictError("Cannot delete update that is currently deploying")

        locator = StorageLocator(provider=firmware.storage_provider, references=firmware.storage_info or {})
        # A failed release keeps the record so the bytes can still be found
        self.storage.release(locator)

        self.session.delete(firmware)
        self.session.commit()

        logger.info(f"Firmware {firmware.version} ({firmware_id}) deleted")
        return firmware
