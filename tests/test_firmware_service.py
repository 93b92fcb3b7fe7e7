import hashlib

import pytest
from sqlalchemy.exc import IntegrityError

from app.core.errors import ConflictError, NotFoundError, StorageError, ValidationError
from app.services.firmware.firmware_service import FirmwareService


def upload(service, version="2.3.0", data=b"\x7fFIRMWARE", filename="concretebot_v2.3.0.bin",
           description="Improved layer adhesion", targets=("1", "2"), **kwargs):
    return service.upload_firmware(
        version=version,
        file_data=data,
        filename=filename,
        description=description,
        target_printers=list(targets),
        **kwargs
    )


def test_upload_creates_pending_entry(seeded, storage, local_backend):
    firmware = upload(FirmwareService(seeded, storage), uploaded_by="admin")

    assert firmware.status == "pending"
    assert firmware.progress is None
    assert firmware.target_printers == ["1", "2"]
    assert firmware.file_size == len(b"\x7fFIRMWARE")
    assert firmware.checksum == "sha256:" + hashlib.sha256(b"\x7fFIRMWARE").hexdigest()
    assert firmware.storage_provider == "local"
    assert firmware.storage_info == {"local": {"key": "2.3.0/concretebot_v2.3.0.bin"}}
    assert firmware.uploaded_by == "admin"
    assert local_backend.stored == ["2.3.0/concretebot_v2.3.0.bin"]


def test_upload_dedupes_targets(seeded, storage):
    firmware = upload(FirmwareService(seeded, storage), targets=("2", "1", "2"))
    assert firmware.target_printers == ["2", "1"]


def test_upload_to_both_backends(seeded, storage, local_backend, gcs_backend):
    firmware = upload(FirmwareService(seeded, storage), provider="both")
    assert firmware.storage_provider == "both"
    assert set(firmware.storage_info) == {"local", "gcs"}
    assert local_backend.objects and gcs_backend.objects


def test_duplicate_version_is_rejected_before_storing(seeded, storage, local_backend):
    service = FirmwareService(seeded, storage)
    upload(service)

    with pytest.raises(ConflictError):
        upload(service, filename="other.bin")

    assert local_backend.stored == ["2.3.0/concretebot_v2.3.0.bin"]
    assert [f.version for f in service.list_firmware()].count("2.3.0") == 1


def test_seeded_version_conflicts(seeded, storage):
    with pytest.raises(ConflictError):
        upload(FirmwareService(seeded, storage), version="2.2.0")


@pytest.mark.parametrize("overrides", [
    {"version": ""},
    {"description": "   "},
    {"version": "v2"},
    {"targets": ()},
    {"filename": "firmware.zip"},
    {"filename": ""},
    {"data": b""},
    {"targets": ("1", "42")},
])
def test_invalid_uploads_store_nothing(seeded, storage, local_backend, overrides):
    service = FirmwareService(seeded, storage)
    with pytest.raises(ValidationError):
        upload(service, **overrides)
    assert local_backend.stored == []
    assert service.get_firmware_by_version("2.3.0") is None


def test_oversized_upload_is_rejected(seeded, storage, monkeypatch):
    from app.core.config import settings
    monkeypatch.setattr(settings, "FIRMWARE_MAX_SIZE", 4)
    with pytest.raises(ValidationError):
        upload(FirmwareService(seeded, storage), data=b"12345")


def test_hex_files_are_accepted(seeded, storage):
    firmware = upload(FirmwareService(seeded, storage), filename="concretebot.HEX")
    assert firmware.filename == "concretebot.HEX"


def test_storage_failure_creates_no_entry(seeded, storage, local_backend, gcs_backend):
    gcs_backend.fail_store = True
    service = FirmwareService(seeded, storage)

    with pytest.raises(StorageError):
        upload(service, provider="both")

    assert service.get_firmware_by_version("2.3.0") is None
    # The local copy was compensated
    assert local_backend.objects == {}


def test_unknown_provider(seeded, storage):
    with pytest.raises(ValidationError):
        upload(FirmwareService(seeded, storage), provider="dropbox")


def test_list_newest_upload_first(seeded, storage):
    service = FirmwareService(seeded, storage)
    upload(service)
    assert [f.version for f in service.list_firmware()] == ["2.3.0", "2.2.0", "2.1.4"]


def test_delete_releases_storage(seeded, storage, local_backend):
    service = FirmwareService(seeded, storage)
    firmware = upload(service)

    deleted = service.delete_firmware(firmware.id)

    assert deleted.version == "2.3.0"
    assert local_backend.released == ["2.3.0/concretebot_v2.3.0.bin"]
    with pytest.raises(NotFoundError):
        service.get_firmware(firmware.id)


def test_delete_keeps_record_when_release_fails(seeded, storage, local_backend):
    service = FirmwareService(seeded, storage)
    firmware = upload(service)
    local_backend.fail_release = True

    with pytest.raises(StorageError):
        service.delete_firmware(firmware.id)
    assert service.get_firmware(firmware.id).version == "2.3.0"


def test_delete_deploying_entry_conflicts(seeded, storage):
    service = FirmwareService(seeded, storage)
    firmware = upload(service)
    firmware.status = "deploying"
    seeded.add(firmware)
    seeded.commit()

    with pytest.raises(ConflictError):
        service.delete_firmware(firmware.id)
    assert service.get_firmware(firmware.id).status == "deploying"


def test_delete_seeded_entry_without_stored_bytes(seeded, storage):
    service = FirmwareService(seeded, storage)
    seeded_entry = service.get_firmware_by_version("2.1.4")
    service.delete_firmware(seeded_entry.id)
    assert service.get_firmware_by_version("2.1.4") is None


def test_failed_insert_releases_stored_bytes(seeded, storage, local_backend, monkeypatch):
    service = FirmwareService(seeded, storage)

    def failing_commit():
        raise IntegrityError("INSERT INTO firmware_updates", {}, Exception("UNIQUE constraint failed"))

    monkeypatch.setattr(seeded, "commit", failing_commit)
    with pytest.raises(ConflictError):
        upload(service)
    monkeypatch.undo()

    assert local_backend.stored == ["2.3.0/concretebot_v2.3.0.bin"]
    assert local_backend.objects == {}
    assert service.get_firmware_by_version("2.3.0") is None
