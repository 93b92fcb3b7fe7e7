from datetime import timedelta

import pytest
from sqlmodel import Session

from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.db.models import FirmwareUpdate
from app.services.printers.printer_service import PrinterService, to_response
from app.utils.time import utcnow


def test_list_printers_in_registration_order(seeded):
    printers = PrinterService(seeded).list_printers()
    assert [p.id for p in printers] == ["1", "2", "3", "4"]


def test_to_response_renders_relative_last_seen(seeded):
    service = PrinterService(seeded)
    now = utcnow()

    offline = to_response(service.get_printer("3"), now=now)
    assert offline.last_seen == "2 hours ago"

    printer = service.get_printer("1")
    printer.last_seen = now - timedelta(seconds=20)
    assert to_response(printer, now=now).last_seen == "Just now"
    printer.last_seen = now - timedelta(minutes=1)
    assert to_response(printer, now=now).last_seen == "1 minute ago"
    printer.last_seen = now - timedelta(days=3)
    assert to_response(printer, now=now).last_seen == "3 days ago"


def test_get_unknown_printer_raises(seeded):
    with pytest.raises(NotFoundError):
        PrinterService(seeded).get_printer("nope")


def test_create_printer_applies_defaults(session):
    printer = PrinterService(session).create_printer({
        "name": "Concrete Printer E5",
        "model": "ConcreteBot Pro",
        "location": "Site D",
        "ip_address": "192.168.1.105",
    })
    assert printer.id
    assert printer.status == "offline"
    assert printer.firmware_version == "1.0.0"
    assert printer.battery_level == 0
    assert printer.temperature == 20.0
    assert printer.update_progress is None


def test_create_printer_requires_name_model_location(session):
    service = PrinterService(session)
    with pytest.raises(ValidationError):
        service.create_printer({"name": "X", "model": "Y"})
    assert service.list_printers() == []


def test_create_printer_with_existing_id_conflicts(seeded):
    with pytest.raises(ConflictError):
        PrinterService(seeded).create_printer({"id": "1", "name": "Dup", "model": "M", "location": "L"})


def test_update_printer_ignores_unknown_and_owned_fields(seeded):
    printer = PrinterService(seeded).update_printer("1", {
        "location": "Site A - Building 3",
        "firmware_version": "9.9.9",
        "id": "99",
        "colour": "grey",
    })
    assert printer.id == "1"
    assert printer.location == "Site A - Building 3"
    assert printer.firmware_version == "2.1.4"


def test_update_printer_validates_status_and_ranges(seeded):
    service = PrinterService(seeded)
    with pytest.raises(ValidationError):
        service.update_printer("1", {"status": "sleeping"})
    with pytest.raises(ValidationError):
        service.update_printer("1", {"battery_level": 101})
    with pytest.raises(ValidationError):
        service.update_printer("1", {"update_progress": -1})


def test_update_progress_only_while_updating(seeded):
    service = PrinterService(seeded)
    with pytest.raises(ValidationError):
        service.update_printer("1", {"update_progress": 10})

    printer = service.update_printer("1", {"status": "updating", "update_progress": 10})
    assert printer.update_progress == 10

    printer = service.update_printer("1", {"status": "online"})
    assert printer.update_progress is None


def test_update_refreshes_last_seen(seeded):
    service = PrinterService(seeded)
    before = service.get_printer("3").last_seen
    printer = service.update_printer("3", {"status": "online"})
    assert printer.last_seen > before


def test_delete_printer(seeded):
    service = PrinterService(seeded)
    deleted = service.delete_printer("4")
    assert deleted.name == "Concrete Printer D4"
    with pytest.raises(NotFoundError):
        service.get_printer("4")


def test_delete_printer_targeted_by_deploying_update_conflicts(seeded):
    seeded.add(FirmwareUpdate(version="2.3.0", filename="fw.bin", description="d",
                              status="deploying", progress=30, target_printers=["1", "2"]))
    seeded.commit()
    service = PrinterService(seeded)

    with pytest.raises(ConflictError):
        service.delete_printer("2")
    # Printers outside the deployment can still go
    service.delete_printer("3")
    assert [p.id for p in service.list_printers()] == ["1", "2", "4"]


def test_stats(seeded):
    stats = PrinterService(seeded).get_stats()
    assert stats.total == 4
    assert stats.online == 2
    assert stats.offline == 1
    assert stats.updating == 1
    assert stats.error == 0
    assert stats.average_battery == 68
    assert stats.average_temperature == 22


def test_stats_of_empty_fleet(session):
    stats = PrinterService(session).get_stats()
    assert stats.total == 0
    assert stats.average_battery == 0


def test_naive_utc_timestamps_round_trip(engine):
    with Session(engine) as s:
        printer_id = PrinterService(s).create_printer({"name": "E5", "model": "ConcreteBot Pro", "location": "Site D"}).id

    with Session(engine) as s:
        printer = PrinterService(s).get_printer(printer_id)
        assert printer.last_seen.tzinfo is None
        assert printer.created_at.tzinfo is None
        assert abs((utcnow() - printer.last_seen).total_seconds()) < 60
