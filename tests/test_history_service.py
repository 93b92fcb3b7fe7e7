import pytest

from app.core.errors import NotFoundError, ValidationError
from app.services.history.history_service import HistoryService


def make_entry(**overrides):
    data = {
        "printer_id": "1",
        "printer_name": "Concrete Printer A1",
        "from_version": "2.1.4",
        "to_version": "2.2.0",
        "status": "success",
        "duration": "7m 10s",
    }
    data.update(overrides)
    return data


def test_list_newest_first(seeded):
    entries, pagination = HistoryService(seeded).list_entries()
    assert [e.printer_id for e in entries] == ["1", "4", "3", "2"]
    assert pagination.total == 4
    assert pagination.has_more is False


def test_filter_by_printer_and_status(seeded):
    service = HistoryService(seeded)

    entries, _ = service.list_entries(printer_id="3")
    assert len(entries) == 1
    assert entries[0].status == "failed"
    assert entries[0].error_message == "Network timeout after 3 minutes"

    entries, _ = service.list_entries(status="failed")
    assert [e.printer_id for e in entries] == ["3"]

    entries, pagination = service.list_entries(printer_id="3", status="success")
    assert entries == []
    assert pagination.total == 0


def test_pagination(seeded):
    service = HistoryService(seeded)
    first, pagination = service.list_entries(limit=2, offset=0)
    assert len(first) == 2
    assert pagination.total == 4
    assert pagination.has_more is True

    second, pagination = service.list_entries(limit=2, offset=2)
    assert [e.printer_id for e in second] == ["3", "2"]
    assert pagination.has_more is False


def test_invalid_page_bounds(seeded):
    service = HistoryService(seeded)
    with pytest.raises(ValidationError):
        service.list_entries(limit=0)
    with pytest.raises(ValidationError):
        service.list_entries(offset=-1)


def test_append_stamps_time_and_initiator(seeded):
    service = HistoryService(seeded)
    entry = service.append(make_entry(notes="manual"), initiated_by="admin")
    assert entry.initiated_by == "admin"
    assert entry.notes == "manual"

    entries, _ = service.list_entries()
    assert entries[0].id == entry.id


def test_append_requires_fields(session):
    service = HistoryService(session)
    with pytest.raises(ValidationError):
        service.append(make_entry(printer_id=None))
    with pytest.raises(ValidationError):
        service.append(make_entry(status="exploded"))
    assert service.list_entries()[1].total == 0


def test_update_entry_only_changes_correctable_fields(seeded):
    service = HistoryService(seeded)
    entry = service.list_entries(printer_id="2")[0][0]

    updated = service.update_entry(entry.id, {"notes": "Rolled back by operator", "printer_id": "9"},
                                   updated_by="admin")
    assert updated.notes == "Rolled back by operator"
    assert updated.printer_id == "2"
    assert updated.updated_by == "admin"
    assert updated.updated_at is not None

    with pytest.raises(ValidationError):
        service.update_entry(entry.id, {"status": "bogus"})


def test_delete_entry(seeded):
    service = HistoryService(seeded)
    entry = service.list_entries(printer_id="4")[0][0]
    service.delete_entry(entry.id)
    with pytest.raises(NotFoundError):
        service.get_entry(entry.id)


def test_stats(seeded):
    stats = HistoryService(seeded).get_stats()
    assert stats.total == 4
    assert stats.successful == 2
    assert stats.failed == 1
    assert stats.rolled_back == 1
    assert stats.success_rate == 50
    assert [e.printer_id for e in stats.recent_updates] == ["1", "4", "3", "2"]


def test_success_rate_rounds_half_up(session):
    service = HistoryService(session)
    service.append(make_entry())
    service.append(make_entry(status="failed"))
    service.append(make_entry(status="failed"))
    # 1/3 -> 33
    assert service.get_stats().success_rate == 33
    service.append(make_entry())
    service.append(make_entry())
    service.append(make_entry(status="rolled_back"))
    service.append(make_entry(status="rolled_back"))
    service.append(make_entry(status="rolled_back"))
    # 3/8 = 37.5 -> 38
    assert service.get_stats().success_rate == 38


def test_stats_of_empty_log(session):
    stats = HistoryService(session).get_stats()
    assert stats.total == 0
    assert stats.success_rate == 0
    assert stats.recent_updates == []
