import asyncio
import random

import pytest
from sqlmodel import Session, select

from app.core.errors import InvalidStateError, NotFoundError
from app.db.models import FirmwareStatus, FirmwareUpdate, Printer, UpdateHistory
from app.services.firmware.deployment_service import FAILURE_MESSAGE, MAX_ERROR_LENGTH, DeploymentService


def add_update(session, version="2.3.0", targets=("1", "2")):
    firmware = FirmwareUpdate(version=version, filename=f"concretebot_v{version}.bin", file_size=3,
                              description="Improved layer adhesion", target_printers=list(targets))
    session.add(firmware)
    session.commit()
    session.refresh(firmware)
    return firmware.id


def make_service(engine, **overrides):
    options = dict(
        tick_interval=0.01,
        progress_step=(50, 50),
        failure_check_delay=10.0,
        failure_probability=0.0,
        record_history=True,
        rng=random.Random(7),
    )
    options.update(overrides)
    return DeploymentService(session_factory=lambda: Session(engine), **options)


def fetch(engine, model, key):
    with Session(engine) as s:
        return s.get(model, key)


def history_for(engine, firmware_id):
    with Session(engine) as s:
        statement = select(UpdateHistory).where(UpdateHistory.firmware_id == firmware_id)
        return list(s.exec(statement).all())


def test_invalid_progress_step():
    with pytest.raises(ValueError):
        DeploymentService(session_factory=None, progress_step=(0, 10))
    with pytest.raises(ValueError):
        DeploymentService(session_factory=None, progress_step=(20, 5))


@pytest.mark.asyncio
async def test_deploy_completes_and_updates_targets(engine, seeded):
    firmware_id = add_update(seeded)
    service = make_service(engine)

    firmware = await service.deploy(firmware_id, initiated_by="admin")
    assert firmware.status == "deploying"
    assert firmware.progress == 0
    assert firmware.deployed_by == "admin"
    assert firmware.deployment_started is not None

    await service.wait(firmware_id)

    firmware = fetch(engine, FirmwareUpdate, firmware_id)
    assert firmware.status == "completed"
    assert firmware.progress == 100
    assert firmware.completed_at is not None
    for printer_id in ("1", "2"):
        printer = fetch(engine, Printer, printer_id)
        assert printer.firmware_version == "2.3.0"
        assert printer.status == "online"
        assert printer.update_progress is None
    # Non-targets are untouched
    assert fetch(engine, Printer, "3").firmware_version == "2.0.8"
    assert fetch(engine, Printer, "4").firmware_version == "2.1.4"

    rows = history_for(engine, firmware_id)
    assert sorted(r.printer_id for r in rows) == ["1", "2"]
    assert {r.status for r in rows} == {"success"}
    assert {r.from_version for r in rows} == {"2.1.4", "2.1.3"}
    assert all(r.to_version == "2.3.0" and r.initiated_by == "admin" for r in rows)
    assert not service.is_running(firmware_id)


@pytest.mark.asyncio
async def test_progress_is_monotonic_and_capped(engine, seeded):
    firmware_id = add_update(seeded)
    service = make_service(engine, tick_interval=0.02, progress_step=(5, 20))
    await service.deploy(firmware_id)

    seen = []
    while service.is_running(firmware_id):
        seen.append(fetch(engine, FirmwareUpdate, firmware_id).progress)
        await asyncio.sleep(0.005)
    seen.append(fetch(engine, FirmwareUpdate, firmware_id).progress)

    assert seen == sorted(seen)
    assert all(0 <= p <= 100 for p in seen)
    assert seen[-1] == 100


@pytest.mark.asyncio
async def test_deploy_twice_is_invalid(engine, seeded):
    firmware_id = add_update(seeded)
    service = make_service(engine, tick_interval=1.0)

    await service.deploy(firmware_id)
    with pytest.raises(InvalidStateError):
        await service.deploy(firmware_id)
    await service.shutdown()


@pytest.mark.asyncio
async def test_concurrent_deploys_start_one_driver(engine, seeded):
    firmware_id = add_update(seeded)
    service = make_service(engine, tick_interval=1.0)

    results = await asyncio.gather(
        service.deploy(firmware_id), service.deploy(firmware_id), return_exceptions=True
    )

    assert sum(isinstance(r, InvalidStateError) for r in results) == 1
    assert service.is_running(firmware_id)
    await service.shutdown()


@pytest.mark.asyncio
async def test_unknown_entry(engine, seeded):
    service = make_service(engine)
    with pytest.raises(NotFoundError):
        await service.deploy("missing")
    with pytest.raises(NotFoundError):
        await service.cancel("missing")


@pytest.mark.asyncio
async def test_cancel_requires_deploying(engine, seeded):
    firmware_id = add_update(seeded)
    service = make_service(engine)

    with pytest.raises(InvalidStateError):
        await service.cancel(firmware_id)
    assert fetch(engine, FirmwareUpdate, firmware_id).status == "pending"


@pytest.mark.asyncio
async def test_cancel_mid_deploy_leaves_printers_alone(engine, seeded):
    firmware_id = add_update(seeded)
    service = make_service(engine, tick_interval=0.02, progress_step=(10, 10))

    await service.deploy(firmware_id)
    await asyncio.sleep(0.07)
    firmware = await service.cancel(firmware_id, cancelled_by="operator")
    progress_at_cancel = firmware.progress

    assert firmware.status == "cancelled"
    assert firmware.cancelled_by == "operator"
    assert firmware.cancelled_at is not None
    assert 0 < progress_at_cancel < 100

    await asyncio.sleep(0.1)
    firmware = fetch(engine, FirmwareUpdate, firmware_id)
    assert firmware.status == "cancelled"
    assert firmware.progress == progress_at_cancel
    assert fetch(engine, Printer, "1").firmware_version == "2.1.4"
    assert fetch(engine, Printer, "2").firmware_version == "2.1.3"
    assert history_for(engine, firmware_id) == []
    assert not service.is_running(firmware_id)


@pytest.mark.asyncio
async def test_terminal_entries_reject_deploy_and_cancel(engine, seeded):
    firmware_id = add_update(seeded)
    service = make_service(engine)
    await service.deploy(firmware_id)
    await service.wait(firmware_id)

    with pytest.raises(InvalidStateError):
        await service.deploy(firmware_id)
    with pytest.raises(InvalidStateError):
        await service.cancel(firmware_id)
    assert fetch(engine, FirmwareUpdate, firmware_id).status == "completed"


@pytest.mark.asyncio
async def test_failure_check_fails_deployment(engine, seeded):
    firmware_id = add_update(seeded)
    service = make_service(engine, tick_interval=1.0, failure_check_delay=0.01, failure_probability=1.0)

    await service.deploy(firmware_id, initiated_by="admin")
    await service.wait(firmware_id)

    firmware = fetch(engine, FirmwareUpdate, firmware_id)
    assert firmware.status == "failed"
    assert firmware.error_message == FAILURE_MESSAGE
    assert firmware.failed_at is not None
    assert fetch(engine, Printer, "1").firmware_version == "2.1.4"

    rows = history_for(engine, firmware_id)
    assert sorted(r.printer_id for r in rows) == ["1", "2"]
    assert {r.status for r in rows} == {"failed"}
    assert {r.error_message for r in rows} == {FAILURE_MESSAGE}

    with pytest.raises(InvalidStateError):
        await service.cancel(firmware_id)


@pytest.mark.asyncio
async def test_completion_wins_when_due_with_failure_check(engine, seeded):
    firmware_id = add_update(seeded)
    service = make_service(engine, tick_interval=0.02, progress_step=(100, 100),
                           failure_check_delay=0.02, failure_probability=1.0)

    await service.deploy(firmware_id)
    await service.wait(firmware_id)

    assert fetch(engine, FirmwareUpdate, firmware_id).status == "completed"


@pytest.mark.asyncio
async def test_failure_check_runs_once(engine, seeded):
    firmware_id = add_update(seeded)

    class ScriptedRandom:
        random_calls = 0

        def randint(self, low, high):
            return low

        def random(self):
            self.random_calls += 1
            return 0.99

    rng = ScriptedRandom()

    service = make_service(engine, tick_interval=0.01, progress_step=(10, 10),
                           failure_check_delay=0.015, failure_probability=0.5, rng=rng)
    await service.deploy(firmware_id)
    await service.wait(firmware_id)

    assert rng.random_calls == 1
    assert fetch(engine, FirmwareUpdate, firmware_id).status == "completed"


@pytest.mark.asyncio
async def test_driver_crash_marks_failed(engine, seeded):
    firmware_id = add_update(seeded)
    service = make_service(engine)

    async def broken_tick(_):
        raise RuntimeError("printer link dropped")

    service._tick = broken_tick
    await service.deploy(firmware_id)
    await service.wait(firmware_id)

    firmware = fetch(engine, FirmwareUpdate, firmware_id)
    assert firmware.status == "failed"
    assert "printer link dropped" in firmware.error_message


@pytest.mark.asyncio
async def test_history_recording_can_be_disabled(engine, seeded):
    firmware_id = add_update(seeded)
    service = make_service(engine, record_history=False)
    await service.deploy(firmware_id)
    await service.wait(firmware_id)

    assert fetch(engine, FirmwareUpdate, firmware_id).status == "completed"
    assert history_for(engine, firmware_id) == []


@pytest.mark.asyncio
async def test_missing_target_printer_is_skipped(engine, seeded):
    firmware_id = add_update(seeded, targets=("1", "gone"))
    service = make_service(engine)
    await service.deploy(firmware_id)
    await service.wait(firmware_id)

    assert fetch(engine, FirmwareUpdate, firmware_id).status == "completed"
    assert fetch(engine, Printer, "1").firmware_version == "2.3.0"
    assert [r.printer_id for r in history_for(engine, firmware_id)] == ["1"]


@pytest.mark.asyncio
async def test_shutdown_stops_drivers(engine, seeded):
    first = add_update(seeded, version="2.3.0")
    second = add_update(seeded, version="2.4.0", targets=("3",))
    service = make_service(engine, tick_interval=1.0)
    await service.deploy(first)
    await service.deploy(second)

    await service.shutdown()

    assert not service.is_running(first)
    assert not service.is_running(second)
    assert fetch(engine, FirmwareUpdate, first).status == "deploying"


def test_terminal_statuses():
    assert [s.value for s in FirmwareStatus if s.is_terminal] == ["completed", "failed", "cancelled"]


@pytest.mark.asyncio
async def test_locks_are_dropped_once_entries_settle(engine, seeded):
    completed_id = add_update(seeded, version="2.3.0")
    cancelled_id = add_update(seeded, version="2.4.0", targets=("3",))
    service = make_service(engine)
    slow = make_service(engine, tick_interval=1.0)

    await service.deploy(completed_id)
    assert completed_id in service._locks
    await service.wait(completed_id)
    assert completed_id not in service._locks

    await slow.deploy(cancelled_id)
    assert cancelled_id in slow._locks
    await slow.cancel(cancelled_id)
    assert slow._locks == {}

    with pytest.raises(NotFoundError):
        await service.deploy("missing")
    with pytest.raises(InvalidStateError):
        await service.cancel(completed_id)
    assert service._locks == {}


@pytest.mark.asyncio
async def test_long_crash_messages_fit_the_column(engine, seeded):
    firmware_id = add_update(seeded)
    service = make_service(engine)

    async def broken_tick(_):
        raise RuntimeError("x" * 2000)

    service._tick = broken_tick
    await service.deploy(firmware_id)
    await service.wait(firmware_id)

    firmware = fetch(engine, FirmwareUpdate, firmware_id)
    assert firmware.status == "failed"
    assert len(firmware.error_message) == MAX_ERROR_LENGTH
    assert firmware.error_message.startswith("Deployment aborted: xxx")
    assert all(len(r.error_message) == MAX_ERROR_LENGTH for r in history_for(engine, firmware_id))
    assert firmware_id not in service._locks
