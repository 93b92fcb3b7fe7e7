"""Firmware deployment lifecycle.

    pending -> deploying -> completed | failed | cancelled

Each deploying entry is driven by one asyncio task that advances progress
in ticks and runs a single failure check. All state reads and writes for an
entry happen under that entry's lock, and every write re-checks that the
entry is still deploying, so once cancel() returns no tick can complete or
fail the entry.
"""

import asyncio
import logging
import random
from datetime import datetime
from typing import Callable, Dict, Optional, Tuple

from sqlmodel import Session

from app.core.config import settings
from app.core.errors import InvalidStateError, NotFoundError
from app.db.models import FirmwareStatus, FirmwareUpdate, HistoryStatus, Printer, PrinterStatus, UpdateHistory
from app.utils.time import format_duration, utcnow

logger = logging.getLogger(__name__)

FAILURE_MESSAGE = "Connection timeout during deployment"
# Length of the error_message columns
MAX_ERROR_LENGTH = 500


class DeploymentService:
    """Simulated over-the-air rollout of catalog entries to their target printers"""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        tick_interval: float = settings.DEPLOY_TICK_INTERVAL_SECONDS,
        progress_step: Tuple[int, int] = (settings.DEPLOY_PROGRESS_MIN_STEP, settings.DEPLOY_PROGRESS_MAX_STEP),
        failure_check_delay: float = settings.DEPLOY_FAILURE_CHECK_DELAY_SECONDS,
        failure_probability: float = settings.DEPLOY_FAILURE_PROBABILITY,
        record_history: bool = settings.HISTORY_AUTO_RECORD,
        rng: Optional[random.Random] = None,
    ):
        if progress_step[0] < 1 or progress_step[0] > progress_step[1]:
            raise ValueError(f"Invalid progress step range: {progress_step}")
        self.session_factory = session_factory
        self.tick_interval = tick_interval
        self.progress_step = progress_step
        self.failure_check_delay = failure_check_delay
        self.failure_probability = failure_probability
        self.record_history = record_history
        self.rng = rng or random.Random()
        self._tasks: Dict[str, asyncio.Task] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, firmware_id: str) -> asyncio.Lock:
        return self._locks.setdefault(firmware_id, asyncio.Lock())

    def _forget_if_settled(self, firmware_id: str, status: Optional[str]) -> None:
        # Missing and terminal entries are never written again, so their lock can go
        if status is None or FirmwareStatus(status).is_terminal:
            self._locks.pop(firmware_id, None)

    def is_running(self, firmware_id: str) -> bool:
        task = self._tasks.get(firmware_id)
        return task is not None and not task.done()

    async def deploy(self, firmware_id: str, initiated_by: Optional[str] = None) -> FirmwareUpdate:
        """Start deploying a pending entry"""
        async with self._lock_for(firmware_id):
            with self.session_factory() as session:
                firmware = session.get(FirmwareUpdate, firmware_id)
                if not firmware:
                    self._forget_if_settled(firmware_id, None)
                    raise NotFoundError("Firmware update not found")
                if firmware.status != FirmwareStatus.PENDING:
                    self._forget_if_settled(firmware_id, firmware.status)
                    raise InvalidStateError("Update is not in pending status")

                now = utcnow()
                firmware.status = FirmwareStatus.DEPLOYING.value
                firmware.progress = 0
                firmware.deployed_by = initiated_by
                firmware.deployment_started = now
                firmware.updated_at = now
                session.add(firmware)
                session.commit()
                session.refresh(firmware)

            self._tasks[firmware_id] = asyncio.create_task(
                self._drive(firmware_id), name=f"deploy-{firmware_id}"
            )

        logger.info(f"Deployment of firmware {firmware.version} started by {initiated_by}")
        return firmware

    async def cancel(self, firmware_id: str, cancelled_by: Optional[str] = None) -> FirmwareUpdate:
        """Stop a deploying entry; target printers keep their firmware"""
        async with self._lock_for(firmware_id):
            with self.session_factory() as session:
                firmware = session.get(FirmwareUpdate, firmware_id)
                if not firmware:
                    self._forget_if_settled(firmware_id, None)
                    raise NotFoundError("Firmware update not found")
                if firmware.status != FirmwareStatus.DEPLOYING:
                    self._forget_if_settled(firmware_id, firmware.status)
                    raise InvalidStateError("Update is not currently deploying")

                now = utcnow()
                firmware.status = FirmwareStatus.CANCELLED.value
                firmware.cancelled_by = cancelled_by
                firmware.cancelled_at = now
                firmware.updated_at = now
                session.add(firmware)
                session.commit()
                session.refresh(firmware)

            task = self._tasks.pop(firmware_id, None)
            if task:
                task.cancel()
            self._forget_if_settled(firmware_id, firmware.status)

        logger.info(f"Deployment of firmware {firmware.version} cancelled by {cancelled_by} at {firmware.progress}%")
        return firmware

    async def wait(self, firmware_id: str) -> None:
        """Wait until the entry's driver (if any) has stopped"""
        task = self._tasks.get(firmware_id)
        if task:
            await asyncio.gather(task, return_exceptions=True)

    async def shutdown(self) -> None:
        """Stop every driver; entries keep whatever state they reached"""
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info(f"Stopped {len(tasks)} deployment driver(s)")

    async def _drive(self, firmware_id: str) -> None:
        """Serial timeline of ticks plus one failure check for a single entry.

        When a tick and the failure check fall due together the tick runs
        first, so a deployment that reaches 100% at that instant completes.
        """
        loop = asyncio.get_running_loop()
        started = loop.time()
        next_tick = started + self.tick_interval
        failure_at = started + self.failure_check_delay
        failure_checked = self.failure_probability <= 0

        try:
            while True:
                due = next_tick if failure_checked else min(next_tick, failure_at)
                await asyncio.sleep(max(0.0, due - loop.time()))

                if next_tick <= due:
                    if not await self._tick(firmware_id):
                        return
                    next_tick += self.tick_interval

                if not failure_checked and failure_at <= due:
                    failure_checked = True
                    if not await self._check_failure(firmware_id):
                        return
        except asyncio.CancelledError:
            logger.debug(f"Deployment driver for {firmware_id} cancelled")
            raise
        except Exception as e:
            logger.error(f"Deployment driver for {firmware_id} crashed: {e}", exc_info=True)
            await self._abort(firmware_id, e)
        finally:
            if self._tasks.get(firmware_id) is asyncio.current_task():
                del self._tasks[firmware_id]

    async def _tick(self, firmware_id: str) -> bool:
        """Advance progress once; returns False when the driver should stop"""
        async with self._lock_for(firmware_id):
            with self.session_factory() as session:
                firmware = session.get(FirmwareUpdate, firmware_id)
                if not firmware or firmware.status != FirmwareStatus.DEPLOYING:
                    self._forget_if_settled(firmware_id, firmware.status if firmware else None)
                    return False

                now = utcnow()
                progress = min(100, (firmware.progress or 0) + self.rng.randint(*self.progress_step))
                if progress >= 100:
                    self._complete(session, firmware, now)
                    session.commit()
                    self._forget_if_settled(firmware_id, firmware.status)
                    logger.info(f"Firmware deployment completed for {firmware.version} ({firmware_id})")
                    return False

                firmware.progress = progress
                firmware.updated_at = now
                session.add(firmware)
                session.commit()
                logger.debug(f"Deployment progress for {firmware_id}: {progress}%")
                return True

    async def _check_failure(self, firmware_id: str) -> bool:
        """One-shot random failure; returns False when the driver should stop"""
        async with self._lock_for(firmware_id):
            with self.session_factory() as session:
                firmware = session.get(FirmwareUpdate, firmware_id)
                if not firmware or firmware.status != FirmwareStatus.DEPLOYING:
                    self._forget_if_settled(firmware_id, firmware.status if firmware else None)
                    return False
                if self.rng.random() >= self.failure_probability:
                    return True

                self._fail(session, firmware, FAILURE_MESSAGE, utcnow())
                session.commit()
                self._forget_if_settled(firmware_id, firmware.status)
                logger.warning(f"Firmware deployment failed for {firmware.version} ({firmware_id}): {FAILURE_MESSAGE}")
                return False

    async def _abort(self, firmware_id: str, error: Exception) -> None:
        async with self._lock_for(firmware_id):
            try:
                with self.session_factory() as session:
                    firmware = session.get(FirmwareUpdate, firmware_id)
                    if firmware and firmware.status == FirmwareStatus.DEPLOYING:
                        self._fail(session, firmware, f"Deployment aborted: {error}", utcnow())
                        session.commit()
                        self._forget_if_settled(firmware_id, firmware.status)
            except Exception as e:
                logger.error(f"Could not mark firmware {firmware_id} as failed: {e}", exc_info=True)

    def _complete(self, session: Session, firmware: FirmwareUpdate, now: datetime) -> None:
        """Mark completed and move every target printer to the new version, in one transaction"""
        firmware.status = FirmwareStatus.COMPLETED.value
        firmware.progress = 100
        firmware.completed_at = now
        firmware.updated_at = now
        session.add(firmware)

        duration = format_duration((now - firmware.deployment_started).total_seconds()) if firmware.deployment_started else "0m 0s"
        for printer_id in firmware.target_printers:
            printer = session.get(Printer, printer_id)
            if not printer:
                logger.warning(f"Target printer {printer_id} of firmware {firmware.version} no longer exists")
                continue

            from_version = printer.firmware_version
            printer.firmware_version = firmware.version
            printer.status = PrinterStatus.ONLINE.value
            printer.update_progress = None
            printer.last_seen = now
            session.add(printer)

            if self.record_history:
                session.add(UpdateHistory(
                    printer_id=printer.id,
                    printer_name=printer.name,
                    from_version=from_version,
                    to_version=firmware.version,
                    timestamp=now,
                    status=HistoryStatus.SUCCESS.value,
                    duration=duration,
                    initiated_by=firmware.deployed_by,
                    notes=f"Deployment of firmware {firmware.version}",
                    firmware_id=firmware.id,
                ))

    def _fail(self, session: Session, firmware: FirmwareUpdate, message: str, now: datetime) -> None:
        message = message[:MAX_ERROR_LENGTH]
        firmware.status = FirmwareStatus.FAILED.value
        firmware.error_message = message
        firmware.failed_at = now
        firmware.updated_at = now
        session.add(firmware)

        if not self.record_history:
            return
        duration = format_duration((now - firmware.deployment_started).total_seconds()) if firmware.deployment_started else "0m 0s"
        for printer_id in firmware.target_printers:
            printer = session.get(Printer, printer_id)
            if not printer:
                continue
            session.add(UpdateHistory(
                printer_id=printer.id,
                printer_name=printer.name,
                from_version=printer.firmware_version,
                to_version=firmware.version,
                timestamp=now,
                status=HistoryStatus.FAILED.value,
                duration=duration,
                initiated_by=firmware.deployed_by,
                notes=f"Deployment of firmware {firmware.version} failed",
                error_message=message,
                firmware_id=firmware.id,
            ))
