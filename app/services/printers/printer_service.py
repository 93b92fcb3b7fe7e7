# app/services/printers/printer_service.py
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.db.models import FirmwareStatus, FirmwareUpdate, Printer, PrinterStatus
from app.schemas.printers import PrinterResponse, PrinterStats
from app.utils.time import relative_time, utcnow

logger = logging.getLogger(__name__)

# Fields a client may change; firmware_version and id are owned by deployments
MUTABLE_FIELDS = ("name", "location", "status", "battery_level", "temperature", "update_progress")
REQUIRED_FIELDS = ("name", "model", "location")


def to_response(printer: Printer, now: Optional[datetime] = None) -> PrinterResponse:
    """Project a printer row for the API, rendering last_seen relative to now"""
    return PrinterResponse(
        id=printer.id,
        name=printer.name,
        model=printer.model,
        location=printer.location,
        status=printer.status,
        firmware_version=printer.firmware_version,
        last_seen=relative_time(printer.last_seen, now),
        last_seen_at=printer.last_seen,
        battery_level=printer.battery_level,
        temperature=printer.temperature,
        update_progress=printer.update_progress,
        ip_address=printer.ip_address,
        serial_number=printer.serial_number,
    )


def _check_percent(field: str, value: Any) -> None:
    if value is None:
        return
    if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= 100:
        raise ValidationError(f"{field} must be an integer between 0 and 100")


class PrinterService:
    """Fleet inventory and live printer status"""

    def __init__(self, session: Session):
        self.session = session

    def list_printers(self) -> List[Printer]:
        statement = select(Printer).order_by(Printer.created_at, Printer.id)
        return list(self.session.exec(statement).all())

    def get_printer(self, printer_id: str) -> Printer:
        printer = self.session.get(Printer, printer_id)
        if not printer:
            raise NotFoundError("Printer not found")
        return printer

    def create_printer(self, data: Dict[str, Any]) -> Printer:
        """Register a printer; it starts offline on firmware 1.0.0"""
        missing = [field for field in REQUIRED_FIELDS if not data.get(field)]
        if missing:
            raise ValidationError("Name, model, and location are required")

        printer = Printer(
            name=data["name"],
            model=data["model"],
            location=data["location"],
            status=PrinterStatus.OFFLINE.value,
            firmware_version="1.0.0",
            battery_level=0,
            temperature=20.0,
            ip_address=data.get("ip_address") or "",
            serial_number=data.get("serial_number") or "",
        )
        if data.get("id"):
            printer.id = str(data["id"])
            if self.session.get(Printer, printer.id):
                raise ConflictError(f"Printer {printer.id} already exists")

        self.session.add(printer)
        self.session.commit()
        self.session.refresh(printer)

        logger.info(f"Printer {printer.id} ({printer.name}) registered")
        return printer

    def update_printer(self, printer_id: str, changes: Dict[str, Any]) -> Printer:
        """Apply allow-listed changes; unknown keys are ignored"""
        printer = self.get_printer(printer_id)
        updates = {key: value for key, value in changes.items() if key in MUTABLE_FIELDS}

        if "name" in updates and not updates["name"]:
            raise ValidationError("name cannot be empty")
        if "location" in updates and not updates["location"]:
            raise ValidationError("location cannot be empty")
        if "status" in updates:
            try:
                updates["status"] = PrinterStatus(updates["status"]).value
            except ValueError:
                raise ValidationError(
                    f"Invalid status '{updates['status']}'. Use one of: {', '.join(s.value for s in PrinterStatus)}"
                )
        _check_percent("battery_level", updates.get("battery_level"))
        _check_percent("update_progress", updates.get("update_progress"))

        status = updates.get("status", printer.status)
        if updates.get("update_progress") is not None and status != PrinterStatus.UPDATING:
            raise ValidationError("update_progress can only be set while the printer is updating")

        for key, value in updates.items():
            setattr(printer, key, value)
        if printer.status != PrinterStatus.UPDATING:
            printer.update_progress = None
        printer.last_seen = utcnow()

        self.session.add(printer)
        self.session.commit()
        self.session.refresh(printer)

        logger.info(f"Printer {printer_id} updated: {sorted(updates)}")
        return printer

    def delete_printer(self, printer_id: str) -> Printer:
        """Remove a printer unless an in-flight deployment targets it"""
        printer = self.get_printer(printer_id)

        deploying = self.session.exec(
            select(FirmwareUpdate).where(FirmwareUpdate.status == FirmwareStatus.DEPLOYING.value)
        ).all()
        blocking = [fw.version for fw in deploying if printer_id in fw.target_printers]
        if blocking:
            raise ConflictError(
                f"Printer {printer_id} is a target of firmware {', '.join(blocking)} which is currently deploying"
            )

        self.session.delete(printer)
        self.session.commit()

        logger.info(f"Printer {printer_id} ({printer.name}) deleted")
        return printer

    def get_stats(self) -> PrinterStats:
        printers = self.list_printers()
        total = len(printers)

        def count(status: PrinterStatus) -> int:
            return sum(1 for p in printers if p.status == status)

        return PrinterStats(
            total=total,
            online=count(PrinterStatus.ONLINE),
            offline=count(PrinterStatus.OFFLINE),
            updating=count(PrinterStatus.UPDATING),
            error=count(PrinterStatus.ERROR),
            average_battery=round(sum(p.battery_level or 0 for p in printers) / total) if total else 0,
            average_temperature=round(sum(p.temperature or 0 for p in printers) / total) if total else 0,
        )
