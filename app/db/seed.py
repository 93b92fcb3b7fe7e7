"""Demo fleet, catalog and history loaded into an empty database."""

import logging
from datetime import datetime, timedelta

from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from app.core.config import settings
from app.db.models import FirmwareUpdate, Printer, UpdateHistory, UserRole
from app.services.auth.auth_service import AuthService
from app.utils.time import utcnow

logger = logging.getLogger(__name__)


def seed_users(session: Session) -> None:
    auth_service = AuthService(session)
    accounts = [
        (settings.ADMIN_USER, settings.ADMIN_PASS, UserRole.ADMIN, settings.ADMIN_EMAIL),
        (settings.OPERATOR_USER, settings.OPERATOR_PASS, UserRole.OPERATOR, settings.OPERATOR_EMAIL),
    ]
    for username, password, role, email in accounts:
        if not auth_service.get_user_by_username(username):
            auth_service.create_user(username, password, role, email)


def seed_demo_data(session: Session) -> None:
    if session.exec(select(Printer)).first():
        return

    now = utcnow()
    printers = [
        Printer(id="1", name="Concrete Printer A1", model="ConcreteBot 3000", location="Site A - Building 1",
                status="online", firmware_version="2.1.4", last_seen=now, battery_level=85, temperature=22,
                ip_address="192.168.1.101", serial_number="CB3000-001", created_at=now),
        Printer(id="2", name="Concrete Printer B2", model="ConcreteBot 3000", location="Site B - Foundation",
                status="updating", firmware_version="2.1.3", last_seen=now, battery_level=92, temperature=24,
                update_progress=45, ip_address="192.168.1.102", serial_number="CB3000-002",
                created_at=now + timedelta(microseconds=1)),
        Printer(id="3", name="Concrete Printer C3", model="ConcreteBot Pro", location="Site C - Walls",
                status="offline", firmware_version="2.0.8", last_seen=now - timedelta(hours=2), battery_level=15,
                temperature=19, ip_address="192.168.1.103", serial_number="CBPRO-001",
                created_at=now + timedelta(microseconds=2)),
        Printer(id="4", name="Concrete Printer D4", model="ConcreteBot 3000", location="Site A - Building 2",
                status="online", firmware_version="2.1.4", last_seen=now, battery_level=78, temperature=23,
                ip_address="192.168.1.104", serial_number="CB3000-004", created_at=now + timedelta(microseconds=3)),
    ]
    firmware = [
        FirmwareUpdate(version="2.2.0", filename="concretebot_v2.2.0.bin", file_size=15728640,
                       upload_date=datetime(2024, 1, 15),
                       description="Enhanced mixing algorithms, improved layer adhesion, bug fixes for temperature sensors.",
                       status="pending", target_printers=["1", "2", "3", "4"], uploaded_by="admin"),
        FirmwareUpdate(version="2.1.4", filename="concretebot_v2.1.4.bin", file_size=14680064,
                       upload_date=datetime(2024, 1, 10),
                       description="Critical security update, performance improvements.",
                       status="completed", progress=100, target_printers=["1", "4"], uploaded_by="admin"),
    ]
    history = [
        UpdateHistory(printer_id="1", printer_name="Concrete Printer A1", from_version="2.1.3", to_version="2.1.4",
                      timestamp=datetime(2024, 1, 10, 14, 30), status="success", duration="8m 45s",
                      initiated_by="admin", notes="Routine security update"),
        UpdateHistory(printer_id="4", printer_name="Concrete Printer D4", from_version="2.1.3", to_version="2.1.4",
                      timestamp=datetime(2024, 1, 10, 14, 25), status="success", duration="9m 12s",
                      initiated_by="admin", notes="Routine security update"),
        UpdateHistory(printer_id="3", printer_name="Concrete Printer C3", from_version="2.0.7", to_version="2.0.8",
                      timestamp=datetime(2024, 1, 8, 9, 15), status="failed", duration="3m 22s",
                      initiated_by="operator", notes="Connection lost during update",
                      error_message="Network timeout after 3 minutes"),
        UpdateHistory(printer_id="2", printer_name="Concrete Printer B2", from_version="2.1.2", to_version="2.1.3",
                      timestamp=datetime(2024, 1, 5, 16, 45), status="rolled_back", duration="12m 33s",
                      initiated_by="admin", notes="Update caused stability issues, rolled back automatically",
                      error_message="Firmware validation failed"),
    ]

    session.add_all([*printers, *firmware, *history])
    session.commit()
    logger.info(f"Seeded {len(printers)} printers, {len(firmware)} firmware entries, {len(history)} history entries")


def seed(db_engine: Engine, demo: bool = True) -> None:
    with Session(db_engine) as session:
        seed_users(session)
        if demo:
            seed_demo_data(session)


__all__ = ["seed", "seed_users", "seed_demo_data"]
