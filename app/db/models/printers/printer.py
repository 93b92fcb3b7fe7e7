# app/db/models/printers/printer.py
from datetime import datetime
from enum import Enum
from typing import Optional
import uuid

from sqlmodel import SQLModel, Field

from app.utils.time import utcnow


class PrinterStatus(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    UPDATING = "updating"
    ERROR = "error"


class Printer(SQLModel, table=True):
    """A concrete printer in the fleet and its last reported state"""
    __tablename__ = "printers"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    name: str = Field(max_length=255)
    model: str = Field(max_length=255)
    location: str = Field(max_length=255)
    status: str = Field(default=PrinterStatus.OFFLINE.value, max_length=20, index=True)
    firmware_version: str = Field(default="1.0.0", max_length=50)
    last_seen: datetime = Field(default_factory=utcnow)  # Relative "ago" strings are derived from this
    battery_level: Optional[int] = Field(default=None)  # 0-100
    temperature: Optional[float] = Field(default=None)  # Celsius
    update_progress: Optional[int] = Field(default=None)  # 0-100, only while updating
    ip_address: Optional[str] = Field(default=None, max_length=50)
    serial_number: Optional[str] = Field(default=None, max_length=100)
    created_at: datetime = Field(default_factory=utcnow)
