# app/db/models/history/history.py
from datetime import datetime
from enum import Enum
from typing import Optional
import uuid

from sqlmodel import SQLModel, Field

from app.utils.time import utcnow


class HistoryStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    ROLLED_BACK = "rolled_back"


class UpdateHistory(SQLModel, table=True):
    """One past firmware update attempt on one printer"""
    __tablename__ = "update_history"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    printer_id: str = Field(max_length=100, index=True)
    printer_name: str = Field(max_length=255)  # Snapshot at the time of the update
    from_version: str = Field(max_length=50)
    to_version: str = Field(max_length=50)
    timestamp: datetime = Field(default_factory=utcnow, index=True)
    status: str = Field(max_length=20, index=True)
    duration: str = Field(default="0m 0s", max_length=50)
    initiated_by: Optional[str] = Field(default=None, max_length=100)
    notes: str = Field(default="")
    error_message: Optional[str] = Field(default=None, max_length=500)
    firmware_id: Optional[str] = Field(default=None, max_length=100)  # Catalog entry that produced it
    updated_by: Optional[str] = Field(default=None, max_length=100)
    updated_at: Optional[datetime] = Field(default=None)
