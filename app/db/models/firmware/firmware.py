# app/db/models/firmware/firmware.py
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
import uuid

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field

from app.utils.time import utcnow


class FirmwareStatus(str, Enum):
    PENDING = "pending"
    DEPLOYING = "deploying"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (FirmwareStatus.COMPLETED, FirmwareStatus.FAILED, FirmwareStatus.CANCELLED)


class FirmwareUpdate(SQLModel, table=True):
    """Firmware catalog entry and the state of its deployment"""
    __tablename__ = "firmware_updates"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    version: str = Field(max_length=50, unique=True, index=True)  # e.g., "2.3.0"
    filename: str = Field(max_length=255)  # e.g., "concretebot_v2.3.0.bin"
    file_size: int = Field(default=0)  # Size in bytes
    upload_date: datetime = Field(default_factory=utcnow)
    description: str = Field(default="")
    status: str = Field(default=FirmwareStatus.PENDING.value, max_length=20, index=True)
    target_printers: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    progress: Optional[int] = Field(default=None)  # Set once deploying starts
    storage_provider: Optional[str] = Field(default=None, max_length=20)  # local, gcs or both
    storage_info: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    uploaded_by: Optional[str] = Field(default=None, max_length=100)
    checksum: Optional[str] = Field(default=None, max_length=80)  # "sha256:<hex>"

    deployed_by: Optional[str] = Field(default=None, max_length=100)
    deployment_started: Optional[datetime] = Field(default=None)
    completed_at: Optional[datetime] = Field(default=None)
    cancelled_by: Optional[str] = Field(default=None, max_length=100)
    cancelled_at: Optional[datetime] = Field(default=None)
    failed_at: Optional[datetime] = Field(default=None)
    error_message: Optional[str] = Field(default=None, max_length=500)
    updated_at: datetime = Field(default_factory=utcnow)
