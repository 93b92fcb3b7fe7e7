from typing import List, Optional
from pydantic import BaseModel, Field
from datetime import datetime


class PrinterCreateRequest(BaseModel):
    """Request schema for registering a printer"""
    name: Optional[str] = Field(None, description="Display name")
    model: Optional[str] = Field(None, description="Hardware model, e.g. 'ConcreteBot 3000'")
    location: Optional[str] = Field(None, description="Site / building")
    ip_address: Optional[str] = None
    serial_number: Optional[str] = None


class PrinterUpdateRequest(BaseModel):
    """Editable printer fields; anything else in the body is ignored"""
    name: Optional[str] = None
    location: Optional[str] = None
    status: Optional[str] = Field(None, description="'online', 'offline', 'updating' or 'error'")
    battery_level: Optional[int] = None
    temperature: Optional[float] = None
    update_progress: Optional[int] = None


class PrinterResponse(BaseModel):
    id: str
    name: str
    model: str
    location: str
    status: str
    firmware_version: str
    last_seen: str = Field(..., description="Relative time, e.g. '2 hours ago'")
    last_seen_at: datetime
    battery_level: Optional[int] = None
    temperature: Optional[float] = None
    update_progress: Optional[int] = None
    ip_address: Optional[str] = None
    serial_number: Optional[str] = None


class PrinterListResponse(BaseModel):
    success: bool = True
    data: List[PrinterResponse]
    count: int


class PrinterActionResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    data: PrinterResponse


class PrinterStats(BaseModel):
    total: int
    online: int
    offline: int
    updating: int
    error: int
    average_battery: int
    average_temperature: int
