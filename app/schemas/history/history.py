from typing import List, Optional
from pydantic import BaseModel, Field
from datetime import datetime


class HistoryCreateRequest(BaseModel):
    """Request schema for appending a history entry"""
    printer_id: Optional[str] = None
    printer_name: Optional[str] = None
    from_version: Optional[str] = None
    to_version: Optional[str] = None
    status: Optional[str] = Field(None, description="'success', 'failed' or 'rolled_back'")
    duration: Optional[str] = Field(None, description="Elapsed time, e.g. '8m 45s'")
    notes: Optional[str] = None
    error_message: Optional[str] = None
    firmware_id: Optional[str] = None


class HistoryUpdateRequest(BaseModel):
    """Administrative correction; only these fields can change"""
    status: Optional[str] = None
    duration: Optional[str] = None
    notes: Optional[str] = None
    error_message: Optional[str] = None


class HistoryResponse(BaseModel):
    id: str
    printer_id: str
    printer_name: str
    from_version: str
    to_version: str
    timestamp: datetime
    status: str
    duration: str
    initiated_by: Optional[str] = None
    notes: str = ""
    error_message: Optional[str] = None
    firmware_id: Optional[str] = None
    updated_by: Optional[str] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class HistoryPage(BaseModel):
    success: bool = True
    data: List[HistoryResponse]
    pagination: Pagination


class HistoryStats(BaseModel):
    total: int
    successful: int
    failed: int
    rolled_back: int
    success_rate: int = Field(..., ge=0, le=100, description="Rounded percentage of successful updates")
    recent_updates: List[HistoryResponse] = Field(default_factory=list)
