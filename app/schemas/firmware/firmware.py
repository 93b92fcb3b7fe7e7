from typing import Any, Dict, List, Optional
from pydantic import BaseModel
from datetime import datetime


class FirmwareResponse(BaseModel):
    """Response schema for a firmware catalog entry"""
    id: str
    version: str
    filename: str
    file_size: int
    upload_date: datetime
    description: str
    status: str
    target_printers: List[str]
    progress: Optional[int] = None
    storage_provider: Optional[str] = None
    storage_info: Dict[str, Any] = {}
    uploaded_by: Optional[str] = None
    checksum: Optional[str] = None
    deployed_by: Optional[str] = None
    deployment_started: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None
    error_message: Optional[str] = None

    model_config = {"from_attributes": True}


class FirmwareListResponse(BaseModel):
    success: bool = True
    data: List[FirmwareResponse]
    count: int


class FirmwareActionResponse(BaseModel):
    """Response schema for upload, deploy, cancel and delete"""
    success: bool = True
    message: str
    data: Optional[FirmwareResponse] = None
