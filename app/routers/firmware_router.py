# app/routers/firmware_router.py
from typing import List, Optional
from fastapi import (
    APIRouter,
    Depends,
    UploadFile,
    File,
    Form,
    Request,
    status
)
from fastapi.concurrency import run_in_threadpool
from sqlmodel import Session
import json
import logging

from app.core.errors import ValidationError
from app.db.models import User
from app.db.session import get_session
from app.routers.auth_router import require_admin
from app.schemas.firmware import (
    FirmwareResponse,
    FirmwareListResponse,
    FirmwareActionResponse,
)
from app.services.firmware.deployment_service import DeploymentService
from app.services.firmware.firmware_service import FirmwareService
from app.services.storage.storage_service import StorageService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/firmware", tags=["Firmware"])


async def get_storage_service(request: Request) -> StorageService:
    return request.app.state.storage_service


async def get_deployment_service(request: Request) -> DeploymentService:
    return request.app.state.deployment_service


async def get_firmware_service(
    session: Session = Depends(get_session),
    storage_service: StorageService = Depends(get_storage_service)
) -> FirmwareService:
    """Dependency to get firmware service"""
    return FirmwareService(session, storage_service)


def parse_target_printers(raw: Optional[str]) -> List[str]:
    """Accept a JSON array (as the dashboard sends it) or a comma-separated list"""
    if not raw or not raw.strip():
        return []
    raw = raw.strip()
    if raw.startswith("["):
        try:
            targets = json.loads(raw)
        except json.JSONDecodeError:
            raise ValidationError("target_printers must be a JSON array of printer ids")
        if not isinstance(targets, list):
            raise ValidationError("target_printers must be a JSON array of printer ids")
        return [str(t) for t in targets]
    return [t.strip() for t in raw.split(",") if t.strip()]


@router.get("", response_model=FirmwareListResponse)
async def list_firmware(
    _: User = Depends(require_admin),
    firmware_service: FirmwareService = Depends(get_firmware_service)
):
    """List the firmware catalog, newest upload first (Admin only)"""
    entries = [FirmwareResponse.model_validate(f) for f in firmware_service.list_firmware()]
    return FirmwareListResponse(data=entries, count=len(entries))


@router.get("/storage/status")
async def get_storage_status(
    _: User = Depends(require_admin),
    storage_service: StorageService = Depends(get_storage_service)
):
    """Reachability of each configured storage backend (Admin only)"""
    return {"success": True, "data": await run_in_threadpool(storage_service.status)}


@router.get("/{firmware_id}")
async def get_firmware(
    firmware_id: str,
    _: User = Depends(require_admin),
    firmware_service: FirmwareService = Depends(get_firmware_service)
):
    firmware = firmware_service.get_firmware(firmware_id)
    return {"success": True, "data": FirmwareResponse.model_validate(firmware)}


@router.post("/upload", response_model=FirmwareActionResponse, status_code=status.HTTP_201_CREATED)
async def upload_firmware(
    file: Optional[UploadFile] = File(None, description="Firmware binary (.bin or .hex)"),
    version: Optional[str] = Form(None, description="Semantic version, e.g., '2.3.0'"),
    description: Optional[str] = Form(None, description="Release notes"),
    target_printers: Optional[str] = Form(None, description="JSON array or comma-separated printer ids"),
    storage_provider: Optional[str] = Form(None, description="'local', 'gcs' or 'both'"),
    current_user: User = Depends(require_admin),
    firmware_service: FirmwareService = Depends(get_firmware_service),
    storage_service: StorageService = Depends(get_storage_service)
):
    """
    Upload new firmware version (Admin only)

    The binary is stored first; the catalog entry is created in `pending`
    status only once every chosen storage backend holds the bytes.
    """
    contents = await file.read() if file else b""
    filename = file.filename if file else None

    version, description, targets = firmware_service.prepare_upload(
        version, contents, filename, description, parse_target_printers(target_printers)
    )
    # Storage backends block on I/O; database work stays on the event loop
    locator = await run_in_threadpool(storage_service.store, contents, filename, version, storage_provider)
    firmware = firmware_service.record_upload(
        locator, version, contents, filename, description, targets, uploaded_by=current_user.username
    )

    return FirmwareActionResponse(
        message=f"Firmware {firmware.version} uploaded successfully",
        data=FirmwareResponse.model_validate(firmware)
    )


@router.post("/{firmware_id}/deploy", response_model=FirmwareActionResponse)
async def deploy_firmware(
    firmware_id: str,
    current_user: User = Depends(require_admin),
    deployment_service: DeploymentService = Depends(get_deployment_service)
):
    """
    Start deploying a pending entry to its target printers (Admin only)

    Progress advances in the background; poll GET /firmware/{id} for it.
    """
    firmware = await deployment_service.deploy(firmware_id, current_user.username)
    return FirmwareActionResponse(
        message="Firmware deployment started",
        data=FirmwareResponse.model_validate(firmware)
    )


@router.post("/{firmware_id}/cancel", response_model=FirmwareActionResponse)
async def cancel_deployment(
    firmware_id: str,
    current_user: User = Depends(require_admin),
    deployment_service: DeploymentService = Depends(get_deployment_service)
):
    """Cancel a deployment in progress (Admin only)"""
    firmware = await deployment_service.cancel(firmware_id, current_user.username)
    return FirmwareActionResponse(
        message="Firmware deployment cancelled",
        data=FirmwareResponse.model_validate(firmware)
    )


@router.delete("/{firmware_id}", response_model=FirmwareActionResponse)
async def delete_firmware(
    firmware_id: str,
    current_user: User = Depends(require_admin),
    firmware_service: FirmwareService = Depends(get_firmware_service)
):
    """Delete a catalog entry and its stored binary (Admin only)"""
    firmware = firmware_service.delete_firmware(firmware_id)
    logger.info(f"Firmware {firmware.version} deleted by {current_user.username}")
    return FirmwareActionResponse(
        message="Firmware update deleted successfully",
        data=FirmwareResponse.model_validate(firmware)
    )
