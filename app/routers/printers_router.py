# app/routers/printers_router.py
from fastapi import APIRouter, Depends, status
from sqlmodel import Session
import logging

from app.db.models import User
from app.db.session import get_session
from app.routers.auth_router import get_current_user, require_admin
from app.schemas.printers import (
    PrinterCreateRequest,
    PrinterUpdateRequest,
    PrinterResponse,
    PrinterListResponse,
    PrinterActionResponse,
    PrinterStats,
)
from app.services.printers.printer_service import PrinterService, to_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/printers", tags=["Printers"])


async def get_printer_service(session: Session = Depends(get_session)) -> PrinterService:
    """Dependency to get printer service"""
    return PrinterService(session)


@router.get("", response_model=PrinterListResponse)
async def list_printers(
    _: User = Depends(get_current_user),
    printer_service: PrinterService = Depends(get_printer_service)
):
    """
    List the fleet

    Printers are returned in registration order; `last_seen` is rendered
    relative to the time of the request.
    """
    printers = [to_response(p) for p in printer_service.list_printers()]
    return PrinterListResponse(data=printers, count=len(printers))


@router.get("/stats/overview")
async def get_printer_stats(
    _: User = Depends(get_current_user),
    printer_service: PrinterService = Depends(get_printer_service)
):
    stats: PrinterStats = printer_service.get_stats()
    return {"success": True, "data": stats}


@router.get("/{printer_id}")
async def get_printer(
    printer_id: str,
    _: User = Depends(get_current_user),
    printer_service: PrinterService = Depends(get_printer_service)
):
    printer: PrinterResponse = to_response(printer_service.get_printer(printer_id))
    return {"success": True, "data": printer}


@router.post("", response_model=PrinterActionResponse, status_code=status.HTTP_201_CREATED)
async def create_printer(
    payload: PrinterCreateRequest,
    current_user: User = Depends(require_admin),
    printer_service: PrinterService = Depends(get_printer_service)
):
    """Register a printer (Admin only)"""
    printer = printer_service.create_printer(payload.model_dump())
    logger.info(f"Printer {printer.id} registered by {current_user.username}")
    return PrinterActionResponse(message="Printer created successfully", data=to_response(printer))


@router.put("/{printer_id}", response_model=PrinterActionResponse)
async def update_printer(
    printer_id: str,
    payload: PrinterUpdateRequest,
    _: User = Depends(require_admin),
    printer_service: PrinterService = Depends(get_printer_service)
):
    """
    Update a printer (Admin only)

    Only fields present in the body are applied; `firmware_version` is
    changed exclusively by completed deployments.
    """
    printer = printer_service.update_printer(printer_id, payload.model_dump(exclude_unset=True))
    return PrinterActionResponse(message="Printer updated successfully", data=to_response(printer))


@router.delete("/{printer_id}", response_model=PrinterActionResponse)
async def delete_printer(
    printer_id: str,
    _: User = Depends(require_admin),
    printer_service: PrinterService = Depends(get_printer_service)
):
    """Remove a printer (Admin only)"""
    printer = printer_service.delete_printer(printer_id)
    return PrinterActionResponse(message="Printer deleted successfully", data=to_response(printer))
