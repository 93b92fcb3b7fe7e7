# app/routers/history_router.py
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from app.db.models import User
from app.db.session import get_session
from app.routers.auth_router import get_current_user, require_admin
from app.schemas.history import (
    HistoryCreateRequest,
    HistoryUpdateRequest,
    HistoryResponse,
    HistoryPage,
)
from app.services.history.history_service import HistoryService

router = APIRouter(prefix="/history", tags=["History"])


async def get_history_service(session: Session = Depends(get_session)) -> HistoryService:
    """Dependency to get history service"""
    return HistoryService(session)


@router.get("", response_model=HistoryPage)
async def list_history(
    printer_id: Optional[str] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    limit: int = Query(50),
    offset: int = Query(0),
    _: User = Depends(get_current_user),
    history_service: HistoryService = Depends(get_history_service)
):
    """
    Update history, newest first

    Filter by `printer_id` and/or `status`; page with `limit` and `offset`.
    """
    entries, pagination = history_service.list_entries(
        printer_id=printer_id,
        status=status_filter,
        offset=offset,
        limit=limit,
    )
    return HistoryPage(
        data=[HistoryResponse.model_validate(e) for e in entries],
        pagination=pagination
    )


@router.get("/stats/overview")
async def get_history_stats(
    _: User = Depends(get_current_user),
    history_service: HistoryService = Depends(get_history_service)
):
    return {"success": True, "data": history_service.get_stats()}


@router.get("/{entry_id}")
async def get_history_entry(
    entry_id: str,
    _: User = Depends(get_current_user),
    history_service: HistoryService = Depends(get_history_service)
):
    entry = history_service.get_entry(entry_id)
    return {"success": True, "data": HistoryResponse.model_validate(entry)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_history_entry(
    payload: HistoryCreateRequest,
    current_user: User = Depends(require_admin),
    history_service: HistoryService = Depends(get_history_service)
):
    """Record an update attempt by hand (Admin only)"""
    entry = history_service.append(payload.model_dump(), initiated_by=current_user.username)
    return {
        "success": True,
        "message": "History entry created successfully",
        "data": HistoryResponse.model_validate(entry)
    }


@router.put("/{entry_id}")
async def update_history_entry(
    entry_id: str,
    payload: HistoryUpdateRequest,
    current_user: User = Depends(require_admin),
    history_service: HistoryService = Depends(get_history_service)
):
    """Correct an existing entry (Admin only)"""
    entry = history_service.update_entry(
        entry_id,
        payload.model_dump(exclude_unset=True),
        updated_by=current_user.username
    )
    return {
        "success": True,
        "message": "History entry updated successfully",
        "data": HistoryResponse.model_validate(entry)
    }


@router.delete("/{entry_id}")
async def delete_history_entry(
    entry_id: str,
    _: User = Depends(require_admin),
    history_service: HistoryService = Depends(get_history_service)
):
    entry = history_service.delete_entry(entry_id)
    return {
        "success": True,
        "message": "History entry deleted successfully",
        "data": HistoryResponse.model_validate(entry)
    }
