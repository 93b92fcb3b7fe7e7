# app/services/history/history_service.py
import logging
import math
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlmodel import Session, select

from app.core.errors import NotFoundError, ValidationError
from app.db.models import HistoryStatus, UpdateHistory
from app.schemas.history import HistoryResponse, HistoryStats, Pagination
from app.utils.time import utcnow

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("printer_id", "printer_name", "from_version", "to_version", "status", "duration")
CORRECTABLE_FIELDS = ("status", "duration", "notes", "error_message")
MAX_PAGE_SIZE = 500


def _check_status(status: Any) -> str:
    try:
        return HistoryStatus(status).value
    except ValueError:
        raise ValidationError(
            f"Invalid status '{status}'. Use one of: {', '.join(s.value for s in HistoryStatus)}"
        )


class HistoryService:
    """Append-only log of firmware update attempts per printer"""

    def __init__(self, session: Session):
        self.session = session

    def append(self, data: Dict[str, Any], initiated_by: Optional[str] = None) -> UpdateHistory:
        missing = [field for field in REQUIRED_FIELDS if not data.get(field)]
        if missing:
            raise ValidationError(f"{', '.join(REQUIRED_FIELDS)} are required (missing: {', '.join(missing)})")

        entry = UpdateHistory(
            printer_id=str(data["printer_id"]),
            printer_name=data["printer_name"],
            from_version=data["from_version"],
            to_version=data["to_version"],
            status=_check_status(data["status"]),
            duration=data["duration"],
            timestamp=utcnow(),
            initiated_by=initiated_by,
            notes=data.get("notes") or "",
            error_message=data.get("error_message"),
            firmware_id=data.get("firmware_id"),
        )
        self.session.add(entry)
        self.session.commit()
        self.session.refresh(entry)

        logger.info(f"History entry {entry.id} added for printer {entry.printer_id}: {entry.status}")
        return entry

    def list_entries(
        self,
        printer_id: Optional[str] = None,
        status: Optional[str] = None,
        offset: int = 0,
        limit: int = 50,
    ) -> Tuple[List[UpdateHistory], Pagination]:
        """Filtered page of entries, newest first"""
        if offset < 0 or limit < 1 or limit > MAX_PAGE_SIZE:
            raise ValidationError(f"offset must be >= 0 and limit between 1 and {MAX_PAGE_SIZE}")

        statement = select(UpdateHistory)
        count_statement = select(func.count()).select_from(UpdateHistory)
        if printer_id:
            statement = statement.where(UpdateHistory.printer_id == printer_id)
            count_statement = count_statement.where(UpdateHistory.printer_id == printer_id)
        if status:
            statement = statement.where(UpdateHistory.status == status)
            count_statement = count_statement.where(UpdateHistory.status == status)

        total = self.session.exec(count_statement).one()
        statement = statement.order_by(UpdateHistory.timestamp.desc()).offset(offset).limit(limit)
        entries = list(self.session.exec(statement).all())

        return entries, Pagination(total=total, limit=limit, offset=offset, has_more=total > offset + limit)

    def get_entry(self, entry_id: str) -> UpdateHistory:
        entry = self.session.get(UpdateHistory, entry_id)
        if not entry:
            raise NotFoundError("History entry not found")
        return entry

    def update_entry(self, entry_id: str, changes: Dict[str, Any], updated_by: Optional[str] = None) -> UpdateHistory:
        """Administrative correction of an existing entry"""
        entry = self.get_entry(entry_id)
        updates = {key: value for key, value in changes.items() if key in CORRECTABLE_FIELDS}
        if "status" in updates:
            updates["status"] = _check_status(updates["status"])

        for key, value in updates.items():
            setattr(entry, key, value)
        entry.updated_by = updated_by
        entry.updated_at = utcnow()

        self.session.add(entry)
        self.session.commit()
        self.session.refresh(entry)

        logger.info(f"History entry {entry_id} corrected by {updated_by}: {sorted(updates)}")
        return entry

    def delete_entry(self, entry_id: str) -> UpdateHistory:
        entry = self.get_entry(entry_id)
        self.session.delete(entry)
        self.session.commit()
        logger.info(f"History entry {entry_id} deleted")
        return entry

    def get_stats(self) -> HistoryStats:
        counts = dict(
            self.session.exec(
                select(UpdateHistory.status, func.count()).group_by(UpdateHistory.status)
            ).all()
        )
        total = sum(counts.values())
        successful = counts.get(HistoryStatus.SUCCESS.value, 0)

        recent = self.session.exec(
            select(UpdateHistory).order_by(UpdateHistory.timestamp.desc()).limit(5)
        ).all()

        return HistoryStats(
            total=total,
            successful=successful,
            failed=counts.get(HistoryStatus.FAILED.value, 0),
            rolled_back=counts.get(HistoryStatus.ROLLED_BACK.value, 0),
            # Half-up rounding; an empty log has a 0% success rate
            success_rate=math.floor(successful * 100 / total + 0.5) if total else 0,
            recent_updates=[HistoryResponse.model_validate(entry) for entry in recent],
        )
