# Database models
from .auth.user import User, UserRole
from .firmware.firmware import FirmwareStatus, FirmwareUpdate
from .history.history import HistoryStatus, UpdateHistory
from .printers.printer import Printer, PrinterStatus

__all__ = [
    "User",
    "UserRole",
    "FirmwareStatus",
    "FirmwareUpdate",
    "HistoryStatus",
    "UpdateHistory",
    "Printer",
    "PrinterStatus",
]
