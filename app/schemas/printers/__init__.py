from .printer import (
    PrinterCreateRequest,
    PrinterUpdateRequest,
    PrinterResponse,
    PrinterListResponse,
    PrinterActionResponse,
    PrinterStats,
)

__all__ = [
    "PrinterCreateRequest",
    "PrinterUpdateRequest",
    "PrinterResponse",
    "PrinterListResponse",
    "PrinterActionResponse",
    "PrinterStats",
]
