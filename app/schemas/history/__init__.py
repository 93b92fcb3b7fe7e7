from .history import (
    HistoryCreateRequest,
    HistoryUpdateRequest,
    HistoryResponse,
    HistoryPage,
    Pagination,
    HistoryStats,
)

__all__ = [
    "HistoryCreateRequest",
    "HistoryUpdateRequest",
    "HistoryResponse",
    "HistoryPage",
    "Pagination",
    "HistoryStats",
]
