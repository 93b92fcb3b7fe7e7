# Firmware schemas
from .firmware import (
    FirmwareResponse,
    FirmwareListResponse,
    FirmwareActionResponse,
)

__all__ = [
    "FirmwareResponse",
    "FirmwareListResponse",
    "FirmwareActionResponse",
]
