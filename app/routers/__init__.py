# Routers package
from . import auth_router
from . import printers_router
from . import firmware_router
from . import history_router

__all__ = [
    "auth_router",
    "printers_router",
    "firmware_router",
    "history_router"
]
