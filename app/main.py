"""Concrete printer fleet FOTA API."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine
from sqlalchemy import func
from sqlmodel import Session, select

from app.core.config import settings
from app.core.errors import FleetError
from app.core.logging_config import setup_logging
from app.db.models import FirmwareStatus, FirmwareUpdate, Printer, PrinterStatus
from app.db.seed import seed
from app.db.session import engine as default_engine, init_db
from app.routers import auth_router, firmware_router, history_router, printers_router
from app.services.firmware.deployment_service import DeploymentService
from app.services.storage.storage_service import StorageService, build_storage_service
from app.utils.time import utcnow

logger = logging.getLogger(__name__)


def create_app(
    engine: Optional[Engine] = None,
    storage_service: Optional[StorageService] = None,
    deployment_service: Optional[DeploymentService] = None,
) -> FastAPI:
    db_engine = engine or default_engine

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging()
        init_db(db_engine)
        seed(db_engine, demo=settings.SEED_DEMO_DATA)

        app.state.deployment_service = deployment_service or DeploymentService(
            session_factory=lambda: Session(db_engine)
        )
        logger.info(f"{settings.APP_NAME} {settings.APP_VERSION} started")
        yield
        await app.state.deployment_service.shutdown()
        logger.info(f"{settings.APP_NAME} stopped")

    app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION, lifespan=lifespan)
    app.state.engine = db_engine
    app.state.storage_service = storage_service or build_storage_service()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(FleetError)
    async def fleet_error_handler(request: Request, exc: FleetError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": exc.kind, "detail": exc.message},
        )

    app.include_router(auth_router.router, prefix=settings.API_PREFIX)
    app.include_router(printers_router.router, prefix=settings.API_PREFIX)
    app.include_router(firmware_router.router, prefix=settings.API_PREFIX)
    app.include_router(history_router.router, prefix=settings.API_PREFIX)

    @app.get(f"{settings.API_PREFIX}/health", tags=["Health"])
    async def health():
        return {"status": "healthy", "timestamp": utcnow().isoformat()}

    @app.get(f"{settings.API_PREFIX}/status", tags=["Health"])
    async def server_status():
        """Server heartbeat with a fleet summary"""
        with Session(db_engine) as session:
            printers_count = session.exec(select(func.count()).select_from(Printer)).one()
            online = session.exec(
                select(func.count()).select_from(Printer).where(Printer.status == PrinterStatus.ONLINE.value)
            ).one()
            deploying = session.exec(
                select(func.count()).select_from(FirmwareUpdate)
                .where(FirmwareUpdate.status == FirmwareStatus.DEPLOYING.value)
            ).one()
        return {
            "status": "Server is running",
            "timestamp": utcnow().isoformat(),
            "printers_count": printers_count,
            "online_printers": online,
            "active_deployments": deploying,
        }

    return app


app = create_app()
