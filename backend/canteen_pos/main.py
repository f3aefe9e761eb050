# backend/canteen_pos/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from canteen_pos.api import (
    menu_router,
    orders_router,
    session_router,
    sync_router,
    walkins_router,
)
from canteen_pos.config import Settings, settings as default_settings
from canteen_pos.gateway import OrderGateway
from canteen_pos.printing import LogPrinter, Printer
from canteen_pos.services.completion import OrderCompletionWorkflow
from canteen_pos.services.summary import SummaryAggregator
from canteen_pos.services.sync import SyncReconciler
from canteen_pos.services.walkins import WalkinService
from canteen_pos.session import CanteenSession
from canteen_pos.storage import InMemoryStorage, SQLiteStorage, Storage

logger = logging.getLogger(__name__)


def build_storage(settings: Settings) -> Storage:
    """Pick the store from STORAGE_BACKEND (sqlite / inmemory)."""
    if settings.storage_backend == "inmemory":
        logger.info("Using in-memory storage")
        return InMemoryStorage()
    if settings.storage_backend != "sqlite":
        logger.warning(f"Unknown STORAGE_BACKEND '{settings.storage_backend}', falling back to sqlite")
    logger.info(f"Using SQLite storage at {settings.database_url}")
    return SQLiteStorage(settings.database_url)


def create_app(
    storage: Optional[Storage] = None,
    gateway: Optional[OrderGateway] = None,
    printer: Optional[Printer] = None,
    settings: Optional[Settings] = None,
    session: Optional[CanteenSession] = None,
) -> FastAPI:
    settings = settings or default_settings
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        app.state.storage.close()

    app = FastAPI(title="Canteen POS Sync Backend", lifespan=lifespan)

    # Allow CORS for the counter UI (adjust in production)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    storage = storage or build_storage(settings)
    if gateway is not None:
        session = gateway.session
    session = session or CanteenSession()
    gateway = gateway or OrderGateway(
        settings.gateway_base_url, session, timeout_s=settings.gateway_timeout_seconds
    )
    printer = printer or LogPrinter()
    summary = SummaryAggregator(storage)

    app.state.settings = settings
    app.state.storage = storage
    app.state.session = session
    app.state.gateway = gateway
    app.state.summary = summary
    app.state.reconciler = SyncReconciler(
        storage,
        gateway,
        session,
        summary=summary,
        walkin_batch_size=settings.walkin_push_batch_size,
    )
    app.state.workflow = OrderCompletionWorkflow(storage, printer)
    app.state.walkins = WalkinService(storage, printer)

    app.include_router(session_router.router)
    app.include_router(sync_router.router)
    app.include_router(orders_router.router)
    app.include_router(menu_router.router)
    app.include_router(walkins_router.router)

    @app.get("/health")
    async def health():
        return {"status": "ok", "session": session.is_active}

    return app


app = create_app()
