from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from stocktrack.api import router
from stocktrack.auth import AuthProvider, hash_password
from stocktrack.config import AppSettings, get_settings
from stocktrack.errors import StocktrackError
from stocktrack.inventory import InventoryLedger
from stocktrack.logging import get_logger, setup_logging
from stocktrack.orders import OrderWorkflow
from stocktrack.ownership import OwnershipFilter
from stocktrack.store import EntityStore, seed_demo_data

logger = get_logger()


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    return f"{field}: {first.get('msg')}" if field else str(first.get("msg"))


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.LOG_LEVEL, settings.JSON_LOG)

    store = EntityStore()
    if settings.SEED_DEMO_DATA:
        seed_demo_data(store, hash_password)

    ledger = InventoryLedger(store, low_stock_threshold=settings.LOW_STOCK_THRESHOLD)
    ownership = OwnershipFilter(store, ledger)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        # --- Startup ---
        logger.info("Service starting", extra={"env": settings.ENV})
        yield
        # --- Shutdown ---
        logger.info("Service stopping")

    app = FastAPI(title="Stocktrack", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.ledger = ledger
    app.state.ownership = ownership
    app.state.workflow = OrderWorkflow(store, ledger, ownership)
    app.state.auth = AuthProvider(store, settings.JWT_SECRET, settings.JWT_EXPIRE_MINUTES)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StocktrackError)
    async def stocktrack_error_handler(request: Request, exc: StocktrackError):
        if exc.status_code >= 500:
            logger.error("Request failed", extra={"path": request.url.path, "error": exc.message})
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(_request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": _validation_message(exc)})

    app.include_router(router)
    app.mount("/metrics", make_asgi_app())
    return app


app = create_app()
