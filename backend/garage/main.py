"""
Garage Billing – FastAPI application entry point.

Run with:
    uvicorn garage.main:app --reload --host 0.0.0.0 --port 8000
"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from garage.api.auth_routes import auth_router
from garage.api.catalog_routes import catalog_router
from garage.api.invoice_routes import invoice_router
from garage.api.routes import protected, router
from garage.api.settings_routes import settings_router
from garage.auth.gateway import IdentityGateway
from garage.auth.providers import build_identity_provider
from garage.core.config import settings
from garage.core.database import make_engine
from garage.core.errors import (
    AuthFailure,
    DuplicateRecordError,
    FormValidationError,
    UnknownCategoryKind,
)
from garage.core.logging import setup_logging
from garage.store.documents import NullDocumentStore, SqlDocumentStore
from garage.store.seed import seed_demo_data
from garage.store.state import AppState


def build_state(cfg=settings) -> AppState:
    """AppState wired to the storage backend named in settings."""
    if cfg.STORAGE_BACKEND == "memory":
        state = AppState(NullDocumentStore(), invoice_prefix=cfg.INVOICE_PREFIX)
    elif cfg.STORAGE_BACKEND == "sqlite":
        state = AppState(
            SqlDocumentStore(make_engine(cfg.DATABASE_URL)),
            invoice_prefix=cfg.INVOICE_PREFIX,
        )
        state.hydrate()
    else:
        raise ValueError(
            f"Unknown STORAGE_BACKEND '{cfg.STORAGE_BACKEND}' (expected 'memory' or 'sqlite')"
        )
    if cfg.SEED_DEMO_DATA:
        seed_demo_data(state)
    return state


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown hooks."""
    setup_logging()
    logger.info("Starting Garage Billing backend …")
    yield
    app.state.identity.close()
    logger.info("Garage Billing backend shut down")


def create_app(
    state: Optional[AppState] = None,
    gateway: Optional[IdentityGateway] = None,
) -> FastAPI:
    app = FastAPI(
        title="Garage Billing API",
        description="Parts inventory, services, customers and GST invoices for a repair garage",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.garage = state if state is not None else build_state()
    app.state.identity = (
        gateway if gateway is not None else IdentityGateway(build_identity_provider(settings))
    )

    # CORS – allow frontend dev server
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(FormValidationError)
    async def _form_error(request: Request, exc: FormValidationError):
        return JSONResponse(status_code=422, content={"detail": str(exc), "errors": exc.errors})

    @app.exception_handler(AuthFailure)
    async def _auth_error(request: Request, exc: AuthFailure):
        return JSONResponse(status_code=401, content={"detail": exc.message, "kind": exc.kind})

    @app.exception_handler(DuplicateRecordError)
    async def _duplicate(request: Request, exc: DuplicateRecordError):
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(UnknownCategoryKind)
    async def _unknown_kind(request: Request, exc: UnknownCategoryKind):
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    app.include_router(router)
    app.include_router(protected)
    app.include_router(auth_router)
    app.include_router(catalog_router)
    app.include_router(invoice_router)
    app.include_router(settings_router)

    @app.get("/")
    def root():
        return {"message": "Garage Billing API", "docs": "/docs"}

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve ``app`` on API_HOST:API_PORT."""
    import uvicorn

    uvicorn.run("garage.main:app", host=settings.API_HOST, port=settings.API_PORT)
