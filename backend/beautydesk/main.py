import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from beautydesk.config import settings
from beautydesk.middleware.exceptions import register_exception_handlers
from beautydesk.routers import (
    availability,
    customers,
    health,
    onboarding,
    products,
    session,
    walk_in,
)
from beautydesk.routers import settings as tenant_settings
from beautydesk.session import SessionRegistry
from beautydesk.storage import Storage, build_storage

logger = logging.getLogger("beautydesk")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Tear down live sessions and the storage connection on shutdown."""
    logger.info("BeautyDesk console started")
    try:
        yield
    finally:
        await app.state.sessions.close()
        await app.state.storage.close()
        logger.info("BeautyDesk console stopped")


def create_app(
    storage: Storage | None = None,
    platform_transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    app = FastAPI(
        title="BeautyDesk Console",
        description="Admin console for multi-tenant beauty clinics and salons",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.storage = storage or build_storage(settings)
    app.state.sessions = SessionRegistry(app.state.storage, transport=platform_transport)

    # ── Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Middleware ───────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins.split(","),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Routers ──────────────────────────────────────────────────
    # Public (no session needed)
    app.include_router(health.router)
    app.include_router(session.router, prefix="/console", tags=["session"])

    # Session-scoped (require a bearer token registered via /console/session)
    app.include_router(onboarding.router, prefix="/console/onboarding", tags=["onboarding"])
    app.include_router(customers.router, prefix="/console/customers", tags=["customers"])
    app.include_router(products.router, prefix="/console/products", tags=["products"])
    app.include_router(availability.router, prefix="/console/availability", tags=["availability"])
    app.include_router(tenant_settings.router, prefix="/console/settings", tags=["settings"])
    app.include_router(walk_in.router, prefix="/console/walk-in", tags=["walk-in"])

    return app


app = create_app()
