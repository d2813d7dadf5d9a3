from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.database import engine
from app.logging_config import setup_logging
from app.middleware.exceptions import register_exception_handlers
from app.middleware.security import RequestLoggingMiddleware, SecurityHeadersMiddleware
from app.routers import (
    auth,
    clients,
    dashboard,
    documents,
    filings,
    health,
    notifications,
    onboarding,
    payments,
    settings as settings_router,
    users,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("TaxDesk API starting (%s)", settings.environment)
    yield
    await engine.dispose()
    logger.info("TaxDesk API stopped")


app = FastAPI(
    title="TaxDesk",
    description="Tax filing and consultation platform",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Exception Handlers ───────────────────────────────────────
register_exception_handlers(app)

# ── Middleware ───────────────────────────────────────────────
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ──────────────────────────────────────────────────
app.include_router(health.router)
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(users.router, prefix="/api/users", tags=["users"])
app.include_router(onboarding.router, prefix="/api/onboarding", tags=["onboarding"])
app.include_router(clients.router, prefix="/api/clients", tags=["clients"])
app.include_router(filings.router, prefix="/api/filings", tags=["filings"])
app.include_router(documents.router, prefix="/api/documents", tags=["documents"])
app.include_router(payments.router, prefix="/api/payments", tags=["payments"])
app.include_router(settings_router.router, prefix="/api/settings", tags=["settings"])
app.include_router(notifications.router, prefix="/api/notifications", tags=["notifications"])
app.include_router(dashboard.router, prefix="/api/dashboard", tags=["dashboard"])
