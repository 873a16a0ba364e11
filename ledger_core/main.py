"""
Ledger Core: FastAPI application.

This is the entry point for the HTTP surface.
All routers are registered here.
"""

from fastapi import FastAPI

from ledger_core.config import get_settings
from ledger_core.logging_config import configure_logging
from ledger_core.api.health import router as health_router
from ledger_core.api.accounts import router as accounts_router
from ledger_core.api.entries import router as entries_router
from ledger_core.api.ledger import router as ledger_router

settings = get_settings()
configure_logging(settings.LOG_LEVEL)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Double-entry bookkeeping ledger",
)

# Register routers
app.include_router(health_router)
app.include_router(accounts_router)
app.include_router(entries_router)
app.include_router(ledger_router)
