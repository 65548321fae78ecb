"""Strata levies FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI

from strata.api.responses import register_exception_handlers
from strata.api.routes import budgets, levies, payments, reports
from strata.config import get_settings
from strata.models import Base
from strata.services import engine
from strata.services.logging import setup_server_logging

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle (startup and shutdown)."""
    setup_server_logging()
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables initialized")
    yield
    logger.info("Application shutting down")


app = FastAPI(
    title=get_settings().api_title,
    description="Levy billing, payment allocation and trust reporting for strata schemes",
    version=get_settings().api_version,
    lifespan=lifespan,
)

register_exception_handlers(app)

# Include routers
app.include_router(levies.router)
app.include_router(payments.router)
app.include_router(budgets.router)
app.include_router(reports.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


def run() -> None:
    """Console entry point."""
    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    run()
