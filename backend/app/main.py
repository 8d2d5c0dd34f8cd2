"""
Cyrnel Origin Audit Engine
FastAPI application that turns sale webhooks into emailed automation audits.
"""

import logging
import os

from fastapi import FastAPI

from app.routers import webhooks

# Configure logging to output to console
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)

VERSION = "1.1.0"

app = FastAPI(
    title="Cyrnel Origin Audit Engine",
    description="Generates AI-powered business automation audits for new sales and emails them to buyers",
    version=VERSION,
)

# Include routers
app.include_router(webhooks.router, prefix="/api/webhooks", tags=["webhooks"])


@app.on_event("startup")
async def log_startup() -> None:
    """
    Log the engine banner and the webhook URL.

    The port shown is taken from the ``HOST_PORT`` environment variable so
    that Docker-mapped ports are reported correctly.  Defaults to 8000.
    """
    host_port = os.getenv("HOST_PORT", "8000")
    logger.info(
        "Cyrnel Origin Automation Engine v%s\n"
        "  Webhook: http://localhost:%s/api/webhooks/process-sale",
        VERSION,
        host_port,
    )


@app.get("/")
async def root():
    return {"message": "Cyrnel Origin Audit Engine", "version": VERSION}


@app.get("/health")
async def health():
    return {"status": "ok"}
