import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from .api import scans
from .dependencies import get_scan_service, get_settings, wire_event_handlers
from .logging_config import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    settings = get_settings()
    setup_logging(settings)

    config_info = settings.config_file_info
    logging.info(f"Configuration loaded from: {config_info['active_config_file']}")
    logging.info(f"Running on hostname: {config_info['hostname']}")
    logging.info(f"External storage root: {settings.external_storage_root}")
    if not settings.installed_packages:
        logging.warning("No installed package list configured, cache scans run in degraded mode")

    await wire_event_handlers()
    scan_service = get_scan_service()

    yield

    logging.info("Storage Sweeper shutting down...")
    await scan_service.stop()


app = FastAPI(
    title="Storage Sweeper",
    description="Scans device storage for junk, caches, duplicates and large files and deletes selections",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(scans.router)


@app.get("/health")
async def health():
    return {"status": "healthy", "service": "storage-sweeper"}


if __name__ == "__main__":
    uvicorn.run(
        "storage_sweeper.main:app", host="0.0.0.0", port=8000, reload=False, log_level="info"
    )
