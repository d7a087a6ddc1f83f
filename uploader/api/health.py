"""Health check endpoint."""

import os

from pydantic import BaseModel

from uploader.core.logger import LogIcon, logger
from uploader.core.router import Router
from uploader.core.settings import settings as st
from uploader.transfer.config import TransferConfig

router = Router(__file__, prefix="/")


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    service: str
    version: str
    storage_writable: bool
    cipher: bool


@router.get("/health")
async def health_check(global_dependencies) -> HealthResponse:
    config: TransferConfig = global_dependencies["state"].transfer
    writable = os.access(config.root, os.W_OK)
    logger.info("Health check requested", icon=LogIcon.HEALTHCHECK, storage_writable=writable)
    return HealthResponse(
        status="healthy" if writable else "degraded",
        service=st.API_NAME,
        version=st.API_VERSION,
        storage_writable=writable,
        cipher=config.cipher is not None,
    )
