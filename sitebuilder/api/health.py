"""Health check endpoint."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from sitebuilder.api.deps import get_site_store
from sitebuilder.filesystem.site_store import SiteStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    version: str
    sites_dir: str


@router.get("/api/health", response_model=HealthResponse)
async def health_check(
    store: Annotated[SiteStore, Depends(get_site_store)],
) -> HealthResponse:
    """Health check endpoint for monitoring and load balancers."""
    sites_status = "ok" if store.sites_dir.is_dir() else "missing"
    if sites_status != "ok":
        logger.warning("Health check: sites directory %s is missing", store.sites_dir)
    return HealthResponse(
        status="ok" if sites_status == "ok" else "degraded",
        version="0.1.0",
        sites_dir=sites_status,
    )
