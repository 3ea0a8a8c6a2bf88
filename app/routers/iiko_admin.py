"""
Diagnostic and maintenance endpoints for the iiko integration.
"""

import structlog
from fastapi import APIRouter, Depends

from app.dependencies import ServiceContainer, get_services

logger = structlog.get_logger()

router = APIRouter(prefix="/api", tags=["iiko"])


@router.post("/menu/sync")
async def sync_menu(services: ServiceContainer = Depends(get_services)):
    """Re-sync the catalog from iiko now; the fallback menu is stored if iiko fails."""
    catalog = await services.catalog.ensure_catalog()
    synced = services.catalog.last_sync_ok
    return {
        "ok": synced,
        "fallback": not synced,
        "categories": len(catalog.categories),
        "products": len(catalog.products),
    }


@router.get("/debug/iiko-raw")
async def iiko_raw(services: ServiceContainer = Depends(get_services)):
    """Raw nomenclature structure as iiko returns it. Not a stable contract."""
    try:
        return await services.catalog.raw_nomenclature()
    except Exception as e:
        logger.error("iiko raw nomenclature failed", error=str(e))
        return {"error": str(e)}
