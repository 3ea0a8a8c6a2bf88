"""
Single-pass catalog sync.
Loads the document store, syncs the catalog from iiko once, then exits.
Exits with status 1 when iiko could not be used and the fallback menu was stored.
"""

import asyncio
import sys

import structlog

from app.config import settings
from app.dependencies import ServiceContainer
from app.utils.logger import configure_logging

configure_logging()
logger = structlog.get_logger()


async def main() -> int:
    services = ServiceContainer(settings)
    try:
        await services.store.read()
        catalog = await services.catalog.ensure_catalog()
        logger.info(
            "Catalog sync finished",
            synced=services.catalog.last_sync_ok,
            categories=len(catalog.categories),
            products=len(catalog.products),
        )
        return 0 if services.catalog.last_sync_ok else 1
    except Exception as e:
        logger.error("Catalog sync failed", error=str(e))
        return 1
    finally:
        await services.iiko_client.close()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
