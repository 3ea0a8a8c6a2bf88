"""
Service container wiring for the FastAPI app.
Each app instance owns one container; handlers receive it through Depends.
"""

from fastapi import Request

from app.config import Settings
from app.integrations.iiko.api_client import IikoAPIClient
from app.services.catalog_service import CatalogSynchronizer
from app.services.document_store import JsonDocumentStore
from app.services.order_service import OrderService
from app.services.session_validator import SessionValidator
from app.workers.relay_worker import RelayWorker


class ServiceContainer:
    """All long-lived components of the storefront backend."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.store = JsonDocumentStore(settings.db_path)
        self.validator = SessionValidator(settings.bot_token)
        self.iiko_client = IikoAPIClient.from_settings(settings)
        self.catalog = CatalogSynchronizer(
            self.iiko_client,
            self.store,
            price_list_id=settings.iiko_price_list_id,
            price_list_name=settings.iiko_price_list_name,
        )
        self.relay = RelayWorker(
            self.iiko_client,
            self.store,
            queue_size=settings.relay_queue_size,
            worker_count=settings.relay_worker_count,
        )
        self.orders = OrderService(self.validator, self.store, self.catalog, self.relay)

    async def startup(self):
        """Load the store, sync the catalog and start the relay worker."""
        await self.store.read()
        await self.catalog.ensure_catalog()
        await self.relay.start()

    async def shutdown(self):
        await self.relay.stop()
        await self.iiko_client.close()


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services
