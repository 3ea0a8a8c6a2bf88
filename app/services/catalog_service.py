"""
Catalog synchronization service.
Pulls nomenclature and prices from iiko, stores the merged catalog, and falls back
to a static menu when iiko cannot be used.
"""

from typing import Any, Optional

import structlog

from app.errors import UpstreamUnavailableError
from app.integrations.iiko.api_client import IikoAPIClient
from app.integrations.iiko.transformer import IikoTransformer
from app.models.database import Catalog, Category, Product
from app.services.document_store import JsonDocumentStore

logger = structlog.get_logger()

FALLBACK_CATALOG = Catalog(
    categories=[
        Category(id="c1", name="Бургеры"),
        Category(id="c2", name="Закуски"),
    ],
    products=[
        Product(id="p1", name="Классик Бургер", price=350, categoryId="c1", categoryName="Бургеры"),
        Product(id="p2", name="Двойной Бургер", price=450, categoryId="c1", categoryName="Бургеры"),
        Product(id="p3", name="Картофель фри", price=150, categoryId="c2", categoryName="Закуски"),
    ],
)

# How many products to echo in the sync log
LOG_PREVIEW_SIZE = 40


def fallback_catalog() -> Catalog:
    return FALLBACK_CATALOG.model_copy(deep=True)


class CatalogSynchronizer:
    """Keeps the stored catalog in line with iiko."""

    def __init__(
        self,
        iiko_client: IikoAPIClient,
        store: JsonDocumentStore,
        price_list_id: Optional[str] = None,
        price_list_name: Optional[str] = None,
    ):
        self.iiko_client = iiko_client
        self.store = store
        self.price_list_id = price_list_id
        self.price_list_name = price_list_name
        self.last_sync_ok = False

    async def _load_price_map(self, token: str) -> dict[str, float]:
        """Prices of the selected price list; empty when price lists are unavailable."""
        try:
            price_lists = (await self.iiko_client.price_lists(token)).pricelists
        except Exception as e:
            logger.warning("iiko price lists unavailable", error=str(e))
            return {}

        logger.info(
            "iiko price lists loaded",
            count=len(price_lists),
            price_lists=[{"id": pl.id, "name": pl.name} for pl in price_lists],
        )
        price_list = IikoTransformer.select_price_list(
            price_lists, self.price_list_id, self.price_list_name
        )
        if price_list is None:
            return {}

        logger.info("Using price list", price_list_id=price_list.id, name=price_list.name)
        try:
            items = await self.iiko_client.price_list_items(token, price_list.id)
        except Exception as e:
            logger.error("Error loading price list items", price_list_id=price_list.id, error=str(e))
            return {}

        price_map = items.price_map()
        logger.info("Price map created", items=len(items.items), priced_products=len(price_map))
        return price_map

    async def sync(self) -> Optional[Catalog]:
        """
        Rebuild the catalog from iiko and persist it.

        Returns:
            The new catalog, or None if iiko could not be used. The stored
            catalog is only replaced on success.
        """
        try:
            token = await self.iiko_client.get_token()
            if not token:
                raise UpstreamUnavailableError("No iiko token")

            logger.info("Loading iiko nomenclature")
            nomenclature = await self.iiko_client.nomenclature(token)
            logger.info(
                "iiko nomenclature loaded",
                products=len(nomenclature.products),
                active_products=sum(1 for p in nomenclature.products if not p.isDeleted),
                product_categories=len(nomenclature.productCategories),
            )

            price_map = await self._load_price_map(token)
            catalog = IikoTransformer.build_catalog(nomenclature, price_map)

            for index, product in enumerate(catalog.products[:LOG_PREVIEW_SIZE]):
                logger.debug(
                    "Catalog product",
                    index=index,
                    name=product.name,
                    price=product.price,
                    category=product.categoryName,
                )

            await self.store.with_catalog(lambda _: catalog)
            self.last_sync_ok = True
            logger.info(
                "Catalog synced",
                categories=len(catalog.categories),
                products=len(catalog.products),
            )
            return catalog
        except Exception as e:
            logger.error("iiko menu load failed", error=str(e), error_type=type(e).__name__)
            self.last_sync_ok = False
            return None

    async def ensure_catalog(self) -> Catalog:
        """Sync, and store the fallback catalog when the sync fails."""
        catalog = await self.sync()
        if catalog is not None:
            return catalog
        logger.warning("Using fallback menu")
        return await self.store.with_catalog(lambda _: fallback_catalog())

    def active_catalog(self) -> Catalog:
        """Stored catalog when it has products, otherwise the fallback."""
        catalog = self.store.catalog
        if catalog.products:
            return catalog
        return fallback_catalog()

    async def raw_nomenclature(self) -> dict[str, Any]:
        """Summary of the raw iiko nomenclature, for diagnostics."""
        token = await self.iiko_client.get_token()
        if not token:
            return {"error": "No token"}

        data = await self.iiko_client.raw_nomenclature(token)
        groups = data.get("groups") or []
        categories = data.get("productCategories") or []
        products = data.get("products") or []
        for group in groups:
            logger.debug(
                "iiko group",
                id=group.get("id"),
                name=group.get("name"),
                parent=group.get("parentGroup"),
            )
        return {
            "groupsCount": len(groups),
            "categoriesCount": len(categories),
            "productsCount": len(products),
            "products": [
                {
                    "id": p.get("id"),
                    "name": p.get("name"),
                    "parentGroup": p.get("parentGroup"),
                    "isDeleted": p.get("isDeleted"),
                }
                for p in products
            ],
        }
