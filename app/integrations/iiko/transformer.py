"""
iiko data transformation.
Merges the nomenclature with a price list into the storefront catalog.
"""

from typing import Optional

import structlog

from app.models.database import Catalog, Category, Product
from app.models.iiko import NomenclatureResponse, PriceList
from app.utils.money import round2

logger = structlog.get_logger()

DEFAULT_CATEGORY_ID = "default"
DEFAULT_CATEGORY_NAME = "Товары"


class IikoTransformer:
    """Service for transforming iiko data to the storefront catalog."""

    @staticmethod
    def select_price_list(
        price_lists: list[PriceList],
        price_list_id: Optional[str] = None,
        price_list_name: Optional[str] = None,
    ) -> Optional[PriceList]:
        """
        Pick the authoritative price list.

        An explicit id wins, then an exact name match; otherwise the first
        price list returned by iiko is used.
        """
        if not price_lists:
            return None
        if price_list_id:
            for price_list in price_lists:
                if price_list.id == price_list_id:
                    return price_list
            logger.warning("Configured price list id not found", price_list_id=price_list_id)
        if price_list_name:
            for price_list in price_lists:
                if price_list.name == price_list_name:
                    return price_list
            logger.warning("Configured price list name not found", price_list_name=price_list_name)
        return price_lists[0]

    @staticmethod
    def category_names(nomenclature: NomenclatureResponse) -> dict[str, str]:
        """id -> name for product categories, with groups as a secondary source."""
        names = {group.id: group.name for group in nomenclature.groups if group.name}
        names.update(
            {category.id: category.name for category in nomenclature.productCategories}
        )
        return names

    @staticmethod
    def build_catalog(
        nomenclature: NomenclatureResponse,
        price_map: dict[str, float],
    ) -> Catalog:
        """
        Build the served catalog.

        Every product that is not deleted is considered, whether or not it is
        included in the iiko menu. Price comes from the price list, then from the
        first positive size price; products without a positive price are dropped.
        Categories are the distinct categories of the surviving products, in
        first-seen order.

        Args:
            nomenclature: Parsed /api/1/nomenclature response
            price_map: productId -> price from the selected price list

        Returns:
            Catalog with categories and priced products
        """
        names = IikoTransformer.category_names(nomenclature)
        products: list[Product] = []
        categories: dict[str, Category] = {}

        for item in nomenclature.products:
            if item.isDeleted:
                continue

            price = price_map.get(item.id)
            if price is None:
                price = item.size_price() or 0
            price = round2(price)
            if price <= 0:
                continue

            category_id = item.parentGroup or DEFAULT_CATEGORY_ID
            category_name = names.get(category_id) or DEFAULT_CATEGORY_NAME
            categories.setdefault(category_id, Category(id=category_id, name=category_name))
            products.append(
                Product(
                    id=item.id,
                    name=item.name,
                    price=price,
                    categoryId=category_id,
                    categoryName=category_name,
                )
            )

        return Catalog(categories=list(categories.values()), products=products)
