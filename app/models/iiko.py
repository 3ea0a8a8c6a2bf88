"""
Pydantic models for iiko Cloud API requests and responses.
Only the fields used by catalog sync and order relay are declared; the rest are ignored.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class IikoModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class AccessTokenResponse(IikoModel):
    """Response of /api/1/access_token."""

    token: str
    correlationId: str | None = None


class CurrentPrice(IikoModel):
    currentPrice: float | None = None


class SizePrice(IikoModel):
    """Price of one product size."""

    sizeId: str | None = None
    price: CurrentPrice | None = None


class NomenclatureProduct(IikoModel):
    """Product entry of the nomenclature."""

    id: str
    name: str = ""
    parentGroup: str | None = None
    productCategoryId: str | None = None
    isDeleted: bool = False
    isIncludedInMenu: bool | None = None
    sizePrices: list[SizePrice] = Field(default_factory=list)

    def size_price(self) -> float | None:
        """First positive current price among the product's sizes."""
        for size_price in self.sizePrices:
            if size_price.price and (size_price.price.currentPrice or 0) > 0:
                return size_price.price.currentPrice
        return None


class NomenclatureGroup(IikoModel):
    id: str
    name: str = ""
    parentGroup: str | None = None
    isDeleted: bool = False


class ProductCategory(IikoModel):
    id: str
    name: str = ""
    isDeleted: bool = False


class NomenclatureResponse(IikoModel):
    """Response of /api/1/nomenclature."""

    groups: list[NomenclatureGroup] = Field(default_factory=list)
    productCategories: list[ProductCategory] = Field(default_factory=list)
    products: list[NomenclatureProduct] = Field(default_factory=list)
    revision: int | None = None


class PriceList(IikoModel):
    id: str
    name: str = ""


class PriceListsResponse(IikoModel):
    """Response of /api/1/pricelists."""

    pricelists: list[PriceList] = Field(default_factory=list)


class PriceListItem(IikoModel):
    productId: str | None = None
    price: float | None = None


class PriceListItemsResponse(IikoModel):
    """Response of /api/1/pricelists/{id}."""

    items: list[PriceListItem] = Field(default_factory=list)

    def price_map(self) -> dict[str, float]:
        return {
            item.productId: item.price
            for item in self.items
            if item.productId and item.price is not None
        }


class DeliveryCustomer(IikoModel):
    name: str
    id: str | None = None


class DeliveryItem(IikoModel):
    productId: str
    amount: int


class DeliveryOrder(IikoModel):
    phone: str = ""
    customer: DeliveryCustomer
    items: list[DeliveryItem]


class CreateDeliveryRequest(IikoModel):
    """Request body of /api/1/deliveries/create."""

    organizationId: str | None = None
    order: DeliveryOrder


class CreateDeliveryResponse(IikoModel):
    id: str | None = None
    correlationId: str | None = None
    orderInfo: dict[str, Any] | None = None
