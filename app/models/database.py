"""
Pydantic models for the JSON document store.
These models represent the structure of data persisted in the .db.json file.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Dict, Any, List


class UserRecord(BaseModel):
    """Model for entries of the users map."""
    id: int | str
    first_name: Optional[str] = None


class Category(BaseModel):
    """Model for catalog categories."""
    id: str
    name: str


class Product(BaseModel):
    """Model for catalog products."""
    id: str
    name: str
    price: float
    categoryId: str
    categoryName: str


class Catalog(BaseModel):
    """Model for the menu singleton."""
    categories: List[Category] = Field(default_factory=list)
    products: List[Product] = Field(default_factory=list)


class OrderItem(BaseModel):
    """Order line with the price captured at order time."""
    id: str
    name: str
    price: float
    qty: int


class Delivery(BaseModel):
    """Delivery options sent by the client; unknown keys are kept as-is."""
    model_config = ConfigDict(extra="allow")

    method: Any = None
    zone: Any = None
    fee: float = 0


class OrderRecord(BaseModel):
    """Model for entries of the orders list."""
    id: str
    number: str
    userId: Optional[int | str] = None
    items: List[OrderItem]
    delivery: Delivery
    subtotal: float
    total: float
    status: str = "created"  # created, sent_to_pos
    posSent: bool = False
    createdAt: int


class StoreDocument(BaseModel):
    """Whole persisted document."""
    model_config = ConfigDict(extra="allow")

    users: Dict[str, UserRecord] = Field(default_factory=dict)
    orders: List[OrderRecord] = Field(default_factory=list)
    menu: Catalog = Field(default_factory=Catalog)

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")
