"""
Order Service: checkout pipeline.
Prices a cart against the active catalog, computes the delivery fee, persists the
order and hands it to the relay worker.
"""
import re
import secrets
import string
import time
from typing import Any, Optional

import structlog
from pydantic import BaseModel

from app.errors import (
    AuthInvalidError,
    EmptyCartError,
    ErrorKind,
    ProductNotFoundError,
    StorefrontError,
)
from app.models.database import Delivery, OrderItem, OrderRecord
from app.services.catalog_service import CatalogSynchronizer
from app.services.document_store import JsonDocumentStore
from app.services.session_validator import SessionUser, SessionValidator
from app.utils.money import round2
from app.workers.relay_worker import RelayWorker

logger = structlog.get_logger()

# Courier fee per delivery zone; other zones and pickup are free
COURIER_ZONE_FEES = {"zone1": 100, "zone2": 200}

ORDER_NUMBER_ALPHABET = string.ascii_letters + string.digits + "_-"
ORDER_NUMBER_LENGTH = 6

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


class OrderResult(BaseModel):
    """Checkout outcome returned to the client."""
    ok: bool
    orderNumber: Optional[str] = None
    total: Optional[float] = None
    error: Optional[str] = None
    kind: Optional[ErrorKind] = None


def coerce_qty(value: Any) -> int:
    """Quantity as an integer >= 1; anything unparseable counts as 1."""
    if isinstance(value, bool) or value is None:
        qty = 1
    elif isinstance(value, int):
        qty = value
    elif isinstance(value, float):
        qty = int(value) if value == value and abs(value) != float("inf") else 1
    elif isinstance(value, str):
        match = _LEADING_INT.match(value)
        qty = int(match.group(1)) if match else 1
    else:
        qty = 1
    # A zero quantity is treated like a missing one
    return max(1, qty or 1)


def delivery_fee(delivery: Delivery) -> float:
    if delivery.method != "courier" or not isinstance(delivery.zone, str):
        return 0
    return COURIER_ZONE_FEES.get(delivery.zone, 0)


def new_order_number(existing: set[str]) -> str:
    """Short order number, re-rolled until it is not already taken."""
    while True:
        number = "".join(secrets.choice(ORDER_NUMBER_ALPHABET) for _ in range(ORDER_NUMBER_LENGTH))
        if number not in existing:
            return number


class OrderService:
    """Service for placing and reading orders."""

    def __init__(
        self,
        validator: SessionValidator,
        store: JsonDocumentStore,
        catalog: CatalogSynchronizer,
        relay: RelayWorker,
    ):
        self.validator = validator
        self.store = store
        self.catalog = catalog
        self.relay = relay

    def authenticate(self, init_data: Any) -> Optional[SessionUser]:
        """
        Verify initData and return the user it carries.

        Raises:
            AuthInvalidError: if initData is missing or its hash does not match
            SessionParseError: if the user field is malformed
        """
        result = self.validator.validate(init_data)
        if not result.ok:
            raise AuthInvalidError("initData invalid")
        return self.validator.extract_user(init_data)

    def price_cart(self, items: Any) -> tuple[list[OrderItem], float]:
        """
        Price cart lines against the active catalog.

        Returns:
            (order lines with snapshot prices, subtotal)

        Raises:
            EmptyCartError: if items is not a non-empty list
            ProductNotFoundError: if any line references an unknown product
        """
        if not isinstance(items, list) or not items:
            raise EmptyCartError()

        by_id = {product.id: product for product in self.catalog.active_catalog().products}
        lines: list[OrderItem] = []
        subtotal = 0.0
        for item in items:
            product_id = item.get("id") if isinstance(item, dict) else None
            product = by_id.get(product_id) if isinstance(product_id, str) else None
            if product is None:
                raise ProductNotFoundError(product_id)
            qty = coerce_qty(item.get("qty"))
            subtotal += product.price * qty
            lines.append(OrderItem(id=product.id, name=product.name, price=product.price, qty=qty))
        return lines, round2(subtotal)

    async def place_order(
        self,
        init_data: Any,
        items: Any,
        delivery: Any = None,
    ) -> OrderResult:
        """
        Run the checkout pipeline.

        Args:
            init_data: Signed mini-app initData
            items: Cart lines [{"id": ..., "qty": ...}]
            delivery: Delivery options, e.g. {"method": "courier", "zone": "zone1"}

        Returns:
            OrderResult; validation failures come back with ok=False

        Raises:
            AuthInvalidError: if initData does not verify
        """
        user = self.authenticate(init_data)
        try:
            lines, subtotal = self.price_cart(items)
        except StorefrontError as e:
            logger.info("Order rejected", reason=e.kind.value, error=e.message)
            return OrderResult(ok=False, error=e.message, kind=e.kind)

        # The fee is always computed here; a client-sent value is discarded
        delivery_info = Delivery.model_validate({**(delivery if isinstance(delivery, dict) else {}), "fee": 0})
        fee = delivery_fee(delivery_info)
        delivery_info.fee = fee
        total = round2(subtotal + fee)

        def append(orders: list[OrderRecord]) -> OrderRecord:
            record = OrderRecord(
                id=secrets.token_urlsafe(16),
                number=new_order_number({o.number for o in orders}),
                userId=user.id if user else None,
                items=lines,
                delivery=delivery_info,
                subtotal=subtotal,
                total=total,
                status="created",
                posSent=False,
                createdAt=int(time.time() * 1000),
            )
            orders.append(record)
            return record

        record = await self.store.with_orders(append)
        logger.info(
            "Order created",
            order_number=record.number,
            user_id=record.userId,
            lines=len(lines),
            subtotal=subtotal,
            fee=fee,
            total=total,
        )

        self.relay.submit(record, user)
        return OrderResult(ok=True, orderNumber=record.number, total=total)

    def recent_orders(self, limit: int = 20) -> list[OrderRecord]:
        """Latest orders, most recent first."""
        return list(reversed(self.store.orders[-limit:])) if limit > 0 else []

    def orders_for_user(self, user_id: Optional[int | str]) -> list[OrderRecord]:
        if user_id is None:
            return []
        return [order for order in self.store.orders if order.userId == user_id]
