"""
FastAPI router for the mini-app storefront.
Serves bootstrap data and the menu, accepts checkouts and reports the current user.
"""

from typing import Any, Optional

import structlog
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.dependencies import ServiceContainer, get_services
from app.errors import AuthInvalidError, SessionParseError

logger = structlog.get_logger()

router = APIRouter(prefix="/api", tags=["storefront"])


class InitDataRequest(BaseModel):
    """Request body carrying only initData."""

    initData: Any = None


class OrderRequest(BaseModel):
    """Checkout request body."""

    initData: Any = None
    items: Any = None
    delivery: Any = None


def unauthorized(error: str) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"ok": False, "error": error})


@router.post("/bootstrap")
async def bootstrap(
    body: Optional[InitDataRequest] = None,
    services: ServiceContainer = Depends(get_services),
):
    """
    Initial mini-app payload: user, menu and the user's orders.
    Without initData the menu is served anonymously.
    """
    init_data = body.initData if body else None
    user = None

    if init_data:
        result = services.validator.validate(init_data)
        if not result.ok:
            logger.warning("Bootstrap with invalid initData", reason=result.reason.value)
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"error": f"initData invalid: {result.reason.value}"},
            )
        try:
            user = services.validator.extract_user(init_data)
        except SessionParseError as e:
            logger.error("Parse user error", error=e.message)
        if user is not None and user.id is not None:
            await services.store.upsert_user(user.id, user.first_name)

    menu = services.catalog.active_catalog()
    orders = services.orders.orders_for_user(user.id if user else None)
    return {
        "user": user.model_dump(exclude_none=True) if user else None,
        "categories": [c.model_dump() for c in menu.categories],
        "products": [p.model_dump() for p in menu.products],
        "orders": [o.model_dump() for o in orders],
    }


@router.get("/menu")
async def get_menu(services: ServiceContainer = Depends(get_services)):
    """Current catalog as persisted."""
    try:
        menu = await services.store.read_catalog()
    except Exception as e:
        logger.error("Failed to read menu", error=str(e))
        return JSONResponse(status_code=500, content={"error": str(e)})
    return menu.model_dump()


@router.get("/orders")
async def list_orders(services: ServiceContainer = Depends(get_services)):
    """Latest orders, most recent first."""
    orders = services.orders.recent_orders(services.settings.orders_page_size)
    return {"orders": [o.model_dump() for o in orders]}


@router.post("/orders")
async def create_order(
    body: Optional[OrderRequest] = None,
    services: ServiceContainer = Depends(get_services),
):
    """Checkout. Validation failures are returned with ok=false and status 200."""
    try:
        body = body or OrderRequest()
        result = await services.orders.place_order(body.initData, body.items, body.delivery)
    except AuthInvalidError:
        return unauthorized("initData invalid")
    except SessionParseError as e:
        return {"ok": False, "error": e.message}
    except Exception as e:
        logger.error("Order placement failed", error=str(e), error_type=type(e).__name__)
        return {"ok": False, "error": str(e)}

    if not result.ok:
        return {"ok": False, "error": result.error}
    return {"ok": True, "orderNumber": result.orderNumber, "total": result.total}


@router.post("/whoami")
async def whoami(
    body: Optional[InitDataRequest] = None,
    services: ServiceContainer = Depends(get_services),
):
    """Echo the verified user."""
    try:
        user = services.orders.authenticate(body.initData if body else None)
    except AuthInvalidError:
        return unauthorized("initData invalid")
    except SessionParseError as e:
        return {"ok": False, "error": e.message}
    return {"ok": True, "user": user.model_dump(exclude_none=True) if user else {}}
