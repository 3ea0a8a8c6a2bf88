import httpx
import pytest
import respx

from app.main import create_app
from app.services.catalog_service import FALLBACK_CATALOG
from app.services.session_validator import sign_init_data

from conftest import BOT_TOKEN, IIKO_BASE, NOMENCLATURE, make_init_data


@pytest.fixture
def api_client(offline_settings, offline_services):
    app = create_app(settings=offline_settings, services=offline_services)
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_bootstrap_with_valid_init_data(api_client, offline_services, init_data):
    async with api_client as client:
        response = await client.post("/api/bootstrap", json={"initData": init_data})

    assert response.status_code == 200
    data = response.json()
    assert data["user"]["id"] == 42
    assert [p["id"] for p in data["products"]] == ["p1", "p2", "p3"]
    assert data["orders"] == []
    assert offline_services.store.data.users["42"].first_name == "Иван"


@pytest.mark.asyncio
async def test_bootstrap_anonymous(api_client):
    async with api_client as client:
        response = await client.post("/api/bootstrap", json={})
    assert response.status_code == 200
    assert response.json()["user"] is None
    assert response.json()["orders"] == []


@pytest.mark.asyncio
async def test_bootstrap_invalid_init_data(api_client):
    async with api_client as client:
        response = await client.post("/api/bootstrap", json={"initData": "auth_date=1&hash=deadbeef"})
    assert response.status_code == 401
    assert response.json() == {"error": "initData invalid: hash_mismatch"}


@pytest.mark.asyncio
async def test_bootstrap_malformed_user_still_serves_menu(api_client):
    init_data = sign_init_data({"auth_date": "1", "user": "{broken"}, BOT_TOKEN)
    async with api_client as client:
        response = await client.post("/api/bootstrap", json={"initData": init_data})
    assert response.status_code == 200
    assert response.json()["user"] is None


@pytest.mark.asyncio
async def test_place_order_and_list(api_client, init_data):
    async with api_client as client:
        response = await client.post(
            "/api/orders",
            json={
                "initData": init_data,
                "items": [{"id": "p1", "qty": 2}],
                "delivery": {"method": "courier", "zone": "zone1"},
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["ok"] is True
        assert data["total"] == 800

        orders = (await client.get("/api/orders")).json()["orders"]
        assert orders[0]["number"] == data["orderNumber"]
        assert orders[0]["subtotal"] == 700
        assert orders[0]["delivery"]["fee"] == 100

        bootstrap = (await client.post("/api/bootstrap", json={"initData": init_data})).json()
        assert [o["number"] for o in bootstrap["orders"]] == [data["orderNumber"]]


@pytest.mark.asyncio
async def test_place_order_unknown_product(api_client, offline_services, init_data):
    async with api_client as client:
        response = await client.post("/api/orders", json={"initData": init_data, "items": [{"id": "zzz"}]})
    assert response.status_code == 200
    assert response.json() == {"ok": False, "error": "Товар не найден: zzz"}
    assert offline_services.store.orders == []


@pytest.mark.asyncio
async def test_place_order_empty_cart(api_client, init_data):
    async with api_client as client:
        response = await client.post("/api/orders", json={"initData": init_data, "items": []})
    assert response.json() == {"ok": False, "error": "Пустая корзина"}


@pytest.mark.asyncio
async def test_place_order_tampered_hash(api_client, offline_services, init_data):
    tampered = init_data[:-1] + ("0" if init_data[-1] != "0" else "1")
    async with api_client as client:
        response = await client.post("/api/orders", json={"initData": tampered, "items": [{"id": "p1"}]})
    assert response.status_code == 401
    assert response.json() == {"ok": False, "error": "initData invalid"}
    assert offline_services.store.orders == []


@pytest.mark.asyncio
async def test_orders_page_is_limited(api_client, offline_services, init_data):
    async with api_client as client:
        for _ in range(22):
            await client.post("/api/orders", json={"initData": init_data, "items": [{"id": "p3"}]})
        orders = (await client.get("/api/orders")).json()["orders"]
    assert len(orders) == 20
    assert orders[0]["number"] == offline_services.store.orders[-1].number


@pytest.mark.asyncio
async def test_whoami(api_client, init_data):
    async with api_client as client:
        ok = await client.post("/api/whoami", json={"initData": init_data})
        bad = await client.post("/api/whoami", json={"initData": make_init_data({"id": 1}, bot_token="x")})
    assert ok.json() == {"ok": True, "user": {"id": 42, "first_name": "Иван", "last_name": "Петров"}}
    assert bad.status_code == 401


@pytest.mark.asyncio
async def test_menu_rereads_store(api_client, offline_services):
    await offline_services.catalog.ensure_catalog()
    async with api_client as client:
        response = await client.get("/api/menu")
    assert response.json() == FALLBACK_CATALOG.model_dump()


@pytest.mark.asyncio
async def test_menu_sync_endpoint(settings, services):
    app = create_app(settings=settings, services=services)
    transport = httpx.ASGITransport(app=app)
    with respx.mock(base_url=IIKO_BASE, assert_all_called=False) as respx_mock:
        respx_mock.post("/api/1/access_token").mock(return_value=httpx.Response(200, json={"token": "tok"}))
        respx_mock.post("/api/1/nomenclature").mock(return_value=httpx.Response(200, json=NOMENCLATURE))
        respx_mock.get("/api/1/pricelists").mock(return_value=httpx.Response(200, json={"pricelists": []}))
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post("/api/menu/sync")
    assert response.json() == {"ok": True, "fallback": False, "categories": 2, "products": 2}


@pytest.mark.asyncio
async def test_menu_sync_offline_reports_fallback(api_client):
    async with api_client as client:
        response = await client.post("/api/menu/sync")
    assert response.json() == {"ok": False, "fallback": True, "categories": 2, "products": 3}


@pytest.mark.asyncio
async def test_debug_endpoint_without_token(api_client):
    async with api_client as client:
        response = await client.get("/api/debug/iiko-raw")
    assert response.json() == {"error": "No token"}


@pytest.mark.asyncio
async def test_health(api_client):
    async with api_client as client:
        response = await client.get("/health")
    assert response.json()["status"] == "healthy"
    assert response.json()["iiko_configured"] is False


def non_ascii_hash(init_data):
    head, _, digest = init_data.rpartition("hash=")
    return head + "hash=%D0%B0" + digest[1:]


@pytest.mark.asyncio
async def test_non_ascii_hash_is_unauthorized(api_client, offline_services, init_data):
    tampered = non_ascii_hash(init_data)
    async with api_client as client:
        order = await client.post("/api/orders", json={"initData": tampered, "items": [{"id": "p1"}]})
        who = await client.post("/api/whoami", json={"initData": tampered})
        boot = await client.post("/api/bootstrap", json={"initData": tampered})
    assert order.status_code == 401
    assert who.status_code == 401
    assert boot.status_code == 401
    assert boot.json() == {"error": "initData invalid: hash_mismatch"}
    assert offline_services.store.orders == []


@pytest.mark.asyncio
async def test_place_order_without_body_is_unauthorized(api_client):
    async with api_client as client:
        no_body = await client.post("/api/orders")
        numeric = await client.post("/api/orders", json={"initData": 123, "items": [{"id": "p1"}]})
    assert no_body.status_code == 401
    assert numeric.status_code == 401
    assert numeric.json() == {"ok": False, "error": "initData invalid"}


@pytest.mark.asyncio
async def test_place_order_with_non_string_zone(api_client, init_data):
    async with api_client as client:
        response = await client.post(
            "/api/orders",
            json={"initData": init_data, "items": [{"id": "p1"}], "delivery": {"method": "pickup", "zone": 1}},
        )
    assert response.json()["ok"] is True
    assert response.json()["total"] == 350
