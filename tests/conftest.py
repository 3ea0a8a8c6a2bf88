import json

import pytest

from app.config import Settings
from app.dependencies import ServiceContainer
from app.models.iiko import NomenclatureResponse
from app.services.session_validator import sign_init_data

BOT_TOKEN = "123456:TEST-BOT-TOKEN"
IIKO_BASE = "https://iiko.test"

NOMENCLATURE = {
    "groups": [{"id": "g-burgers", "name": "Бургеры", "parentGroup": None}],
    "productCategories": [{"id": "g-drinks", "name": "Напитки"}],
    "products": [
        {"id": "prod-1", "name": "Чизбургер", "parentGroup": "g-burgers", "isDeleted": False,
         "isIncludedInMenu": False, "sizePrices": []},
        {"id": "prod-2", "name": "Кола", "parentGroup": "g-drinks", "isDeleted": False,
         "sizePrices": [{"sizeId": None, "price": {"currentPrice": 0}},
                        {"sizeId": "s2", "price": {"currentPrice": 99.999}}]},
        {"id": "prod-3", "name": "Старый бургер", "parentGroup": "g-burgers", "isDeleted": True,
         "sizePrices": [{"price": {"currentPrice": 300}}]},
        {"id": "prod-4", "name": "Соус по запросу", "parentGroup": "g-sauces", "isDeleted": False,
         "sizePrices": [{"price": {"currentPrice": 0}}]},
        {"id": "prod-5", "name": "Вода", "parentGroup": None, "isDeleted": False,
         "sizePrices": [{"price": {"currentPrice": 50}}]},
    ],
}

PRICE_LISTS = {"pricelists": [{"id": "pl-main", "name": "Основной"}, {"id": "pl-2", "name": "Доставка"}]}
PRICE_LIST_ITEMS = {"items": [{"productId": "prod-1", "price": 250.5}, {"productId": "prod-4", "price": 0}]}


@pytest.fixture
def nomenclature():
    return NomenclatureResponse.model_validate(NOMENCLATURE)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        bot_token=BOT_TOKEN,
        iiko_api_base=IIKO_BASE,
        iiko_api_login="api-login",
        iiko_org_id="org-1",
        db_path=str(tmp_path / "db.json"),
        relay_worker_count=1,
    )


@pytest.fixture
def offline_settings(tmp_path):
    return Settings(
        bot_token=BOT_TOKEN,
        iiko_api_base="",
        iiko_api_login="",
        db_path=str(tmp_path / "db.json"),
        relay_worker_count=1,
    )


@pytest.fixture
def services(settings):
    return ServiceContainer(settings)


@pytest.fixture
def offline_services(offline_settings):
    return ServiceContainer(offline_settings)


def make_init_data(user=None, bot_token=BOT_TOKEN, **extra):
    fields = {"auth_date": "1700000000", "query_id": "AAH-test"}
    if user is not None:
        fields["user"] = json.dumps(user, ensure_ascii=False)
    fields.update(extra)
    return sign_init_data(fields, bot_token)


@pytest.fixture
def init_data():
    return make_init_data({"id": 42, "first_name": "Иван", "last_name": "Петров"})
