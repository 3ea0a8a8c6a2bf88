from app.integrations.iiko.transformer import IikoTransformer
from app.models.iiko import PriceList, PriceListItemsResponse

from conftest import PRICE_LIST_ITEMS


def price_map():
    return PriceListItemsResponse.model_validate(PRICE_LIST_ITEMS).price_map()


def test_build_catalog_merges_prices(nomenclature):
    catalog = IikoTransformer.build_catalog(nomenclature, price_map())
    products = {p.id: p for p in catalog.products}

    # price list wins, even for products not included in the iiko menu
    assert products["prod-1"].price == 250.5
    # first positive size price, rounded to 2 decimals
    assert products["prod-2"].price == 100.0
    # deleted and zero-priced products are dropped
    assert "prod-3" not in products
    assert "prod-4" not in products
    assert products["prod-5"].categoryId == "default"
    assert products["prod-5"].categoryName == "Товары"
    assert all(p.price > 0 for p in catalog.products)


def test_categories_only_from_surviving_products(nomenclature):
    catalog = IikoTransformer.build_catalog(nomenclature, price_map())
    assert [(c.id, c.name) for c in catalog.categories] == [
        ("g-burgers", "Бургеры"),
        ("g-drinks", "Напитки"),
        ("default", "Товары"),
    ]


def test_build_catalog_is_deterministic(nomenclature):
    first = IikoTransformer.build_catalog(nomenclature, price_map())
    second = IikoTransformer.build_catalog(nomenclature, price_map())
    assert first.model_dump_json() == second.model_dump_json()


def test_empty_price_map_uses_size_prices(nomenclature):
    catalog = IikoTransformer.build_catalog(nomenclature, {})
    assert [p.id for p in catalog.products] == ["prod-2", "prod-5"]


def test_select_price_list_policy():
    lists = [PriceList(id="a", name="First"), PriceList(id="b", name="Second")]
    assert IikoTransformer.select_price_list(lists).id == "a"
    assert IikoTransformer.select_price_list(lists, price_list_id="b").id == "b"
    assert IikoTransformer.select_price_list(lists, price_list_name="Second").id == "b"
    assert IikoTransformer.select_price_list(lists, price_list_id="missing").id == "a"
    assert IikoTransformer.select_price_list([]) is None
