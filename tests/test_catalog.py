from __future__ import annotations

import httpx

from goha_pos import catalog as catalog_module
from goha_pos.catalog import Catalog, min_price

PRODUCTS = [
    {
        "product_id": "p1",
        "name": "Latte",
        "category": {"category_id": "c1", "name": "Coffee"},
        "sizePrices": [
            {"product_size_id": "ps1", "price": "45", "size": {"size_id": "s1", "size_name": "Small"}},
            {"product_size_id": "ps2", "price": 55, "size": {"size_id": "s2", "size_name": "Large"}},
        ],
    },
    {"product_id": "p2", "name": "Mocha", "category": {"category_id": "c1", "name": "Coffee"}, "is_active": False},
    {"product_id": "p3", "name": "Mint Tea", "category": {"category_id": "c2", "name": "Tea"}},
]


def _load(backend, api, monkeypatch) -> Catalog:
    monkeypatch.setattr(catalog_module, "PRODUCTS_PAGE_LIMIT", 2)

    def _products(request: httpx.Request) -> httpx.Response:
        page = int(request.url.params["page"])
        return httpx.Response(200, json={"success": True, "data": {"products": PRODUCTS[(page - 1) * 2 : page * 2]}})

    backend.add_handler("GET", "/products", _products)
    backend.add("GET", "/categories", {"success": True, "data": [{"category_id": "c1", "name": "Coffee"}]})
    backend.add("GET", "/category-sizes", {"success": True, "data": [{"size_id": "s1"}]})
    backend.add(
        "GET",
        "/category-extras",
        {"success": True, "data": [{"extra_id": "e1", "name": "Shot", "price": 5, "category": {"category_id": "c1"}}]},
    )
    catalog = Catalog(api)
    catalog.load()
    return catalog


def test_load_pages_through_products(backend, api, monkeypatch):
    catalog = _load(backend, api, monkeypatch)

    assert [product.product_id for product in catalog.products] == ["p1", "p2", "p3"]
    assert len(backend.called("GET", "/products")) == 2
    assert [category.name for category in catalog.categories] == ["Coffee"]
    assert len(catalog.sizes) == 1


def test_queries(backend, api, monkeypatch):
    catalog = _load(backend, api, monkeypatch)

    assert [product.product_id for product in catalog.active_products()] == ["p1", "p3"]
    assert [product.product_id for product in catalog.active_products("c1")] == ["p1"]
    assert [product.product_id for product in catalog.search("tea")] == ["p3"]
    assert [extra.extra_id for extra in catalog.extras_for_category("c1")] == ["e1"]
    assert catalog.extras_for_category("c2") == []
    assert min_price(catalog.product("p1")) == 45
    assert min_price(catalog.product("p3")) == 0
    assert catalog.product("p1").size("ps2").size_name == "Large"


def test_failed_reference_calls_leave_catalog_empty(backend, api):
    catalog = Catalog(api)
    catalog.load()

    assert catalog.products == []
    assert catalog.categories == []
    assert catalog.extras == []
