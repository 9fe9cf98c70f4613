"""Reference data: categories, products, sizes and extras."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from goha_pos.api import ApiClient
from goha_pos.config import PRODUCTS_PAGE_LIMIT
from goha_pos.models import Category, Extra, Product
from goha_pos.normalize import normalize_catalog_extra, normalize_category, normalize_product, unwrap_list

logger = logging.getLogger(__name__)


class Catalog:
    """Menu reference data loaded once per session."""

    def __init__(self, api: ApiClient) -> None:
        self.api = api
        self.categories: list[Category] = []
        self.products: list[Product] = []
        self.sizes: list[dict[str, Any]] = []
        self.extras: list[Extra] = []

    def load(self) -> None:
        """Fetch categories, sizes and extras concurrently, then page through products."""
        with ThreadPoolExecutor(max_workers=3) as pool:
            categories = pool.submit(self.api.get, "/categories")
            sizes = pool.submit(self.api.get, "/category-sizes")
            extras = pool.submit(self.api.get, "/category-extras")

        categories_response = categories.result()
        sizes_response = sizes.result()
        extras_response = extras.result()

        if categories_response.success:
            self.categories = [
                normalize_category(raw)
                for raw in unwrap_list(categories_response.data, "categories")
                if isinstance(raw, dict)
            ]
        if sizes_response.success:
            self.sizes = [raw for raw in unwrap_list(sizes_response.data, "sizes") if isinstance(raw, dict)]
        if extras_response.success:
            self.extras = [
                normalize_catalog_extra(raw)
                for raw in unwrap_list(extras_response.data, "extras")
                if isinstance(raw, dict)
            ]
        self.products = self._fetch_all_products()
        logger.info(
            "catalog loaded categories=%d products=%d sizes=%d extras=%d",
            len(self.categories),
            len(self.products),
            len(self.sizes),
            len(self.extras),
        )

    def _fetch_all_products(self) -> list[Product]:
        products: list[Product] = []
        page = 1
        while True:
            response = self.api.get("/products", page=page, limit=PRODUCTS_PAGE_LIMIT)
            if not response.success:
                break
            batch = [raw for raw in unwrap_list(response.data, "products") if isinstance(raw, dict)]
            if not batch:
                break
            products.extend(normalize_product(raw) for raw in batch)
            if len(batch) < PRODUCTS_PAGE_LIMIT:
                break
            page += 1
        return products

    def active_products(self, category_id: str | None = None) -> list[Product]:
        return [
            product
            for product in self.products
            if product.is_active and (category_id is None or product.category.category_id == category_id)
        ]

    def search(self, query: str, category_id: str | None = None) -> list[Product]:
        source = self.active_products(category_id)
        q = query.strip().lower()
        if not q:
            return source
        return [product for product in source if q in product.name.lower()]

    def extras_for_category(self, category_id: str) -> list[Extra]:
        return [extra for extra in self.extras if extra.category_id == category_id]

    def product(self, product_id: str) -> Product | None:
        for product in self.products:
            if product.product_id == product_id:
                return product
        return None


def min_price(product: Product) -> float:
    if not product.size_prices:
        return 0.0
    return min(size_price.price for size_price in product.size_prices)
