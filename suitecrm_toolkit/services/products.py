"""AOS_Products module."""

from typing import Any

from ..core.models import ModuleKind, ModuleSpec
from ..core.registry import register_module
from ..core.validation import is_blank
from .base import count_by
from .directory import ServiceDirectory
from .formatting import to_float

PRODUCT_STATUSES = ["Active", "Inactive", "Discontinued"]
PRICE_FIELDS = ("cost", "cost_usdollar", "price", "price_usdollar")


def check_currency(service, data: dict[str, Any], is_create: bool) -> list[str]:
    base = data.get("currency_id")
    usd = data.get("currency_id_usdollar")
    if not is_blank(base) and not is_blank(usd) and base != usd:
        return ["Base currency and USD currency should match"]
    return []


PRODUCTS = register_module(ModuleSpec(
    kind=ModuleKind.PRODUCTS,
    required_fields=("name",),
    rules={
        "name": {"max_length": 255},
        "description": {"max_length": 65535},
        "maincode": {"max_length": 100},
        "part_number": {"max_length": 100},
        "category": {"max_length": 255},
        "type": {"in": ["Good", "Service"]},
        "cost": {"min": 0},
        "price": {"min": 0},
        "product_url": {"max_length": 255, "url": True},
        "status": {"in": PRODUCT_STATUSES},
    },
    defaults={"status": "Active", "type": "Good"},
    business_rules=check_currency,
    preprocess=lambda data: to_float(data, PRICE_FIELDS),
))


class ProductService:
    """Convenience operations for AOS_Products."""

    def __init__(self, directory: ServiceDirectory):
        self.directory = directory
        self.records = directory.records(ModuleKind.PRODUCTS)

    def create_product(self, data: dict[str, Any]) -> str:
        return self.records.create(data)

    def update_product(self, product_id: str, data: dict[str, Any]) -> bool:
        return self.records.update(product_id, data)

    def find_product_by_id(self, product_id: str) -> dict[str, Any] | None:
        return self.records.find_by_id(product_id)

    def find_products_by_category(self, category_id: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"aos_product_category_id": category_id}, limit=limit, offset=offset)

    def find_products_by_type(self, product_type: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"type": product_type}, limit=limit, offset=offset)

    def find_products_by_status(self, status: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"status": status}, limit=limit, offset=offset)

    def find_active_products(self, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.find_products_by_status("Active", limit, offset)

    def update_pricing(self, product_id: str, cost: float, price: float, currency_id: str | None = None) -> bool:
        data: dict[str, Any] = {"cost": cost, "price": price}
        if currency_id:
            data["currency_id"] = currency_id
        return self.records.update(product_id, data)

    def get_product_statistics(self) -> dict[str, Any]:
        products = self.records.search(None, ["type", "status", "aos_product_category_id"], limit=1000)
        by_status = count_by(products, "status")
        return {
            "total": len(products),
            "by_type": count_by(products, "type"),
            "by_status": by_status,
            "by_category": count_by(products, "aos_product_category_id"),
            "active": by_status.get("Active", 0),
        }
