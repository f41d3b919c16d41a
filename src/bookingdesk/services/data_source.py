from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Protocol

from ..domain import ServiceOrderExtended
from ..repositories.order_repo import extended_from_row
from .order_service import OrderListResult, OrderService

logger = logging.getLogger(__name__)

FIXTURE_PATH = Path(__file__).resolve().parent.parent / "data" / "orders.json"
NESTED_KEYS = ("customer", "package", "hostel", "user")


class OrderDataSource(Protocol):
    def list_orders(self) -> OrderListResult: ...

    def delete_order(self, order_id: int) -> bool: ...


class LiveOrderSource:
    def __init__(self, service: OrderService) -> None:
        self.service = service

    def list_orders(self) -> OrderListResult:
        return self.service.load_orders()

    def delete_order(self, order_id: int) -> bool:
        return self.service.delete_order(order_id)


def extended_from_nested(obj: dict) -> ServiceOrderExtended:
    """Flatten the nested ``customer``/``package``/... shape into a joined row."""
    row = {k: v for k, v in obj.items() if k not in NESTED_KEYS}
    for key in NESTED_KEYS:
        row.update(obj.get(key) or {})
    for ts in ("created_at", "updated_at"):
        if isinstance(row.get(ts), str):
            row[ts] = datetime.fromisoformat(row[ts].replace("Z", "+00:00"))
    return extended_from_row(row)


def load_fixture(path: str | Path | None = None) -> list[ServiceOrderExtended]:
    text = Path(path or FIXTURE_PATH).read_text(encoding="utf-8")
    data = json.loads(text)
    if not isinstance(data, list):
        raise ValueError("Order fixture must be a JSON list")
    orders = [extended_from_nested(obj) for obj in data]
    orders.sort(key=lambda o: o.created_at, reverse=True)
    return orders


class FixtureOrderSource:
    """Placeholder orders for demos; deletes only touch the in-memory copy."""

    def __init__(self, orders: list[ServiceOrderExtended] | None = None) -> None:
        self._orders = list(orders) if orders is not None else load_fixture()

    def list_orders(self) -> OrderListResult:
        return OrderListResult(items=list(self._orders))

    def delete_order(self, order_id: int) -> bool:
        before = len(self._orders)
        self._orders = [o for o in self._orders if o.so_id != order_id]
        deleted = len(self._orders) < before
        if deleted:
            logger.info("Removed fixture order #%s", order_id)
        return deleted


def build_order_source(kind: str, service: OrderService | None = None) -> OrderDataSource:
    if kind == "fixture":
        return FixtureOrderSource()
    if kind == "live":
        if service is None:
            raise ValueError("Live order source needs an OrderService")
        return LiveOrderSource(service)
    raise ValueError(f"Unknown order data source: {kind!r}")
